"""
Configuration for Ketchup Tracker.

Everything that changes between machines (where the data lives, the access
password, the patient name on reports) is read from environment variables.
Add the ones you need to your ~/.bashrc, for example:
    export KETCHUP_PASSWORD="something-better"
    export KETCHUP_PATIENT_NAME="Bella"
    export KETCHUP_CYCLE_START="2026-01-05"

Then run: source ~/.bashrc (or restart your terminal)
"""

import os
from datetime import date
from pathlib import Path
from typing import Optional


# ============================================================
# FILE PATHS
# ============================================================

# Project root directory (where setup.py is)
PROJECT_ROOT = Path(__file__).parent.parent

# Data directory for the database and the diary workbook
DATA_DIR = Path(os.environ.get("KETCHUP_DATA_DIR", PROJECT_ROOT / "data"))

# Database file path
DB_PATH = Path(os.environ.get("KETCHUP_DB_PATH", DATA_DIR / "ketchup.db"))

# Spreadsheet used by the diary (Datum/Tid/Typ/...) variant
DIARY_PATH = Path(os.environ.get("KETCHUP_DIARY_PATH", DATA_DIR / "dagbok.xlsx"))

# Where generated reports go
EXPORT_DIR = Path(os.environ.get("KETCHUP_EXPORT_DIR", PROJECT_ROOT / "exports"))


# ============================================================
# ACCESS
# ============================================================

# Shared access password for the CLI and the web front end.
# This is a convenience lock for a personal device, not real security.
ACCESS_PASSWORD = os.environ.get("KETCHUP_PASSWORD", "Bella2026")

# Identity the dose log is stored under
USER_ID = os.environ.get("KETCHUP_USER", "local")

# Flask session signing key
SECRET_KEY = os.environ.get("KETCHUP_SECRET_KEY", "ketchup-secret-key-change-in-production")


# ============================================================
# CYCLE SETTINGS
# ============================================================

# Length of one medication cycle in days
CYCLE_LENGTH = 28

# First cycle day of the luteal ("sensitive") phase
LUTEAL_START_DAY = 20

# Days 1-24 are active pills, the rest are placebo
ACTIVE_PILL_DAYS = 24

# First day of the current cycle, only used by the date-based strategy.
# Format: "YYYY-MM-DD"
CYCLE_START = os.environ.get("KETCHUP_CYCLE_START")


# ============================================================
# UI / REPORT SETTINGS
# ============================================================

# Name printed in the report header
PATIENT_NAME = os.environ.get("KETCHUP_PATIENT_NAME", "Patient")

# Seconds the log button stays disabled after a write
SYNC_COOLDOWN_SECONDS = 0.5

# Rows in the exported report
REPORT_ROW_LIMIT = 20

# Entries shown in the "recent logs" list
RECENT_LOG_LIMIT = 3

# Days covered by the trend chart
TREND_DAYS = 7


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def is_cycle_start_configured() -> bool:
    """Check if a cycle start date has been set."""
    return bool(CYCLE_START)


def get_cycle_start() -> Optional[date]:
    """
    Parse KETCHUP_CYCLE_START.

    Returns:
        The configured start date, or None if it is not set

    Raises:
        ValueError: if the value is not an ISO date
    """
    if not CYCLE_START:
        return None
    return date.fromisoformat(CYCLE_START)
