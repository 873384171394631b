"""Ketchup Tracker - medication dose log with a 28-day cycle view."""

__version__ = "0.1.0"
