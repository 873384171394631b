"""
Cycle position for Ketchup Tracker.

There are two ways of answering "which day of the cycle is it?":

- count: the number of doses logged so far, wrapped at 28.
  This is what the dose log uses.
- date: calendar days since a fixed cycle start date, wrapped at 28.
  This is what the diary uses, and it also knows active vs. placebo pills.

The two disagree as soon as a dose is missed or logged late. They are kept
as separate, named strategies; use describe_divergence() to see the gap.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .config import CYCLE_LENGTH, LUTEAL_START_DAY, ACTIVE_PILL_DAYS


class Phase(str, Enum):
    FOLLICULAR = "Follicular"
    LUTEAL = "Luteal"

    @property
    def label(self) -> str:
        """Swedish label shown in the UI."""
        return PHASE_LABELS[self]


class PillType(str, Enum):
    ACTIVE = "Active"
    PLACEBO = "Placebo"

    @property
    def label(self) -> str:
        return PILL_TYPE_LABELS[self]


PHASE_LABELS = {
    Phase.FOLLICULAR: "Follikulär",
    Phase.LUTEAL: "Luteal",
}

PILL_TYPE_LABELS = {
    PillType.ACTIVE: "Aktiv",
    PillType.PLACEBO: "Placebo",
}

# Status card text, keyed by whether we are in the warning phase
STATUS_ADVICE = {
    True: ("Du är i din känsliga fas. Var extra noggrann med doseringsfönstret "
           "för att bibehålla jämn effekt."),
    False: "Stabil trend observerad. Inga fysiologiska avvikelser i nuvarande cykel.",
}


@dataclass(frozen=True)
class CycleState:
    """Cycle position derived from the number of logged doses."""
    cycle_day: int
    phase: Phase
    is_warning_phase: bool
    total_logs: int

    @property
    def advice(self) -> str:
        return STATUS_ADVICE[self.is_warning_phase]


@dataclass(frozen=True)
class DateCycleState:
    """Cycle position derived from calendar days since the cycle start."""
    day_in_cycle: int
    cycle_day_mod: int
    pill_type: PillType
    phase: Phase
    is_warning_phase: bool

    @property
    def advice(self) -> str:
        return STATUS_ADVICE[self.is_warning_phase]


def phase_for_day(cycle_day: int) -> Phase:
    """Luteal from day 20 onwards, follicular before that."""
    return Phase.LUTEAL if cycle_day >= LUTEAL_START_DAY else Phase.FOLLICULAR


def pill_type_for_day(cycle_day: int) -> PillType:
    return PillType.ACTIVE if cycle_day <= ACTIVE_PILL_DAYS else PillType.PLACEBO


# ============================================================
# STRATEGIES
# ============================================================

def compute_state(total_logs: int) -> CycleState:
    """
    Count-based cycle state.

    Args:
        total_logs: Number of doses ever logged. Must be a non-negative
            integer; this is not checked here.

    Returns:
        CycleState with cycle_day in 1..28

    Example:
        compute_state(0).cycle_day   -> 1
        compute_state(27).cycle_day  -> 28
        compute_state(28).cycle_day  -> 1
    """
    cycle_day = (total_logs % CYCLE_LENGTH) + 1
    phase = phase_for_day(cycle_day)
    return CycleState(
        cycle_day=cycle_day,
        phase=phase,
        is_warning_phase=phase is Phase.LUTEAL,
        total_logs=total_logs,
    )


def compute_date_state(cycle_start: date, today: date = None) -> DateCycleState:
    """
    Date-based cycle state.

    Args:
        cycle_start: First day of the cycle (day 1)
        today: Day to evaluate (defaults to today)

    Returns:
        DateCycleState. day_in_cycle keeps counting past 28,
        cycle_day_mod wraps back to 1.
    """
    if today is None:
        today = date.today()

    day_in_cycle = (today - cycle_start).days + 1
    cycle_day_mod = ((day_in_cycle - 1) % CYCLE_LENGTH) + 1
    phase = phase_for_day(cycle_day_mod)

    return DateCycleState(
        day_in_cycle=day_in_cycle,
        cycle_day_mod=cycle_day_mod,
        pill_type=pill_type_for_day(cycle_day_mod),
        phase=phase,
        is_warning_phase=phase is Phase.LUTEAL,
    )


CYCLE_STRATEGIES = {
    'count': compute_state,
    'date': compute_date_state,
}


def describe_divergence(total_logs: int, cycle_start: date, today: date = None) -> dict:
    """
    Compare the count and date strategies for the same moment.

    Returns:
        Dict with both cycle days, the gap between them and whether they agree.
        A positive gap means fewer doses were logged than days have passed.
    """
    by_count = compute_state(total_logs)
    by_date = compute_date_state(cycle_start, today)
    gap = (by_date.cycle_day_mod - by_count.cycle_day) % CYCLE_LENGTH

    return {
        'count_day': by_count.cycle_day,
        'date_day': by_date.cycle_day_mod,
        'gap_days': gap,
        'agree': gap == 0,
    }
