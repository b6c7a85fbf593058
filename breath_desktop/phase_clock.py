"""Breathing phase computation.

Phase and countdown are derived from the total elapsed session time on every
call, never decremented, so a late or skipped sample cannot introduce drift.
"""
from enum import Enum
from typing import NamedTuple


class Phase(Enum):
    INHALE = 0
    EXHALE = 1


class PhaseReading(NamedTuple):
    phase: Phase
    countdown: int
    # True exactly at the second a new cycle begins (elapsed > 0)
    wrapped: bool


_INSTRUCTIONS = {
    Phase.INHALE: "Inhale",
    Phase.EXHALE: "Exhale",
}


def _check_durations(inhale_seconds: int, exhale_seconds: int):
    if inhale_seconds <= 0 or exhale_seconds <= 0:
        raise ValueError(f"phase durations must be positive, got {inhale_seconds}/{exhale_seconds}")


def compute(elapsed_seconds: int, inhale_seconds: int, exhale_seconds: int) -> PhaseReading:
    """Return the phase, the seconds left in it and whether a cycle just wrapped.

    The countdown runs from the phase length down to 1 and never shows 0.
    """
    _check_durations(inhale_seconds, exhale_seconds)
    if elapsed_seconds < 0:
        raise ValueError(f"elapsed_seconds must be >= 0, got {elapsed_seconds}")
    cycle_length = inhale_seconds + exhale_seconds
    cycle_pos = elapsed_seconds % cycle_length
    if cycle_pos < inhale_seconds:
        phase = Phase.INHALE
        countdown = inhale_seconds - cycle_pos
    else:
        phase = Phase.EXHALE
        countdown = exhale_seconds - (cycle_pos - inhale_seconds)
    wrapped = cycle_pos == 0 and elapsed_seconds > 0
    return PhaseReading(phase, countdown, wrapped)


def cycle_index(elapsed_seconds: int, inhale_seconds: int, exhale_seconds: int) -> int:
    """Number of whole cycles completed at `elapsed_seconds`."""
    _check_durations(inhale_seconds, exhale_seconds)
    return elapsed_seconds // (inhale_seconds + exhale_seconds)


def crossed_wrap(previous: int, current: int, inhale_seconds: int, exhale_seconds: int) -> bool:
    """True when a cycle boundary lies in (previous, current]."""
    if current <= previous:
        return False
    return cycle_index(current, inhale_seconds, exhale_seconds) > cycle_index(previous, inhale_seconds, exhale_seconds)


def instruction(phase: Phase) -> str:
    return _INSTRUCTIONS.get(phase, "")


def format_time(seconds: int) -> str:
    try:
        m = int(seconds) // 60
        s = int(seconds) % 60
        return f"{m:02d}:{s:02d}"
    except (TypeError, ValueError):
        return "00:00"
