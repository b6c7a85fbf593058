import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .phase_clock import Phase, compute

DEFAULT_INHALE_SECONDS = 4
DEFAULT_EXHALE_SECONDS = 6
# exhale slider bounds (seconds)
EXHALE_RANGE = (6, 8)
PRESET_MINUTES = (2, 5, 10)
# sampling period; only affects how quickly a second boundary is noticed
TICK_INTERVAL_MS = 200
OFFLINE_BANNER_MS = 5000
CUE_FREQUENCY_HZ = 440
CUE_DURATION_MS = 100

_NON_DIGITS = re.compile(r"[^0-9]")


class SessionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionConfig:
    inhale_seconds: int = DEFAULT_INHALE_SECONDS
    exhale_seconds: int = DEFAULT_EXHALE_SECONDS
    # None or 0 means unlimited
    time_limit_minutes: Optional[int] = None

    def __post_init__(self):
        if int(self.inhale_seconds) <= 0 or int(self.exhale_seconds) <= 0:
            raise ValueError("inhale_seconds and exhale_seconds must be positive")
        if self.time_limit_minutes is not None and int(self.time_limit_minutes) < 0:
            raise ValueError("time_limit_minutes must be >= 0")

    @property
    def time_limit_seconds(self) -> Optional[int]:
        if not self.time_limit_minutes:
            return None
        return int(self.time_limit_minutes) * 60

    def with_changes(self, **changes) -> "SessionConfig":
        return replace(self, **changes)


@dataclass
class SessionState:
    running: bool = False
    elapsed_seconds: int = 0
    phase: Phase = Phase.INHALE
    countdown: int = DEFAULT_INHALE_SECONDS
    limit_reached: bool = False
    complete: bool = False

    @classmethod
    def initial(cls, config: SessionConfig) -> "SessionState":
        reading = compute(0, config.inhale_seconds, config.exhale_seconds)
        return cls(phase=reading.phase, countdown=reading.countdown)

    @property
    def status(self) -> SessionStatus:
        if self.running:
            return SessionStatus.RUNNING
        if self.complete:
            return SessionStatus.COMPLETE
        return SessionStatus.IDLE

    def copy(self) -> "SessionState":
        return replace(self)


def sanitize_time_limit(text: Optional[str]) -> str:
    """Strip everything but digits from a time-limit entry."""
    if not text:
        return ""
    return _NON_DIGITS.sub("", str(text))


def parse_time_limit(text: Optional[str]) -> Optional[int]:
    """Minutes from a time-limit entry; None when the entry means unlimited."""
    digits = sanitize_time_limit(text)
    if not digits:
        return None
    minutes = int(digits)
    return minutes or None
