import logging
import math
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, QTimer

from .. import phase_clock
from ..models import SessionConfig, SessionState, SessionStatus, TICK_INTERVAL_MS
from ..phase_clock import Phase

logger = logging.getLogger(__name__)


class SessionController(QObject):
    """Breathing session state machine.

    Signals:
    - cue(): a phase started; play the audible cue
    - render_requested(object, object): state snapshot and config after every change
    - wake_lock_acquire() / wake_lock_release(): keep the screen on while running
    - completed(int): the session stopped at a wrap after the time limit; carries elapsed seconds

    Operations return True when applied and False when the call is not valid
    in the current state; nothing is raised to the caller.
    """

    cue = Signal()
    render_requested = Signal(object, object)
    wake_lock_acquire = Signal()
    wake_lock_release = Signal()
    completed = Signal(int)

    def __init__(self, config: Optional[SessionConfig] = None, clock: Callable[[], float] = time.monotonic,
                 interval_ms: int = TICK_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._config = config or SessionConfig()
        self._state = SessionState.initial(self._config)
        self._clock = clock
        self._started_at = 0.0
        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self.tick)

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state.copy()

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self, config: Optional[SessionConfig] = None) -> bool:
        if self._state.running:
            logger.debug("start ignored: session already running")
            return False
        self._timer.stop()
        if config is not None:
            self._config = config
        self._state = SessionState.initial(self._config)
        self._state.running = True
        self._started_at = self._clock()
        logger.info("Session started (inhale %ss, exhale %ss, limit %s min)",
                    self._config.inhale_seconds, self._config.exhale_seconds,
                    self._config.time_limit_minutes or "none")
        # the first inhale is a phase start too
        self.cue.emit()
        self.wake_lock_acquire.emit()
        self._timer.start()
        self._emit_render()
        return True

    def start_with_preset(self, minutes: int, config: Optional[SessionConfig] = None) -> bool:
        if self._state.running:
            logger.debug("preset start ignored: session already running")
            return False
        base = config if config is not None else self._config
        try:
            preset = base.with_changes(time_limit_minutes=int(minutes))
        except (TypeError, ValueError) as e:
            logger.warning("Rejected preset %r: %s", minutes, e)
            return False
        return self.start(preset)

    def pause(self) -> bool:
        """Stop the loop and keep the state; the next start begins from zero."""
        if not self._state.running:
            logger.debug("pause ignored: session not running")
            return False
        self._timer.stop()
        self._state.running = False
        logger.info("Session paused at %ss", self._state.elapsed_seconds)
        self.wake_lock_release.emit()
        self._emit_render()
        return True

    def reset(self) -> bool:
        if self._state.running:
            logger.debug("reset ignored: session running")
            return False
        self._timer.stop()
        self._config = self._config.with_changes(time_limit_minutes=None)
        self._state = SessionState.initial(self._config)
        self._emit_render()
        return True

    def update_config(self, **changes) -> bool:
        """Replace config fields; only allowed while no session is running."""
        if self._state.running:
            logger.debug("config change ignored while running: %s", changes)
            return False
        try:
            self._config = self._config.with_changes(**changes)
        except (TypeError, ValueError) as e:
            logger.warning("Rejected config change %s: %s", changes, e)
            return False
        if self._state.status is SessionStatus.IDLE and self._state.elapsed_seconds == 0:
            self._state = SessionState.initial(self._config)
        else:
            limit = self._config.inhale_seconds if self._state.phase is Phase.INHALE else self._config.exhale_seconds
            self._state.countdown = min(self._state.countdown, limit)
        self._emit_render()
        return True

    def tick(self):
        if not self._state.running:
            return
        elapsed = max(0, math.floor(self._clock() - self._started_at))
        previous = self._state.elapsed_seconds
        if elapsed <= previous:
            return
        self._state.elapsed_seconds = elapsed
        inhale = self._config.inhale_seconds
        exhale = self._config.exhale_seconds

        limit = self._config.time_limit_seconds
        if limit and not self._state.limit_reached and elapsed >= limit:
            self._state.limit_reached = True
            logger.info("Time limit of %s min reached; stopping at the end of this cycle",
                        self._config.time_limit_minutes)

        reading = phase_clock.compute(elapsed, inhale, exhale)
        # a late tick can step over the exact wrap second
        wrapped = reading.wrapped or phase_clock.crossed_wrap(previous, elapsed, inhale, exhale)
        if reading.phase is not self._state.phase or wrapped:
            self.cue.emit()
        self._state.phase = reading.phase
        self._state.countdown = reading.countdown

        # only a boundary at or after the limit ends the session
        last_boundary = phase_clock.cycle_index(elapsed, inhale, exhale) * (inhale + exhale)
        if (reading.phase is Phase.INHALE and wrapped and self._state.limit_reached
                and last_boundary >= limit):
            self._complete()
        self._emit_render()

    def _complete(self):
        self._timer.stop()
        self._state.complete = True
        self._state.running = False
        cycles = phase_clock.cycle_index(self._state.elapsed_seconds, self._config.inhale_seconds,
                                         self._config.exhale_seconds)
        logger.info("Session complete after %ss (%s cycles)", self._state.elapsed_seconds, cycles)
        self.wake_lock_release.emit()
        self.completed.emit(self._state.elapsed_seconds)

    def _emit_render(self):
        self.render_requested.emit(self._state.copy(), self._config)
