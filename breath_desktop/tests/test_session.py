import pytest

from breath_desktop.models import SessionConfig, SessionStatus
from breath_desktop.phase_clock import Phase
from breath_desktop.ui.session import SessionController


class Recorder:
    def __init__(self, controller: SessionController):
        self.cues = 0
        self.renders = []
        self.acquired = 0
        self.released = 0
        self.completed = []
        controller.cue.connect(self._on_cue)
        controller.render_requested.connect(lambda state, config: self.renders.append(state))
        controller.wake_lock_acquire.connect(self._on_acquire)
        controller.wake_lock_release.connect(self._on_release)
        controller.completed.connect(self.completed.append)

    def _on_cue(self):
        self.cues += 1

    def _on_acquire(self):
        self.acquired += 1

    def _on_release(self):
        self.released += 1


@pytest.fixture
def make(qapp, clock):
    created = []

    def _make(**cfg):
        c = SessionController(SessionConfig(**cfg), clock=clock)
        created.append(c)
        return c, Recorder(c)

    yield _make
    for c in created:
        c.pause()


def run_to(controller, clock, elapsed):
    """Tick once per second up to `elapsed`, like a loop that never misses a boundary."""
    start = controller.state.elapsed_seconds + 1
    for t in range(start, elapsed + 1):
        clock.at(t + 0.05)
        controller.tick()


def test_start_resets_state_and_emits_signals(make, clock):
    c, rec = make()
    assert c.start()
    st = c.state
    assert st.running
    assert st.elapsed_seconds == 0
    assert st.phase is Phase.INHALE
    assert st.countdown == 4
    assert not st.limit_reached and not st.complete
    assert rec.cues == 1
    assert rec.acquired == 1
    assert len(rec.renders) == 1
    assert c.is_active()


def test_start_while_running_is_rejected(make, clock):
    c, rec = make()
    c.start()
    run_to(c, clock, 3)
    assert not c.start()
    assert c.state.elapsed_seconds == 3
    assert rec.acquired == 1


def test_tick_without_elapsed_progress_is_noop(make, clock):
    c, rec = make()
    c.start()
    clock.at(0.6)
    c.tick()
    assert c.state.elapsed_seconds == 0
    assert len(rec.renders) == 1


def test_tick_while_idle_is_noop(make, clock):
    c, rec = make()
    clock.at(30)
    c.tick()
    assert c.state.elapsed_seconds == 0
    assert rec.renders == []


def test_four_six_unlimited_wraps_with_cue(make, clock):
    c, rec = make(inhale_seconds=4, exhale_seconds=6)
    c.start()
    run_to(c, clock, 9)
    st = c.state
    assert (st.phase, st.countdown) == (Phase.EXHALE, 1)
    # start cue + inhale->exhale at 4
    assert rec.cues == 2
    run_to(c, clock, 10)
    st = c.state
    assert (st.phase, st.countdown) == (Phase.INHALE, 4)
    assert rec.cues == 3
    assert st.running and not st.complete


def test_irregular_sampling_gives_same_state(make, clock):
    c, _ = make(inhale_seconds=4, exhale_seconds=6)
    c.start()
    for t in (0.2, 2.7, 2.9, 7.4, 9.99):
        clock.at(t)
        c.tick()
    st = c.state
    assert st.elapsed_seconds == 9
    assert (st.phase, st.countdown) == (Phase.EXHALE, 1)


def test_limit_reached_then_complete_at_next_wrap(make, clock):
    # cycle of 11s: the first wrap at or after 60s is 66s
    c, rec = make(inhale_seconds=4, exhale_seconds=7, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 59)
    st = c.state
    assert not st.limit_reached
    assert not st.complete
    assert st.running

    run_to(c, clock, 60)
    st = c.state
    assert st.limit_reached
    assert not st.complete
    assert st.running

    run_to(c, clock, 65)
    assert c.state.running

    run_to(c, clock, 66)
    st = c.state
    assert st.complete
    assert not st.running
    assert st.phase is Phase.INHALE
    assert c.status is SessionStatus.COMPLETE
    assert rec.completed == [66]
    assert rec.released == 1
    assert not c.is_active()


def test_limit_on_cycle_multiple_completes_immediately(make, clock):
    c, rec = make(inhale_seconds=4, exhale_seconds=6, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 60)
    st = c.state
    assert st.limit_reached
    assert st.complete
    assert rec.completed == [60]


def test_late_tick_over_wrap_still_completes(make, clock):
    c, rec = make(inhale_seconds=4, exhale_seconds=6, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 59)
    clock.at(61.5)
    c.tick()
    st = c.state
    assert st.elapsed_seconds == 61
    assert st.complete
    assert (st.phase, st.countdown) == (Phase.INHALE, 3)


def test_late_tick_over_wrap_before_limit_keeps_running(make, clock):
    # cycle of 7s: wraps at 56 (before the limit) and 63 (first one after it)
    c, rec = make(inhale_seconds=6, exhale_seconds=1, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 55)
    clock.at(60.05)
    c.tick()
    st = c.state
    assert st.elapsed_seconds == 60
    assert st.limit_reached
    assert st.phase is Phase.INHALE
    assert not st.complete
    assert st.running
    assert rec.completed == []

    run_to(c, clock, 62)
    assert c.state.running
    run_to(c, clock, 63)
    st = c.state
    assert st.complete
    assert not st.running
    assert rec.completed == [63]


def test_ticks_after_complete_do_nothing(make, clock):
    c, rec = make(inhale_seconds=4, exhale_seconds=6, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 60)
    renders = len(rec.renders)
    clock.at(90)
    c.tick()
    assert c.state.elapsed_seconds == 60
    assert len(rec.renders) == renders


def test_pause_then_start_begins_from_zero(make, clock):
    c, rec = make()
    c.start()
    run_to(c, clock, 7)
    assert c.pause()
    st = c.state
    assert not st.running
    assert st.elapsed_seconds == 7
    assert rec.released == 1
    assert not c.is_active()

    clock.at(20)
    assert c.start()
    st = c.state
    assert st.elapsed_seconds == 0
    assert st.phase is Phase.INHALE
    clock.at(21.1)
    c.tick()
    assert c.state.elapsed_seconds == 1


def test_pause_when_not_running_is_rejected(make):
    c, rec = make()
    assert not c.pause()
    assert rec.released == 0


def test_reset_while_running_is_rejected(make, clock):
    c, rec = make(time_limit_minutes=5)
    c.start()
    run_to(c, clock, 5)
    before = c.state
    renders = len(rec.renders)
    assert not c.reset()
    assert c.state == before
    assert c.config.time_limit_minutes == 5
    assert len(rec.renders) == renders


def test_reset_after_complete_returns_to_idle(make, clock):
    c, _ = make(inhale_seconds=4, exhale_seconds=6, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 60)
    assert c.reset()
    st = c.state
    assert c.status is SessionStatus.IDLE
    assert st.elapsed_seconds == 0
    assert not st.complete and not st.limit_reached
    assert c.config.time_limit_minutes is None


def test_start_after_complete_starts_fresh(make, clock):
    c, _ = make(inhale_seconds=4, exhale_seconds=6, time_limit_minutes=1)
    c.start()
    run_to(c, clock, 60)
    clock.at(200)
    assert c.start()
    st = c.state
    assert st.running
    assert st.elapsed_seconds == 0
    assert not st.complete and not st.limit_reached


def test_start_with_preset_sets_limit(make, clock):
    c, rec = make()
    assert c.start_with_preset(2)
    assert c.config.time_limit_minutes == 2
    assert c.state.running
    assert rec.cues == 1
    assert not c.start_with_preset(5)
    assert c.config.time_limit_minutes == 2


def test_invalid_preset_is_rejected(make):
    c, rec = make()
    assert not c.start_with_preset(-1)
    assert not c.start_with_preset("soon")
    assert not c.state.running
    assert c.config.time_limit_minutes is None
    assert rec.cues == 0


def test_start_adopts_given_config(make, clock):
    c, _ = make()
    c.start(SessionConfig(inhale_seconds=4, exhale_seconds=8))
    assert c.config.exhale_seconds == 8
    run_to(c, clock, 4)
    assert c.state.countdown == 8


def test_update_config_only_while_not_running(make, clock):
    c, rec = make()
    assert c.update_config(exhale_seconds=8)
    assert c.config.exhale_seconds == 8
    assert c.update_config(inhale_seconds=5)
    assert c.state.countdown == 5
    assert not c.update_config(exhale_seconds=5, bogus=1)
    c.start()
    assert not c.update_config(exhale_seconds=7)
    assert c.config.exhale_seconds == 8
