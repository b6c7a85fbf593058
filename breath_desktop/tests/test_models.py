import pytest

from breath_desktop import models
from breath_desktop.models import SessionConfig, SessionState, SessionStatus
from breath_desktop.phase_clock import Phase


def test_sanitize_time_limit_strips_non_digits():
    assert models.sanitize_time_limit("12") == "12"
    assert models.sanitize_time_limit("1a2") == "12"
    assert models.sanitize_time_limit(" -5.0 min") == "50"
    assert models.sanitize_time_limit("abc") == ""
    assert models.sanitize_time_limit("") == ""
    assert models.sanitize_time_limit(None) == ""


def test_parse_time_limit_empty_or_zero_is_unlimited():
    assert models.parse_time_limit("") is None
    assert models.parse_time_limit("0") is None
    assert models.parse_time_limit("x") is None
    assert models.parse_time_limit("05") == 5
    assert models.parse_time_limit("10 min") == 10


def test_config_defaults_and_limit_seconds():
    cfg = SessionConfig()
    assert (cfg.inhale_seconds, cfg.exhale_seconds) == (4, 6)
    assert cfg.time_limit_seconds is None
    assert SessionConfig(time_limit_minutes=0).time_limit_seconds is None
    assert SessionConfig(time_limit_minutes=2).time_limit_seconds == 120


def test_config_is_immutable_and_validated():
    cfg = SessionConfig()
    with pytest.raises(Exception):
        cfg.exhale_seconds = 8
    assert cfg.with_changes(exhale_seconds=8).exhale_seconds == 8
    assert cfg.exhale_seconds == 6
    with pytest.raises(ValueError):
        SessionConfig(inhale_seconds=0)
    with pytest.raises(ValueError):
        SessionConfig(exhale_seconds=-2)
    with pytest.raises(ValueError):
        SessionConfig(time_limit_minutes=-1)


def test_initial_state_and_status():
    st = SessionState.initial(SessionConfig(inhale_seconds=5))
    assert st.phase is Phase.INHALE
    assert st.countdown == 5
    assert st.elapsed_seconds == 0
    assert st.status is SessionStatus.IDLE
    st.running = True
    assert st.status is SessionStatus.RUNNING
    st.running = False
    st.complete = True
    assert st.status is SessionStatus.COMPLETE


def test_state_copy_is_independent():
    st = SessionState()
    cp = st.copy()
    cp.elapsed_seconds = 42
    assert st.elapsed_seconds == 0
