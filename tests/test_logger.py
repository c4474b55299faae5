import logging
import sys

import pytest

from landmark_tracker import logger as logger_module
from landmark_tracker.logger import (
    WarningThrottle,
    get_app_directory,
    get_logger,
    setup_logging,
    suppressed_warning_count,
)


@pytest.fixture
def state_home(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    return tmp_path


@pytest.fixture
def app_logger(state_home):
    yield
    base = logging.getLogger(logger_module.LOGGER_NAME)
    for handler in list(base.handlers):
        base.removeHandler(handler)
        handler.close()


def record(level=logging.WARNING, lineno=10, name="LandmarkTracker.App"):
    return logging.LogRecord(name, level, __file__, lineno, "Rejected frame", None, None)


def test_state_and_cache_directories(state_home):
    assert get_app_directory("logs") == state_home / "state" / "LandmarkTracker" / "logs"
    cache = get_app_directory("mediapipe_models", cache=True)
    assert cache == state_home / "cache" / "LandmarkTracker" / "mediapipe_models"
    assert cache.is_dir()


def test_throttle_passes_one_warning_per_site_and_interval():
    now = [0.0]
    throttle = WarningThrottle(interval_s=5.0, clock=lambda: now[0])

    assert throttle.filter(record())
    assert not throttle.filter(record())
    assert throttle.filter(record(lineno=20))

    now[0] = 5.0
    assert throttle.filter(record())
    assert throttle.suppressed == 1


def test_throttle_ignores_other_levels():
    throttle = WarningThrottle(interval_s=5.0, clock=lambda: 0.0)

    for _ in range(3):
        assert throttle.filter(record(level=logging.INFO))
        assert throttle.filter(record(level=logging.ERROR))
    assert throttle.suppressed == 0


def test_file_gets_every_warning(app_logger, state_home):
    log = setup_logging(log_to_file=True, log_filename="test.log")
    child = get_logger("App")

    for i in range(3):
        child.warning(f"Rejected frame {i}")
    for handler in log.handlers:
        handler.flush()

    text = (state_home / "state" / "LandmarkTracker" / "logs" / "test.log").read_text(encoding="utf-8")
    assert text.count("Rejected frame") == 3
    assert suppressed_warning_count(log) == 2


def test_setup_replaces_previous_handlers(app_logger):
    setup_logging(log_to_file=False)
    log = setup_logging(log_to_file=False)

    assert len(log.handlers) == 1
    assert log.level == logging.INFO
