import http.client

import pytest

from landmark_tracker import model_manager
from landmark_tracker.model_manager import FACE_LANDMARKER, HAND_LANDMARKER, ensure_model


@pytest.fixture(autouse=True)
def cache_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    monkeypatch.setattr(model_manager, "RETRY_DELAY", 0)
    return tmp_path


def test_cache_dir_is_created(cache_home):
    cache_dir = model_manager.get_model_cache_dir()

    assert cache_dir.is_dir()
    assert cache_dir.is_relative_to(cache_home)


def test_cached_model_is_not_downloaded(monkeypatch):
    cached = model_manager.get_model_cache_dir() / HAND_LANDMARKER.filename
    cached.write_bytes(b"model")

    def fail(url, dest):
        raise AssertionError("should not download")

    monkeypatch.setattr(model_manager, "_download_model", fail)

    assert ensure_model(HAND_LANDMARKER) == str(cached)


def test_downloads_missing_model(monkeypatch):
    calls = []

    def fake_download(url, dest):
        calls.append(url)
        dest.write_bytes(b"model")

    monkeypatch.setattr(model_manager, "_download_model", fake_download)

    path = model_manager.ensure_face_landmarker_model()

    assert calls == [FACE_LANDMARKER.url]
    assert path.endswith(FACE_LANDMARKER.filename)


def test_retries_then_gives_up(monkeypatch):
    attempts = []

    def broken_download(url, dest):
        attempts.append(url)
        raise OSError("network down")

    monkeypatch.setattr(model_manager, "_download_model", broken_download)

    with pytest.raises(RuntimeError, match="after 3 attempts"):
        ensure_model(HAND_LANDMARKER)
    assert len(attempts) == model_manager.MAX_RETRIES


def test_truncated_download_is_retried(monkeypatch):
    attempts = []

    def flaky_download(url, dest):
        attempts.append(url)
        if len(attempts) == 1:
            raise http.client.IncompleteRead(b"partial", 1024)
        dest.write_bytes(b"model")

    monkeypatch.setattr(model_manager, "_download_model", flaky_download)

    path = ensure_model(HAND_LANDMARKER)

    assert len(attempts) == 2
    assert path.endswith(HAND_LANDMARKER.filename)
