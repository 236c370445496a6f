"""Tests for utility helpers and logging setup."""
import logging
from datetime import timedelta
from pathlib import Path

import pytest

from recjoin import config
from recjoin.config import JoinOptions
from recjoin.exceptions import ConfigurationError, OutputPermissionError, RecJoinError
from recjoin.logging import configure_logging
from recjoin.utils import (
    ensure_writable, format_duration, format_size, get_file_size, has_free_space
)


@pytest.mark.parametrize("size,expected", [
    (0, "0.0B"),
    (512, "512.0B"),
    (2048, "2.0KiB"),
    (1677.7 * 1024, "1.6MiB"),
    (3 * 1024 ** 3, "3.0GiB"),
])
def test_format_size(size, expected):
    assert format_size(size) == expected


@pytest.mark.parametrize("value,expected", [
    (None, "N/A"),
    (timedelta(seconds=10), "10s"),
    (timedelta(minutes=1, seconds=5), "1m05s"),
    (timedelta(hours=1, seconds=5), "1h00m05s"),
    (-timedelta(seconds=2), "-2s"),
])
def test_format_duration(value, expected):
    assert format_duration(value) == expected


def test_get_file_size(tmp_path):
    path = tmp_path / "a.mp4"
    path.write_bytes(b"12345")
    assert get_file_size(path) == 5
    assert get_file_size(tmp_path / "missing.mp4") == 0


def test_ensure_writable_leaves_nothing_behind(tmp_path):
    path = tmp_path / "out.mkv"
    ensure_writable(path)
    assert not path.exists()


def test_ensure_writable_missing_directory(tmp_path):
    with pytest.raises(OutputPermissionError):
        ensure_writable(tmp_path / "missing" / "out.mkv")


def test_has_free_space(tmp_path, mocker):
    usage = mocker.patch("recjoin.utils.psutil.disk_usage")
    usage.return_value.free = 1000
    assert has_free_space(tmp_path, 1000)
    assert not has_free_space(tmp_path, 1001)
    usage.assert_called_with(str(tmp_path))


def test_error_format():
    error = ConfigurationError("bad value", module="config")
    assert isinstance(error, RecJoinError)
    assert str(error) == "[config] bad value"
    assert str(RecJoinError("boom")) == "[unknown] boom"


def test_options_validation():
    with pytest.raises(ConfigurationError):
        JoinOptions(file_type="avi")
    with pytest.raises(ConfigurationError):
        JoinOptions(max_attempts=0)

    options = JoinOptions(sources=["cam"], target="out", skip_bad_files=True)
    assert options.sources == [Path("cam")]
    assert options.target == Path("out")
    assert options.recovery_enabled


def test_configure_logging_writes_log_file(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "LOG_DIR", tmp_path / "logs")

    log_file = configure_logging("DEBUG")
    try:
        logger = logging.getLogger("recjoin")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert log_file.parent == tmp_path / "logs"
        assert log_file.name.startswith("recjoin_")
    finally:
        for handler in logging.getLogger("recjoin").handlers[:]:
            logging.getLogger("recjoin").removeHandler(handler)
            handler.close()


def test_configure_logging_console_only():
    try:
        assert configure_logging("warning", file_logging=False) is None
        logger = logging.getLogger("recjoin")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
    finally:
        for handler in logging.getLogger("recjoin").handlers[:]:
            logging.getLogger("recjoin").removeHandler(handler)
            handler.close()
