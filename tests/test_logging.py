"""Tests for the logging setup helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from proofline.utils import logging as logging_utils


@pytest.fixture
def restore_root_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(logging_utils, "_CONFIGURED", False)
    monkeypatch.setattr(logging_utils, "_LOG_PATH", None)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_writes_rotating_file(tmp_path: Path, restore_root_logger: None) -> None:
    log_path = logging_utils.setup_logging("debug", log_dir=tmp_path, console=False)

    logging.getLogger("proofline.test").debug("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / logging_utils.LOG_FILE_NAME
    assert logging_utils.get_log_path() == log_path
    assert "hello from the test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_is_idempotent_unless_forced(tmp_path: Path, restore_root_logger: None) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False)
    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)
    forced = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False, force=True)

    assert second == first
    assert forced == tmp_path / "b" / logging_utils.LOG_FILE_NAME


def test_log_dir_defaults_to_environment(tmp_path: Path, restore_root_logger: None) -> None:
    # The autouse fixture points PROOFLINE_LOG_DIR at tmp_path / "logs".
    log_path = logging_utils.setup_logging(console=False)

    assert log_path == tmp_path / "logs" / logging_utils.LOG_FILE_NAME


def test_resolve_level() -> None:
    assert logging_utils.resolve_level("warning") == logging.WARNING
    assert logging_utils.resolve_level(logging.ERROR) == logging.ERROR
    with pytest.raises(ValueError, match="Unknown log level"):
        logging_utils.resolve_level("chatty")
