# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from focusflow.logging_setup import _ConsoleNoiseFilter, setup_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    logging.captureWarnings(False)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_levels() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("focusflow.tasks.task_store", logging.DEBUG))
    assert not f.filter(_record("focusflow.tasks.reminders", logging.INFO))
    assert f.filter(_record("focusflow.tasks.reminders", logging.WARNING))
    assert not f.filter(_record("focusflow.core.effects", logging.DEBUG))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("urllib3", logging.WARNING))
    assert f.filter(_record("urllib3", logging.ERROR))


def test_setup_writes_file_and_replaces_only_own_handlers(tmp_path, restore_root_logger) -> None:
    root = restore_root_logger
    foreign = logging.NullHandler()
    root.addHandler(foreign)

    setup_logging(log_dir=tmp_path)
    log_file = setup_logging(log_dir=tmp_path)

    assert log_file == tmp_path / "focusflow.log"
    assert foreign in root.handlers
    assert len([h for h in root.handlers if getattr(h, "_focusflow", False)]) == 2

    logging.getLogger("focusflow.test").debug("hello %s", "file")
    for h in root.handlers:
        h.flush()
    assert "focusflow.test: hello file" in log_file.read_text(encoding="utf-8")
    root.removeHandler(foreign)
