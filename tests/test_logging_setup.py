import io
import logging

import pytest

from cashbook.logging_setup import configure_logging, get_logger, resolve_level


@pytest.mark.parametrize(
    "level,expected",
    [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), (" error ", logging.ERROR), ("15", 15)],
)
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_resolve_level_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("CASHBOOK_LOG_LEVEL", "DEBUG")
    assert resolve_level(None) == logging.DEBUG
    monkeypatch.delenv("CASHBOOK_LOG_LEVEL")
    assert resolve_level(None) == logging.INFO


def test_resolve_level_rejects_unknown_names():
    with pytest.raises(ValueError, match="unknown log level"):
        resolve_level("LOUD")


def test_configure_logging_installs_one_handler_and_updates_level():
    first = io.StringIO()
    logger = configure_logging("INFO", stream=first)
    owned = [h for h in logger.handlers if getattr(h, "cashbook_owned", False)]

    second = io.StringIO()
    configure_logging("DEBUG", stream=second)
    assert [h for h in logger.handlers if getattr(h, "cashbook_owned", False)] == owned
    assert logger.level == logging.DEBUG

    get_logger("cashbook.workflow").debug("approve 42 by direktur")
    assert "approve 42 by direktur" in second.getvalue()
    assert first.getvalue() == ""
