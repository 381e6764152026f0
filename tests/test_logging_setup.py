from __future__ import annotations

import io
import logging

import pytest

from household_import.logging_setup import (
    LEVEL_ENV,
    configure_logging,
    get_logger,
    resolve_level,
)


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("debug", logging.DEBUG),
        (" Warning ", logging.WARNING),
        ("15", 15),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_resolve_level_reads_env(monkeypatch):
    assert resolve_level() == logging.INFO
    monkeypatch.setenv(LEVEL_ENV, "error")
    assert resolve_level() == logging.ERROR


def test_logger_is_silent_until_configured():
    get_logger("household_import.tests")
    handlers = logging.getLogger("household_import").handlers
    assert [type(h) for h in handlers] == [logging.NullHandler]


def test_configure_logging_writes_to_stream_once():
    first, second = io.StringIO(), io.StringIO()
    log = get_logger("household_import.tests")

    configure_logging("warning", fmt="%(levelname)s %(message)s", stream=first)
    configure_logging("debug", stream=second)
    log.info("hidden")
    log.warning("shown %d", 1)

    pkg = logging.getLogger("household_import")
    assert len(pkg.handlers) == 1
    assert not pkg.propagate
    assert first.getvalue() == "WARNING shown 1\n"
    assert second.getvalue() == ""
