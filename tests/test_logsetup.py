import logging

import pytest

from nativestor.logsetup import LogLevel, parse_level, set_log_level


@pytest.mark.parametrize("level", list(LogLevel))
def test_parse_full_name(level):
    assert parse_level(level.name) is level


@pytest.mark.parametrize("level", list(LogLevel))
def test_parse_abbreviation(level):
    assert parse_level(level.name[0]) is level


@pytest.mark.parametrize("raw", ["", "info", "VERBOSE", "X"])
def test_parse_rejects_unknown(raw):
    with pytest.raises(ValueError):
        parse_level(raw)


def test_levels_ordered_by_verbosity():
    levels = sorted(parse_level(name) for name in ["TRACE", "INFO", "CRITICAL", "DEBUG"])
    assert levels[0] is LogLevel.CRITICAL
    assert levels[-1] is LogLevel.TRACE
    python_levels = [level.python_level for level in levels]
    assert python_levels == sorted(python_levels, reverse=True)


def test_set_log_level_applies_to_package_logger():
    assert set_log_level("DEBUG") is LogLevel.DEBUG
    assert logging.getLogger("nativestor").level == logging.DEBUG
    assert set_log_level("INFO") is LogLevel.INFO
    assert logging.getLogger("nativestor").level == logging.INFO


def test_set_log_level_falls_back_to_critical():
    assert set_log_level("nonsense") is LogLevel.CRITICAL
    assert logging.getLogger("nativestor").level == logging.CRITICAL
    set_log_level("INFO")