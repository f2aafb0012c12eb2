"""Unit tests for tasq logging module."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from unittest import mock

import pytest

from tasq.core.logging import (
    ColoredFormatter,
    _level_from_env,
    get_logger,
    set_default_level,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _restore_default_level() -> Iterator[None]:
    """Save and restore the module-level _default_level after each test."""
    from tasq.core import logging as tasq_logging

    original = tasq_logging._default_level
    yield
    set_default_level(original)


def _unique_name() -> str:
    return f'test_{uuid.uuid4().hex[:8]}'


class TestSetDefaultLevel:
    def test_changes_module_variable(self) -> None:
        from tasq.core import logging as tasq_logging

        set_default_level(logging.DEBUG)
        assert tasq_logging._default_level == logging.DEBUG

    def test_new_logger_uses_default_level(self) -> None:
        set_default_level(logging.WARNING)

        logger = get_logger(_unique_name())

        assert logger.level == logging.WARNING
        for handler in logger.handlers:
            assert handler.level == logging.WARNING


class TestGetLogger:
    def test_namespaced_under_tasq(self) -> None:
        name = _unique_name()
        assert get_logger(name).name == f'tasq.{name}'

    def test_configured_once(self) -> None:
        name = _unique_name()
        first = get_logger(name)
        second = get_logger(name)

        assert first is second
        assert len(second.handlers) == 1

    def test_does_not_propagate(self) -> None:
        assert get_logger(_unique_name()).propagate is False

    def test_uses_colored_formatter(self) -> None:
        handler = get_logger(_unique_name()).handlers[0]
        assert isinstance(handler.formatter, ColoredFormatter)


class TestLevelFromEnv:
    def test_reads_level_name(self) -> None:
        with mock.patch.dict('os.environ', {'TASQ_LOG_LEVEL': 'debug'}):
            assert _level_from_env() == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        with mock.patch.dict('os.environ', {'TASQ_LOG_LEVEL': 'chatty'}):
            assert _level_from_env() == logging.INFO


class TestColoredFormatter:
    def test_component_and_level_columns(self) -> None:
        record = logging.LogRecord(
            'tasq.broker', logging.WARNING, __file__, 1, 'duplicate task', None, None,
        )

        formatted = ColoredFormatter().format(record)

        assert '[broker]' in formatted
        assert '[WARNING]' in formatted
        assert 'duplicate task' in formatted
