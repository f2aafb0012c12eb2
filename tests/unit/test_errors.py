"""Unit tests for Rust-style error formatting."""

from __future__ import annotations

import inspect
import os
import sys
import tempfile
from collections.abc import Iterator
from io import StringIO
from unittest import mock

import pytest

from tasq.core.errors import (
    ConfigurationError,
    ErrorCode,
    MultipleValidationErrors,
    SourceLocation,
    TaskValidationError,
    TasqError,
    ValidationReport,
    _find_user_frame,
    _should_show_verbose,
    _should_use_colors,
    _should_use_plain_errors,
    _tasq_excepthook,
    install_error_handler,
    raise_collected,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def clean_env() -> Iterator[None]:
    """Run with the error-display environment variables unset."""
    names = ('TASQ_FORCE_COLOR', 'NO_COLOR', 'TASQ_VERBOSE', 'TASQ_PLAIN_ERRORS')
    with mock.patch.dict(os.environ):
        for name in names:
            os.environ.pop(name, None)
        yield


# =============================================================================
# SourceLocation Tests
# =============================================================================


class TestSourceLocation:
    def test_format_short(self) -> None:
        loc = SourceLocation(file='/path/to/file.py', line=42)
        assert loc.format_short() == '/path/to/file.py:42'

    def test_get_source_line_existing_file(self) -> None:
        with tempfile.NamedTemporaryFile(mode='w', suffix='.py', delete=False) as f:
            f.write('line 1\n')
            f.write('line 2\n')
            temp_path = f.name

        try:
            assert SourceLocation(file=temp_path, line=2).get_source_line() == 'line 2'
        finally:
            os.unlink(temp_path)

    def test_get_source_line_nonexistent_file(self) -> None:
        assert SourceLocation(file='/nonexistent/path.py', line=1).get_source_line() is None

    def test_from_frame(self) -> None:
        frame = inspect.currentframe()
        assert frame is not None
        loc = SourceLocation.from_frame(frame)
        assert loc.file.endswith('test_errors.py')
        assert loc.line > 0


# =============================================================================
# TasqError Tests
# =============================================================================


class TestTasqError:
    def test_basic_creation(self) -> None:
        err = TasqError(message='something went wrong')
        assert err.message == 'something went wrong'
        assert err.code is None
        assert err.notes == []
        assert err.help_text is None

    def test_exception_args_contains_message(self) -> None:
        assert TasqError(message='msg').args == ('msg',)

    def test_notes_and_help_fields(self) -> None:
        err = TasqError(message='error', notes=['note 1', 'note 2'], help_text='fix')
        assert err.notes == ['note 1', 'note 2']
        assert err.help_text == 'fix'

    def test_auto_location_points_at_caller(self) -> None:
        err = TasqError(message='auto-located')
        assert err.location is not None
        assert err.location.file.endswith('test_errors.py')

    def test_format_with_code(self) -> None:
        err = TaskValidationError(
            message='queue name must not be empty',
            code=ErrorCode.TASK_INVALID_QUEUE,
        )
        formatted = err.format_rust_style(use_colors=False)
        assert 'error[E101]: queue name must not be empty' in formatted

    def test_format_with_location_shows_source(self) -> None:
        err = TasqError(message='located')
        formatted = err.format_rust_style(use_colors=False)
        assert '-->' in formatted
        assert "TasqError(message='located')" in formatted
        assert '^' in formatted

    def test_format_notes_and_help(self) -> None:
        err = TasqError(
            message='bad',
            notes=['first\nsecond'],
            help_text='do this',
            location=SourceLocation(file='/nonexistent.py', line=1),
        )
        formatted = err.format_rust_style(use_colors=False)
        assert '= note: first' in formatted
        assert 'second' in formatted
        assert 'help' in formatted
        assert 'do this' in formatted

    def test_colors_only_when_requested(self) -> None:
        err = TasqError(message='x')
        assert '\033[' in err.format_rust_style(use_colors=True)
        assert '\033[' not in err.format_rust_style(use_colors=False)

    def test_str_is_plain(self) -> None:
        assert '\033[' not in str(TasqError(message='x'))

    def test_subclasses(self) -> None:
        assert isinstance(ConfigurationError(message='c'), TasqError)
        assert isinstance(TaskValidationError(message='t'), TasqError)


# =============================================================================
# Environment flags
# =============================================================================


class TestEnvFlags:
    def test_force_color_wins(self, clean_env: None) -> None:
        os.environ['TASQ_FORCE_COLOR'] = '1'
        os.environ['NO_COLOR'] = '1'
        assert _should_use_colors() is True

    def test_no_color_disables(self, clean_env: None) -> None:
        os.environ['NO_COLOR'] = ''
        assert _should_use_colors() is False

    def test_non_tty_has_no_colors(self, clean_env: None) -> None:
        with mock.patch.object(sys, 'stderr', StringIO()):
            assert _should_use_colors() is False

    def test_verbose_and_plain_flags(self, clean_env: None) -> None:
        assert _should_show_verbose() is False
        assert _should_use_plain_errors() is False
        os.environ['TASQ_VERBOSE'] = 'true'
        os.environ['TASQ_PLAIN_ERRORS'] = 'yes'
        assert _should_show_verbose() is True
        assert _should_use_plain_errors() is True


# =============================================================================
# Excepthook
# =============================================================================


class TestExcepthook:
    def test_install(self) -> None:
        original = sys.excepthook
        try:
            install_error_handler()
            assert sys.excepthook is _tasq_excepthook
        finally:
            sys.excepthook = original

    def test_tasq_error_rendered(self, clean_env: None) -> None:
        err = TasqError(message='rendered', code=ErrorCode.TASK_EMPTY_TYPE_NAME)
        stderr = StringIO()
        with mock.patch.object(sys, 'stderr', stderr):
            _tasq_excepthook(TasqError, err, None)
        assert 'error[E100]: rendered' in stderr.getvalue()

    def test_verbose_adds_traceback(self, clean_env: None) -> None:
        os.environ['TASQ_VERBOSE'] = '1'
        err = TasqError(message='rendered')
        stderr = StringIO()
        with mock.patch.object(sys, 'stderr', stderr):
            _tasq_excepthook(TasqError, err, None)
        assert 'Full traceback (TASQ_VERBOSE=1)' in stderr.getvalue()

    def test_other_exceptions_delegated(self) -> None:
        exc = ValueError('plain')
        with mock.patch('tasq.core.errors._original_excepthook') as original:
            _tasq_excepthook(ValueError, exc, None)
        original.assert_called_once_with(ValueError, exc, None)

    def test_plain_errors_delegated(self, clean_env: None) -> None:
        os.environ['TASQ_PLAIN_ERRORS'] = '1'
        err = TasqError(message='x')
        with mock.patch('tasq.core.errors._original_excepthook') as original:
            _tasq_excepthook(TasqError, err, None)
        original.assert_called_once()


# =============================================================================
# Error collection
# =============================================================================


class TestErrorCodes:
    def test_config_codes_are_contiguous(self) -> None:
        config_codes = sorted(c.value for c in ErrorCode if c.value.startswith('E2'))
        assert config_codes == ['E200', 'E201', 'E202']


class TestRaiseCollected:
    def test_empty_report_returns(self) -> None:
        raise_collected(ValidationReport('phase'))

    def test_single_error_raised_as_is(self) -> None:
        report = ValidationReport('phase')
        err = TaskValidationError(message='one')
        report.add(err)

        with pytest.raises(TaskValidationError) as exc_info:
            raise_collected(report)

        assert exc_info.value is err

    def test_several_errors_grouped(self) -> None:
        report = ValidationReport('phase')
        report.add(TaskValidationError(message='one'))
        report.add(ConfigurationError(message='two'))

        with pytest.raises(MultipleValidationErrors) as exc_info:
            raise_collected(report)

        text = str(exc_info.value)
        assert 'one' in text
        assert 'two' in text
        assert 'aborting due to 2 previous errors' in text
        assert exc_info.value.report is report


class TestFindUserFrame:
    def test_returns_test_frame(self) -> None:
        frame = _find_user_frame()
        assert frame is not None
        assert frame.f_code.co_filename.endswith('test_errors.py')
