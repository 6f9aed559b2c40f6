"""Tests for diagnostic codes, templates, formatting and exceptions."""

from __future__ import annotations

import json

import pytest

from chompy.diagnostics import (
    BufferClosedError,
    ChompError,
    Diagnostic,
    DiagnosticCode,
    DiagnosticFormatter,
    ErrorTemplate,
    OutputFormat,
    ParseFailedError,
    SourceSpan,
    TokenBufferError,
)
from chompy.enums import ErrorKind, SessionState


# ============================================================================
# CODES AND SPANS
# ============================================================================


class TestDiagnosticCode:
    """Test the code table."""

    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_every_kind_has_a_code(self, kind: ErrorKind) -> None:
        """Each parse error kind maps to the code of the same name."""
        assert DiagnosticCode.for_kind(kind).name == kind.name

    def test_code_ranges(self) -> None:
        """Parse errors are 3xxx, contract violations 4xxx."""
        assert 3000 <= DiagnosticCode.TOKEN_MISMATCH.value < 4000
        assert DiagnosticCode.PROTOCOL_VIOLATION.value >= 4000
        assert DiagnosticCode.STALE_MARK.value < 2000

    def test_codes_are_unique(self) -> None:
        values = [code.value for code in DiagnosticCode]

        assert len(values) == len(set(values))


class TestSourceSpan:
    """Test SourceSpan validation."""

    def test_valid(self) -> None:
        span = SourceSpan(start=3, end=4, line=1, column=4)

        assert (span.line, span.column) == (1, 4)

    @pytest.mark.parametrize(
        ("start", "end", "line", "column", "field"),
        [
            (-1, 0, 1, 1, "start"),
            (5, 4, 1, 1, "end"),
            (0, 0, 0, 1, "line"),
            (0, 0, 1, 0, "column"),
        ],
    )
    def test_invalid(self, start: int, end: int, line: int, column: int, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            SourceSpan(start=start, end=end, line=line, column=column)


# ============================================================================
# TEMPLATES
# ============================================================================


class TestTemplates:
    """Test message rendering."""

    def test_token_mismatch_single(self) -> None:
        diagnostic = ErrorTemplate.token_mismatch(("'a'",), "'b'", 0)

        assert diagnostic.code == DiagnosticCode.TOKEN_MISMATCH
        assert diagnostic.message == "Expected 'a', found 'b'"

    def test_token_mismatch_alternatives(self) -> None:
        """Several expectations are joined with commas and 'or'."""
        diagnostic = ErrorTemplate.token_mismatch(("'a'", "'b'", "'c'"), "'d'", 0)

        assert diagnostic.message == "Expected 'a', 'b' or 'c', found 'd'"

    def test_unexpected_end_of_input(self) -> None:
        diagnostic = ErrorTemplate.unexpected_end_of_input(("'b'",), 3)

        assert diagnostic.message == "Unexpected end of input, expected 'b'"
        assert diagnostic.position == 3
        assert diagnostic.hint is not None

    def test_unexpected_end_of_input_without_expectation(self) -> None:
        assert ErrorTemplate.unexpected_end_of_input((), 0).message == "Unexpected end of input"

    def test_empty_repetition(self) -> None:
        diagnostic = ErrorTemplate.empty_repetition(("digit",), 2)

        assert diagnostic.code == DiagnosticCode.EMPTY_REPETITION
        assert diagnostic.message == "Expected at least one digit"

    def test_no_progress(self) -> None:
        diagnostic = ErrorTemplate.no_progress(7)

        assert diagnostic.code == DiagnosticCode.FAILURE
        assert diagnostic.message == "Record parser consumed no input at position 7"
        assert diagnostic.hint is not None

    def test_protocol_violation(self) -> None:
        diagnostic = ErrorTemplate.protocol_violation(5)

        assert diagnostic.code == DiagnosticCode.PROTOCOL_VIOLATION
        assert diagnostic.position == 5

    def test_session_state_invalid(self) -> None:
        diagnostic = ErrorTemplate.session_state_invalid("feed", SessionState.DONE)

        assert diagnostic.message == "Cannot feed a session in state 'done'"

    def test_buffer_limit(self) -> None:
        diagnostic = ErrorTemplate.buffer_limit_exceeded(10, 8)

        assert diagnostic.message == "Buffer size 10 exceeds limit 8"


# ============================================================================
# FORMATTER
# ============================================================================


def _rich_diagnostic() -> Diagnostic:
    return Diagnostic(
        code=DiagnosticCode.UNEXPECTED_END_OF_INPUT,
        message="Unexpected end of input, expected 'b'",
        span=SourceSpan(start=3, end=3, line=1, column=4),
        position=3,
        hint="The stream ended before the grammar was satisfied",
        expected=("'b'",),
        received="end of input",
        context=("header", "request"),
    )


class TestFormatter:
    """Test the output formats."""

    def test_rust_format(self) -> None:
        output = DiagnosticFormatter().format(_rich_diagnostic())

        assert output.split("\n") == [
            "error[UNEXPECTED_END_OF_INPUT]: Unexpected end of input, expected 'b'",
            "  --> line 1, column 4",
            "  = expected: 'b'",
            "  = found: end of input",
            "  = context: header <- request",
            "  = help: The stream ended before the grammar was satisfied",
        ]

    def test_rust_format_position_only(self) -> None:
        """Without a span the token offset is shown."""
        output = DiagnosticFormatter().format(ErrorTemplate.token_mismatch(("'a'",), "'b'", 9))

        assert "  --> position 9" in output.split("\n")

    def test_simple_format(self) -> None:
        formatter = DiagnosticFormatter(output_format=OutputFormat.SIMPLE)

        assert formatter.format(_rich_diagnostic()) == (
            "UNEXPECTED_END_OF_INPUT: Unexpected end of input, expected 'b'"
        )

    def test_json_format(self) -> None:
        formatter = DiagnosticFormatter(output_format=OutputFormat.JSON)
        data = json.loads(formatter.format(_rich_diagnostic()))

        assert data["code"] == "UNEXPECTED_END_OF_INPUT"
        assert data["code_value"] == DiagnosticCode.UNEXPECTED_END_OF_INPUT.value
        assert data["position"] == 3
        assert (data["line"], data["column"]) == (1, 4)
        assert data["expected"] == ["'b'"]
        assert data["context"] == ["header", "request"]

    def test_sanitize_truncates(self) -> None:
        formatter = DiagnosticFormatter(
            output_format=OutputFormat.SIMPLE, sanitize=True, max_content_length=10
        )
        diagnostic = ErrorTemplate.failure("x" * 50, 0)

        assert formatter.format(diagnostic) == "FAILURE: " + "x" * 10 + "..."

    def test_color(self) -> None:
        formatter = DiagnosticFormatter(color=True)

        assert formatter.format(_rich_diagnostic()).startswith("\033[1;31merror\033[0m")

    def test_format_all(self) -> None:
        formatter = DiagnosticFormatter(output_format=OutputFormat.SIMPLE)
        diagnostics = [ErrorTemplate.failure("one", 0), ErrorTemplate.failure("two", 1)]

        assert formatter.format_all(diagnostics) == "FAILURE: one\n\nFAILURE: two"

    def test_diagnostic_format_error(self) -> None:
        """Diagnostic.format_error uses the default formatter."""
        diagnostic = _rich_diagnostic()

        assert diagnostic.format_error() == DiagnosticFormatter().format(diagnostic)
        assert str(diagnostic) == diagnostic.message


# ============================================================================
# EXCEPTIONS
# ============================================================================


class TestExceptions:
    """Test the exception hierarchy."""

    def test_diagnostic_attached(self) -> None:
        error = BufferClosedError(ErrorTemplate.buffer_closed())

        assert isinstance(error, TokenBufferError)
        assert isinstance(error, ChompError)
        assert error.diagnostic is not None
        assert error.diagnostic.code == DiagnosticCode.BUFFER_CLOSED

    def test_plain_message(self) -> None:
        error = ChompError("plain")

        assert error.diagnostic is None
        assert str(error) == "plain"

    def test_parse_failed_error(self) -> None:
        """ParseFailedError carries the ParseError it surfaces."""
        from chompy.syntax.result import ParseError

        parse_error = ParseError.from_diagnostic(ErrorTemplate.failure("boom", 4))
        error = ParseFailedError(parse_error.to_diagnostic(), parse_error)

        assert error.error is parse_error
        assert str(error) == "boom"
