"""Parse result algebra: Done, Error and Incomplete.

Every parser returns exactly one of three immutable variants:

    Done(value, cursor)         the parser succeeded; cursor is advanced
    Error(error, cursor)        the parser failed at error.position
    Incomplete(needed, resume)  the parser cannot decide without more input

Incomplete is a first-class outcome, not an exception. It propagates through
composition exactly like Error. A combinator that receives an Incomplete
from a sub-parser returns a new Incomplete whose ``resume`` first resumes the
sub-parser and then finishes the combinator's own work, so resumption
continues from where the parse stalled instead of starting over.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Never

from chompy.constants import MAX_ERROR_CONTEXT_LABELS
from chompy.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    ErrorTemplate,
    IncompleteInputError,
    ParseFailedError,
    SourceSpan,
)
from chompy.enums import ErrorKind

if TYPE_CHECKING:
    from chompy.syntax.cursor import Cursor

__all__ = ["Done", "Error", "Incomplete", "ParseError", "ParseResult"]


# Kinds whose message is derived from the expectation set; merging two
# errors of these kinds re-renders the message with the combined set.
_RENDERERS: dict[ErrorKind, Callable[[tuple[str, ...], str, int], Diagnostic]] = {
    ErrorKind.TOKEN_MISMATCH: ErrorTemplate.token_mismatch,
    ErrorKind.PREDICATE_FAILED: ErrorTemplate.predicate_failed,
    ErrorKind.UNEXPECTED_END_OF_INPUT: (
        lambda expected, _actual, position: ErrorTemplate.unexpected_end_of_input(
            expected, position
        )
    ),
}


@dataclass(frozen=True, slots=True)
class ParseError:
    """Parse error value with location and context.

    Design:
        - Plain value, never raised inside combinators
        - Position is the token offset of the first failure
        - Labels form the error context stack, innermost first
        - Immutable for error chaining

    Attributes:
        kind: Error category
        position: Token offset where the failure occurred
        message: Human-readable description
        expected: Rendered expectations at the position
        actual: Rendered token found at the position (None if not applicable)
        labels: Context stack of named parsers, innermost label first
        hint: Suggestion for fixing the error

    Example:
        >>> error = ParseError(ErrorKind.TOKEN_MISMATCH, 0, "Expected 'a', found 'b'")
        >>> error.with_label("greeting").labels
        ('greeting',)
    """

    kind: ErrorKind
    position: int
    message: str
    expected: tuple[str, ...] = ()
    actual: str | None = None
    labels: tuple[str, ...] = ()
    hint: str | None = None

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic) -> ParseError:
        """Build a ParseError from a parse-error Diagnostic template."""
        return cls(
            kind=ErrorKind[diagnostic.code.name],
            position=diagnostic.position or 0,
            message=diagnostic.message,
            expected=diagnostic.expected or (),
            actual=diagnostic.received,
            hint=diagnostic.hint,
        )

    def with_label(self, label: str) -> ParseError:
        """Return a copy with label pushed as the outermost context.

        The stack is bounded by MAX_ERROR_CONTEXT_LABELS; outer labels past
        the bound are dropped.
        """
        if len(self.labels) >= MAX_ERROR_CONTEXT_LABELS:
            return self
        return replace(self, labels=(*self.labels, label))

    def merge(self, other: ParseError) -> ParseError:
        """Combine the errors of two failed alternatives.

        The error that got further wins. At the same position the
        expectation sets are merged and the message re-rendered.
        """
        if other.position != self.position:
            return other if other.position > self.position else self
        renderer = _RENDERERS.get(other.kind)
        if renderer is None or not self.expected or not other.expected:
            return other
        expected = tuple(dict.fromkeys((*self.expected, *other.expected)))
        diagnostic = renderer(expected, other.actual or "", other.position)
        return replace(other, message=diagnostic.message, expected=expected)

    def to_diagnostic(self, source: str | bytes | None = None) -> Diagnostic:
        """Convert to a Diagnostic, with line and column when source is given.

        Args:
            source: The parsed text (str or bytes), for line:column spans
        """
        span = None
        if source is not None:
            from chompy.syntax.cursor import LineOffsetCache  # noqa: PLC0415 - circular

            line, column = LineOffsetCache(source).get_line_col(self.position)
            span = SourceSpan(self.position, self.position, line, column)
        return Diagnostic(
            code=DiagnosticCode.for_kind(self.kind),
            message=self.message,
            span=span,
            position=self.position,
            hint=self.hint,
            expected=self.expected or None,
            received=self.actual,
            context=self.labels or None,
        )

    def format_error(self, source: str | bytes | None = None) -> str:
        """Format error with location and context stack.

        Example:
            >>> error = ParseError(ErrorKind.TOKEN_MISMATCH, 7, "Expected ']'")
            >>> error.format_error("hello\\nworld")
            "2:2: Expected ']'"
            >>> error.with_label("list").format_error()
            "position 7: Expected ']' (in list)"
        """
        if source is None:
            location = f"position {self.position}"
        else:
            from chompy.syntax.cursor import LineOffsetCache  # noqa: PLC0415 - circular

            line, col = LineOffsetCache(source).get_line_col(self.position)
            location = f"{line}:{col}"
        error_msg = f"{location}: {self.message}"
        if self.labels:
            error_msg += f" (in {' <- '.join(self.labels)})"
        return error_msg

    def format_with_context(self, source: str | bytes, context_lines: int = 2) -> str:
        """Format error with source context and pointer.

        Shows the problematic line and a caret pointing to the error location.

        Example:
            >>> source = "a = 1\\nb = ?\\nc = 3"
            >>> error = ParseError(ErrorKind.PREDICATE_FAILED, 10, "Expected digit")
            >>> print(error.format_with_context(source))
            2:5: Expected digit
            <BLANKLINE>
               1 | a = 1
               2 | b = ?
                 |     ^
               3 | c = 3
        """
        from chompy.syntax.cursor import LineOffsetCache  # noqa: PLC0415 - circular

        text = source if isinstance(source, str) else source.decode("utf-8", "replace")
        line, col = LineOffsetCache(source).get_line_col(self.position)
        lines = text.split("\n")

        result_lines = [self.format_error(source), ""]

        start_line = max(1, line - context_lines)
        end_line = min(len(lines), line + context_lines)

        for i in range(start_line, end_line + 1):
            line_num_str = f"{i:4} | "
            result_lines.append(line_num_str + lines[i - 1])
            if i == line:
                pointer = " " * (len(line_num_str) - 2) + "| " + " " * (col - 1) + "^"
                result_lines.append(pointer)

        return "\n".join(result_lines)


def _source_of(cursor: Cursor[Any]) -> str | bytes | None:
    if cursor.buffer.kind in ("bytes", "str") and cursor.buffer.base == 0:
        return cursor.buffer.slice(0, cursor.end)  # type: ignore[no-any-return]
    return None


@dataclass(frozen=True, slots=True)
class Done[T, V]:
    """Successful parse: the value and the advanced cursor.

    Example:
        >>> cursor = Cursor.from_tokens("hello")
        >>> result = Done("h", cursor.advance())
        >>> result.value, result.cursor.pos
        ('h', 1)
    """

    value: V
    cursor: Cursor[T]

    @property
    def is_done(self) -> bool:
        return True

    @property
    def is_error(self) -> bool:
        return False

    @property
    def is_incomplete(self) -> bool:
        return False

    @property
    def position(self) -> int:
        """Position after the parsed value."""
        return self.cursor.pos

    def map[U](self, transform: Callable[[V], U]) -> Done[T, U]:
        return Done(transform(self.value), self.cursor)

    def then[U](
        self, factory: Callable[[V], Callable[[Cursor[T]], ParseResult[T, U]]]
    ) -> ParseResult[T, U]:
        """Feed the value into factory and run the parser it returns."""
        return factory(self.value)(self.cursor)

    def labelled(self, label: str) -> Done[T, V]:
        return self

    def unwrap(self) -> V:
        return self.value


@dataclass(frozen=True, slots=True)
class Error[T]:
    """Failed parse: the error value and the cursor at the failure point."""

    error: ParseError
    cursor: Cursor[T]

    @property
    def is_done(self) -> bool:
        return False

    @property
    def is_error(self) -> bool:
        return True

    @property
    def is_incomplete(self) -> bool:
        return False

    @property
    def position(self) -> int:
        """Token offset of the first failure."""
        return self.error.position

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def map(self, transform: Callable[[Any], Any]) -> Error[T]:
        return self

    def then(self, factory: Callable[[Any], Any]) -> Error[T]:
        return self

    def labelled(self, label: str) -> Error[T]:
        return Error(self.error.with_label(label), self.cursor)

    def to_diagnostic(self) -> Diagnostic:
        """Diagnostic with line and column for bytes and str input."""
        return self.error.to_diagnostic(_source_of(self.cursor))

    def format_error(self) -> str:
        return self.error.format_error(_source_of(self.cursor))

    def unwrap(self) -> Never:
        """Raise ParseFailedError carrying this error."""
        raise ParseFailedError(self.to_diagnostic(), self.error)


@dataclass(frozen=True, slots=True)
class Incomplete[T, V]:
    """Undecided parse: more input is required.

    Attributes:
        needed: Non-binding minimum number of further tokens (>= 1)
        resume: Continuation. Call it with any cursor of a newer generation
            of the same buffer; it re-attempts the parse from where it
            stalled and returns a new ParseResult.
        position: Token offset where the parse stalled
    """

    needed: int
    resume: Callable[[Cursor[T]], ParseResult[T, V]]
    position: int = 0

    def __post_init__(self) -> None:
        """Validate Incomplete invariants.

        Raises:
            ValueError: If needed is less than 1
        """
        if self.needed < 1:
            msg = f"Incomplete.needed must be >= 1, got {self.needed}"
            raise ValueError(msg)

    @property
    def is_done(self) -> bool:
        return False

    @property
    def is_error(self) -> bool:
        return False

    @property
    def is_incomplete(self) -> bool:
        return True

    def wrap[U](self, resume: Callable[[Cursor[T]], ParseResult[T, U]]) -> Incomplete[T, U]:
        """Same hint and position, new continuation."""
        return Incomplete(self.needed, resume, self.position)

    def map[U](self, transform: Callable[[V], U]) -> Incomplete[T, U]:
        return self.wrap(lambda fresh: self.resume(fresh).map(transform))

    def then[U](
        self, factory: Callable[[V], Callable[[Cursor[T]], ParseResult[T, U]]]
    ) -> Incomplete[T, U]:
        return self.wrap(lambda fresh: self.resume(fresh).then(factory))

    def labelled(self, label: str) -> Incomplete[T, V]:
        return self.wrap(lambda fresh: self.resume(fresh).labelled(label))

    def unwrap(self) -> Never:
        """Raise IncompleteInputError; there is no value yet."""
        raise IncompleteInputError(ErrorTemplate.incomplete_input(self.needed), self.needed)


type ParseResult[T, V] = Done[T, V] | Error[T] | Incomplete[T, V]
