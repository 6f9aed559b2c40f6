"""Immutable cursor infrastructure for incremental parsing.

Implements the immutable cursor pattern over an append-only token buffer.
Python 3.13+. Zero external dependencies.

Design Philosophy:
    - TokenBuffer is append-only and owned by one stream (one session)
    - Cursor is an immutable snapshot (frozen dataclass) of that buffer
    - Every advance() returns NEW cursor (prevents infinite loops)
    - Checkpoints are cursors or marks: O(1), the buffer is never copied
    - End of stream is a flag on the snapshot, not a sentinel token

Snapshots:
    A cursor records how many tokens it can see (``end``) and whether the
    producer has asserted end of stream (``eos``). Appending to the buffer
    never changes an existing cursor, so a parser invoked on a cursor always
    observes the same input. The retry protocol is the only code that moves
    a cursor onto newer data, through ``rebase()``.

Token Types:
    - bytes / bytearray input: tokens are ints (0-255), slices are bytes
    - str input: tokens are one-character strings, slices are str
    - any other sequence: tokens are its items, slices are tuples

Pattern Reference:
    - Rust chomp parser combinator library
    - Haskell attoparsec
    - Haskell Parsec
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from chompy.constants import DEFAULT_NEEDED, MAX_BUFFER_SIZE, MAX_DISPLAYED_TOKENS
from chompy.diagnostics import (
    BufferClosedError,
    BufferKindError,
    BufferLimitExceededError,
    CursorInvariantError,
    Diagnostic,
    ErrorTemplate,
    StaleMarkError,
)
from chompy.syntax.result import Done, Error, Incomplete, ParseError, ParseResult

__all__ = ["Cursor", "LineOffsetCache", "Mark", "TokenBuffer"]

_BYTES = "bytes"
_STR = "str"
_SEQUENCE = "sequence"


def _kind_of(chunk: Sequence[Any]) -> str:
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return _BYTES
    if isinstance(chunk, str):
        return _STR
    return _SEQUENCE


class TokenBuffer[T]:
    """Append-only token storage for one stream.

    The buffer is the only mutable object in the engine. It is owned by a
    single parsing session; appends must be serialized by the caller.

    Every append, discard or close increments ``generation``. Cursors and
    marks are tied to the generation they were created on.

    Positions are absolute stream offsets. discard() drops tokens that are
    no longer reachable; ``base`` is then the offset of the oldest token
    held, and max_size bounds only the held tokens.

    Example:
        >>> buffer = TokenBuffer(b"ab")
        >>> buffer.append(b"c")
        1
        >>> len(buffer), buffer.closed
        (3, False)
        >>> buffer.close()
        >>> buffer.cursor().remaining
        3
    """

    __slots__ = ("_base", "_closed", "_data", "_generation", "_kind", "max_size")

    def __init__(
        self,
        initial: Sequence[T] | None = None,
        *,
        closed: bool = False,
        max_size: int = MAX_BUFFER_SIZE,
    ) -> None:
        """Create a buffer, optionally seeded with initial tokens.

        Args:
            initial: Initial tokens. The first non-empty chunk fixes the kind.
            closed: Assert end of stream immediately (complete input)
            max_size: Maximum number of tokens the buffer may hold

        Raises:
            BufferLimitExceededError: If initial exceeds max_size
        """
        self.max_size = max_size
        self._kind: str | None = None
        self._data: Any = None
        self._base = 0
        self._generation = 0
        self._closed = False
        if initial is not None and (len(initial) > 0 or not isinstance(initial, (list, tuple))):
            self._set_kind(initial)
            self._extend(initial)
        if closed:
            self._closed = True

    def _set_kind(self, chunk: Sequence[Any]) -> None:
        self._kind = _kind_of(chunk)
        self._data = bytearray() if self._kind == _BYTES else []

    def _extend(self, chunk: Sequence[Any]) -> None:
        size = len(self._data) + len(chunk)
        if size > self.max_size:
            raise BufferLimitExceededError(
                ErrorTemplate.buffer_limit_exceeded(size, self.max_size)
            )
        self._data.extend(chunk)

    @property
    def kind(self) -> str | None:
        """Storage kind: "bytes", "str", "sequence", or None before any data."""
        return self._kind

    @property
    def closed(self) -> bool:
        """True once end of stream has been asserted."""
        return self._closed

    @property
    def generation(self) -> int:
        """Number of appends, discards and closes performed so far."""
        return self._generation

    @property
    def base(self) -> int:
        """Offset of the oldest token still held."""
        return self._base

    @property
    def held(self) -> int:
        """Number of tokens currently held (len(self) - base)."""
        return 0 if self._data is None else len(self._data)

    def __len__(self) -> int:
        """Total tokens ever appended: the end offset of the stream so far."""
        return self._base + self.held

    def append(self, chunk: Sequence[T]) -> int:
        """Append tokens to the end of the buffer.

        Empty chunks are ignored and do not bump the generation.

        Args:
            chunk: Tokens to append, of the same kind as the buffered data

        Returns:
            Number of tokens appended

        Raises:
            BufferClosedError: If end of stream was already asserted
            BufferKindError: If chunk is incompatible with the buffered data
            BufferLimitExceededError: If the buffer would exceed max_size
        """
        if self._closed:
            raise BufferClosedError(ErrorTemplate.buffer_closed())
        if len(chunk) == 0:
            return 0
        if self._kind is None:
            self._set_kind(chunk)
        elif _kind_of(chunk) != self._kind:
            raise BufferKindError(
                ErrorTemplate.buffer_kind_mismatch(self._kind, type(chunk).__name__)
            )
        self._extend(chunk)
        self._generation += 1
        return len(chunk)

    def close(self) -> None:
        """Assert that no further tokens will ever arrive. Idempotent."""
        if not self._closed:
            self._closed = True
            self._generation += 1

    def discard(self, upto: int) -> int:
        """Drop every held token before offset upto.

        Cursors and marks taken before the discard must not be used to read
        the dropped range. A non-empty discard bumps the generation.

        Args:
            upto: Absolute offset of the first token to keep

        Returns:
            Number of tokens dropped

        Raises:
            CursorInvariantError: If upto is before base or past the end
        """
        if not self._base <= upto <= len(self):
            raise CursorInvariantError(ErrorTemplate.tokens_discarded(upto, self._base))
        dropped = upto - self._base
        if dropped == 0:
            return 0
        del self._data[:dropped]
        self._base = upto
        self._generation += 1
        return dropped

    def cursor(self, pos: int | None = None) -> Cursor[T]:
        """Snapshot the buffer's current state as a cursor at pos.

        Args:
            pos: Absolute position, defaulting to base

        Raises:
            CursorInvariantError: If pos is outside the held range
        """
        end = len(self)
        if pos is None:
            pos = self._base
        elif pos < self._base:
            raise CursorInvariantError(ErrorTemplate.tokens_discarded(pos, self._base))
        elif pos > end:
            raise CursorInvariantError(ErrorTemplate.cursor_out_of_bounds(0, pos, end))
        return Cursor(self, pos, end, self._closed, self._generation)

    def token_at(self, index: int) -> T:
        """Return the token at absolute index (no bounds beyond the list's own)."""
        return self._data[index - self._base]  # type: ignore[no-any-return]

    def slice(self, start: int, end: int) -> Any:
        """Return tokens [start, end) as bytes, str or tuple.

        The result is a copy of the requested range only; the buffer itself
        is never copied.

        Raises:
            CursorInvariantError: If start is before base
        """
        if start < self._base:
            raise CursorInvariantError(ErrorTemplate.tokens_discarded(start, self._base))
        start -= self._base
        end -= self._base
        if self._kind == _BYTES:
            return bytes(self._data[start:end])
        if self._kind == _STR:
            return "".join(self._data[start:end])
        if self._kind == _SEQUENCE:
            return tuple(self._data[start:end])
        return ()

    def empty(self) -> Any:
        """Return an empty slice of this buffer's kind."""
        return self.slice(self._base, self._base)

    def describe(self, token: T) -> str:
        """Render a single token for error messages."""
        if self._kind == _BYTES and isinstance(token, int) and 0 <= token <= 0xFF:
            return repr(bytes((token,)))
        return repr(token)

    def describe_tokens(self, tokens: Sequence[T]) -> str:
        """Render a token sequence for error messages, truncated."""
        shown = tokens[:MAX_DISPLAYED_TOKENS]
        suffix = "..." if len(tokens) > MAX_DISPLAYED_TOKENS else ""
        if isinstance(shown, (bytes, bytearray, memoryview)):
            return repr(bytes(shown)) + suffix
        if isinstance(shown, str):
            return repr(shown) + suffix
        return repr(tuple(shown)) + suffix


@dataclass(frozen=True, slots=True)
class Mark:
    """O(1) checkpoint of a cursor position.

    Attributes:
        pos: Token offset of the checkpoint
        generation: Buffer generation the mark belongs to
        buffer: The buffer the mark was taken on
    """

    pos: int
    generation: int
    buffer: TokenBuffer[Any] = field(repr=False)


@dataclass(frozen=True, slots=True)
class Cursor[T]:
    """Immutable snapshot of a position in a token buffer.

    Key Design Decisions:
        1. Frozen dataclass - Immutability enforced by Python
        2. Slots - Memory efficiency (cursors are created per token)
        3. Structural sharing - Every cursor references the same buffer
        4. End of stream is a flag - Not a return value
        5. Running out of buffered data is an Incomplete result, not an error

    Attributes:
        buffer: The shared token buffer
        pos: Read position (0 <= pos <= end)
        end: Number of tokens visible to this snapshot
        eos: True if end of stream was asserted when the snapshot was taken
        generation: Buffer generation of this snapshot

    Example:
        >>> cursor = Cursor.from_tokens("hello")
        >>> cursor.current
        'h'
        >>> new_cursor = cursor.advance()
        >>> new_cursor.current
        'e'
        >>> cursor.current  # Original unchanged (immutability)
        'h'
    """

    buffer: TokenBuffer[T]
    pos: int
    end: int
    eos: bool
    generation: int

    @classmethod
    def from_tokens(cls, tokens: Sequence[T], *, eos: bool = True) -> Cursor[T]:
        """Create a cursor at position 0 over a fresh buffer.

        Args:
            tokens: Initial tokens
            eos: Assert end of stream (True for complete input)
        """
        return TokenBuffer(tokens, closed=eos, max_size=max(len(tokens), MAX_BUFFER_SIZE)).cursor()

    def is_end_of_stream(self) -> bool:
        """True only after the caller explicitly asserted no further data."""
        return self.eos

    @property
    def remaining(self) -> int:
        """Number of buffered tokens not yet consumed."""
        return self.end - self.pos

    @property
    def at_end(self) -> bool:
        """True if no buffered token remains (more may still arrive)."""
        return self.pos >= self.end

    @property
    def current(self) -> T:
        """Get the current token.

        Raises:
            CursorInvariantError: If no token is buffered at this position

        Note:
            Use peek() when the caller must handle Incomplete and end of
            stream. current is for code that already checked at_end.
        """
        if self.pos >= self.end:
            raise CursorInvariantError(ErrorTemplate.cursor_no_token(self.pos))
        return self.buffer.token_at(self.pos)

    def peek(self) -> ParseResult[T, T]:
        """Return the next token without advancing.

        Returns:
            Done(token, self) if a token is buffered,
            Incomplete if nothing is buffered and end of stream is unknown,
            Error(UNEXPECTED_END_OF_INPUT) at confirmed end of stream.
        """
        if self.pos < self.end:
            return Done(self.buffer.token_at(self.pos), self)
        if self.eos:
            return self.fail(ErrorTemplate.unexpected_end_of_input((), self.pos))
        return self.suspend(lambda fresh: self.rebase(fresh).peek())

    def advance(self, count: int = 1) -> Cursor[T]:
        """Return new cursor advanced by count positions.

        Raises:
            CursorInvariantError: If count is negative or exceeds the
                buffered tokens. This is a bug in the calling parser, not
                a recoverable parse error.
        """
        new_pos = self.pos + count
        if count < 0 or new_pos > self.end:
            raise CursorInvariantError(
                ErrorTemplate.cursor_out_of_bounds(self.pos, count, self.end)
            )
        return Cursor(self.buffer, new_pos, self.end, self.eos, self.generation)

    def consume_while(self, predicate: Callable[[T], bool]) -> ParseResult[T, Any]:
        """Advance past a maximal run of tokens satisfying predicate.

        Returns:
            Done(slice, cursor) with the (possibly empty) run, or Incomplete
            if the run reaches the end of buffered data before end of stream
            is asserted. The run is never truncated at a buffer boundary.

        Note:
            The continuation resumes scanning where it stalled, so a run
            delivered in many chunks is scanned once in total.
        """
        return self._consume_from(self.pos, predicate)

    def _consume_from(self, scan_pos: int, predicate: Callable[[T], bool]) -> ParseResult[T, Any]:
        buffer = self.buffer
        end = self.end
        i = scan_pos
        while i < end and predicate(buffer.token_at(i)):
            i += 1
        if i == end and not self.eos:
            stalled = i
            return self.suspend(
                lambda fresh: self.rebase(fresh)._consume_from(stalled, predicate),
                position=stalled,
            )
        return Done(buffer.slice(self.pos, i), self._at(i))

    def mark(self) -> Mark:
        """Take an O(1) checkpoint of the current position."""
        return Mark(self.pos, self.generation, self.buffer)

    def restore(self, mark: Mark) -> Cursor[T]:
        """Return a cursor at the marked position.

        Raises:
            StaleMarkError: If the mark belongs to another buffer or
                another generation
        """
        if mark.buffer is not self.buffer:
            raise StaleMarkError(ErrorTemplate.mark_foreign_buffer(mark.pos))
        if mark.generation != self.generation:
            raise StaleMarkError(ErrorTemplate.stale_mark(mark.generation, self.generation))
        return self._at(mark.pos)

    def rebase(self, fresh: Cursor[T]) -> Cursor[T]:
        """Move this position onto a newer snapshot of the same buffer.

        Used by continuations when the retry protocol resumes them.

        Raises:
            CursorInvariantError: If fresh belongs to another buffer or an
                older generation
        """
        if fresh.buffer is not self.buffer or fresh.generation < self.generation:
            raise CursorInvariantError(ErrorTemplate.cursor_foreign_buffer(self.pos))
        return Cursor(self.buffer, self.pos, fresh.end, fresh.eos, fresh.generation)

    def _at(self, pos: int) -> Cursor[T]:
        return Cursor(self.buffer, pos, self.end, self.eos, self.generation)

    def slice_to(self, end_pos: int) -> Any:
        """Extract tokens from current position to end_pos (exclusive)."""
        return self.buffer.slice(self.pos, min(end_pos, self.end))

    def slice_ahead(self, n: int) -> Any:
        """Get up to n buffered tokens without advancing."""
        return self.buffer.slice(self.pos, min(self.pos + n, self.end))

    def fail(self, diagnostic: Diagnostic) -> Error[T]:
        """Build an Error result at this cursor from a Diagnostic."""
        return Error(ParseError.from_diagnostic(diagnostic), self)

    def suspend(
        self,
        resume: Callable[[Cursor[T]], ParseResult[T, Any]],
        *,
        needed: int = DEFAULT_NEEDED,
        position: int | None = None,
    ) -> Incomplete[T, Any]:
        """Build an Incomplete result stalled at this cursor."""
        at = self.pos if position is None else position
        return Incomplete(max(needed, DEFAULT_NEEDED), resume, at)

    def compute_line_col(self) -> tuple[int, int]:
        """Compute line and column for current position.

        Returns:
            (line, column) tuple (1-indexed). For token streams that are not
            bytes or str there are no lines: (1, pos + 1). Once tokens were
            discarded, lines are counted from the oldest held token.

        Performance:
            O(n) where n = current position.
            Only call for error reporting, not during normal parsing!
        """
        if self.buffer.kind not in (_BYTES, _STR):
            return (1, self.pos + 1)
        base = self.buffer.base
        return LineOffsetCache(self.buffer.slice(base, self.end)).get_line_col(self.pos - base)


class LineOffsetCache:
    """Cached line offset computation for efficient position lookups.

    Precomputes line start offsets in O(n) single pass, then provides
    O(log n) lookups using binary search. Works on str and bytes; the line
    delimiter is LF (CRLF works because the LF is still present).

    Example:
        >>> cache = LineOffsetCache("line1\\nline2\\nline3")
        >>> cache.get_line_col(0)   # Start of line 1
        (1, 1)
        >>> cache.get_line_col(8)   # Third char of line 2
        (2, 3)

    Thread Safety:
        Thread-safe. Internal state is only set during __init__.
    """

    __slots__ = ("_offsets", "_source_len")

    def __init__(self, source: str | bytes) -> None:
        """Build line offset cache from source.

        Complexity:
            O(n) where n = len(source)
        """
        newline: str | bytes = "\n" if isinstance(source, str) else b"\n"
        offsets = [0]
        index = source.find(newline)  # type: ignore[arg-type]
        while index != -1:
            offsets.append(index + 1)
            index = source.find(newline, index + 1)  # type: ignore[arg-type]
        self._offsets: tuple[int, ...] = tuple(offsets)
        self._source_len = len(source)

    def get_line_col(self, pos: int) -> tuple[int, int]:
        """Get line and column for position using binary search.

        Complexity:
            O(log n) where n = number of lines
        """
        pos = max(0, min(pos, self._source_len))

        # Line number = index of largest offset <= pos
        left, right = 0, len(self._offsets) - 1
        while left < right:
            mid = (left + right + 1) // 2
            if self._offsets[mid] <= pos:
                left = mid
            else:
                right = mid - 1

        return (left + 1, pos - self._offsets[left] + 1)
