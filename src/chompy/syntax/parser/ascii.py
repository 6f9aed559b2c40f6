"""ASCII helpers for byte and text streams.

Predicates accept one token: an int (a byte from bytes input) or a
one-character str (from str input). Only ASCII code points are classified;
any other token is rejected, so these helpers never depend on Unicode
character properties.
"""

from __future__ import annotations

from typing import Any

from chompy.syntax.cursor import Cursor
from chompy.syntax.parser.core import Parser, ParserFn, bind, map_, or_, parser_name, then
from chompy.syntax.parser.primitives import satisfy, skip_while, take_while1
from chompy.syntax.parser.repetition import option
from chompy.syntax.result import ParseResult

__all__ = [
    "decimal",
    "digit",
    "end_of_line",
    "is_alpha",
    "is_alphanumeric",
    "is_digit",
    "is_end_of_line",
    "is_horizontal_space",
    "is_whitespace",
    "signed",
    "skip_whitespace",
]

_ZERO = 0x30
_NINE = 0x39
_TAB = 0x09
_LF = 0x0A
_CR = 0x0D
_SPACE = 0x20
_PLUS = 0x2B
_MINUS = 0x2D


def _code(tok: Any) -> int:
    """Code point of a token, or -1 if the token is not a byte or character."""
    if isinstance(tok, int):
        return tok
    if isinstance(tok, str) and len(tok) == 1:
        return ord(tok)
    return -1


# ============================================================================
# PREDICATES
# ============================================================================


def is_digit(tok: Any) -> bool:
    """ASCII 0-9."""
    return _ZERO <= _code(tok) <= _NINE


def is_alpha(tok: Any) -> bool:
    """ASCII A-Z or a-z."""
    code = _code(tok) | 0x20  # fold to lowercase
    return 0x61 <= code <= 0x7A


def is_alphanumeric(tok: Any) -> bool:
    return is_digit(tok) or is_alpha(tok)


def is_whitespace(tok: Any) -> bool:
    """Space, tab, LF, vertical tab, form feed or CR."""
    code = _code(tok)
    return code == _SPACE or _TAB <= code <= _CR


def is_horizontal_space(tok: Any) -> bool:
    """Space or tab."""
    code = _code(tok)
    return code in (_SPACE, _TAB)


def is_end_of_line(tok: Any) -> bool:
    """CR or LF."""
    code = _code(tok)
    return code in (_CR, _LF)


# ============================================================================
# PARSERS
# ============================================================================


def skip_whitespace[T]() -> Parser[T, None]:
    """Skip zero or more ASCII whitespace tokens."""
    return Parser(skip_while(is_whitespace), "skip_whitespace")


def digit[T]() -> Parser[T, int]:
    """One ASCII digit, as its integer value."""
    return Parser(map_(satisfy(is_digit, "digit"), lambda tok: _code(tok) - _ZERO), "digit")


def _fold_digits(tokens: Any) -> int:
    value = 0
    for tok in tokens:
        value = value * 10 + _code(tok) - _ZERO
    return value


def decimal[T]() -> Parser[T, int]:
    """One or more ASCII digits, folded into an int.

    Example:
        >>> parse_only(decimal(), b"1024")
        1024
    """
    return Parser(map_(take_while1(is_digit, "digit"), _fold_digits), "decimal")


def _is_sign(tok: Any) -> bool:
    return _code(tok) in (_PLUS, _MINUS)


def signed[T](parser: ParserFn[T, int]) -> Parser[T, int]:
    """Apply an optional leading + or - to the value of a numeric parser.

    Example:
        >>> parse_only_str(signed(decimal()), "-42")
        -42
    """
    sign = option(satisfy(_is_sign, "sign"), None)

    def _apply(sign_token: Any) -> ParserFn[T, int]:
        if sign_token is not None and _code(sign_token) == _MINUS:
            return map_(parser, lambda value: -value)
        return parser

    return Parser(bind(sign, _apply), f"signed({parser_name(parser)})")


def end_of_line[T]() -> Parser[T, None]:
    """CRLF or LF. The value is None."""
    lf = satisfy(lambda tok: _code(tok) == _LF, "'\\n'")
    cr = satisfy(lambda tok: _code(tok) == _CR, "'\\r'")
    line_end = or_(then(cr, lf), lf)

    def _end_of_line(cursor: Cursor[T]) -> ParseResult[T, None]:
        return line_end(cursor).map(lambda _: None)

    return Parser(_end_of_line, "end_of_line")
