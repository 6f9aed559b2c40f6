"""Syntax layer: cursors, parse results and parser combinators.

The ascii helpers live in ``chompy.syntax.parser.ascii`` and are imported
from there explicitly.
"""

from chompy.syntax.cursor import Cursor, LineOffsetCache, Mark, TokenBuffer
from chompy.syntax.result import Done, Error, Incomplete, ParseError, ParseResult

__all__ = [
    "Cursor",
    "Done",
    "Error",
    "Incomplete",
    "LineOffsetCache",
    "Mark",
    "ParseError",
    "ParseResult",
    "TokenBuffer",
]
