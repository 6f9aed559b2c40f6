"""Parser combinators.

Module Organization:
- core.py: Parser type, monadic core (bind, map_, or_, label) and sequencing
- primitives.py: Single-token and token-run parsers over a cursor
- repetition.py: Loop-based repetition (many, sep_by, count, many_till)
- ascii.py: ASCII predicates and number parsers for bytes and str input

Every parser is a callable ``Cursor -> ParseResult``; ``Parser`` adds a
name and operator sugar (``|``, ``>>``, ``<<``, ``+``).
"""

from chompy.syntax.parser.core import (
    Forward,
    Left,
    Parser,
    ParserFn,
    Right,
    bind,
    choice,
    continue_with,
    either,
    fail,
    label,
    lazy,
    look_ahead,
    map_,
    matched_by,
    or_,
    parser_name,
    seq,
    skip,
    succeed,
    then,
)
from chompy.syntax.parser.primitives import (
    any_token,
    end_of_input,
    not_token,
    peek,
    peek_optional,
    run_scanner,
    satisfy,
    satisfy_with,
    scan,
    skip_while,
    string,
    take,
    take_remainder,
    take_till,
    take_while,
    take_while1,
    token,
)
from chompy.syntax.parser.repetition import (
    count,
    many,
    many1,
    many_till,
    option,
    sep_by,
    sep_by1,
    skip_many,
    skip_many1,
)

__all__ = [
    "Forward",
    "Left",
    "Parser",
    "ParserFn",
    "Right",
    "any_token",
    "bind",
    "choice",
    "continue_with",
    "count",
    "either",
    "end_of_input",
    "fail",
    "label",
    "lazy",
    "look_ahead",
    "many",
    "many1",
    "many_till",
    "map_",
    "matched_by",
    "not_token",
    "option",
    "or_",
    "parser_name",
    "peek",
    "peek_optional",
    "run_scanner",
    "satisfy",
    "satisfy_with",
    "scan",
    "sep_by",
    "sep_by1",
    "seq",
    "skip",
    "skip_many",
    "skip_many1",
    "skip_while",
    "string",
    "succeed",
    "take",
    "take_remainder",
    "take_till",
    "take_while",
    "take_while1",
    "then",
    "token",
]
