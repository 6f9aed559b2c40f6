"""Tests for ASCII predicates and number parsers."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chompy import ParseFailedError, ParseSession, parse_only, parse_only_str, run
from chompy.enums import ErrorKind
from chompy.syntax.parser import token
from chompy.syntax.parser.ascii import (
    decimal,
    digit,
    end_of_line,
    is_alpha,
    is_alphanumeric,
    is_digit,
    is_end_of_line,
    is_horizontal_space,
    is_whitespace,
    signed,
    skip_whitespace,
)
from chompy.syntax.result import Error


class TestPredicates:
    """Predicates classify bytes and characters alike."""

    @pytest.mark.parametrize("tok", ["0", "5", "9", ord("0"), ord("9")])
    def test_is_digit(self, tok: object) -> None:
        assert is_digit(tok)

    @pytest.mark.parametrize("tok", ["a", "/", ":", ord("a"), "١", "12", None])
    def test_is_not_digit(self, tok: object) -> None:
        """Non-ASCII digits and non-tokens are rejected."""
        assert not is_digit(tok)

    def test_is_alpha(self) -> None:
        assert is_alpha("a")
        assert is_alpha("Z")
        assert is_alpha(ord("q"))
        assert not is_alpha("@")
        assert not is_alpha("[")
        assert not is_alpha("é")
        assert not is_alpha("1")

    def test_is_alphanumeric(self) -> None:
        assert is_alphanumeric("a")
        assert is_alphanumeric("7")
        assert not is_alphanumeric("_")

    def test_whitespace_classes(self) -> None:
        """Horizontal space is a subset of whitespace; line ends are CR and LF."""
        assert all(is_whitespace(c) for c in " \t\n\r\x0b\x0c")
        assert is_horizontal_space(" ")
        assert is_horizontal_space(ord("\t"))
        assert not is_horizontal_space("\n")
        assert is_end_of_line("\r")
        assert is_end_of_line(ord("\n"))
        assert not is_end_of_line(" ")

    @given(st.integers(min_value=0, max_value=127))
    def test_bytes_and_str_agree(self, code: int) -> None:
        """A byte and the character with the same code classify the same way."""
        for predicate in (is_digit, is_alpha, is_whitespace, is_end_of_line):
            assert predicate(code) == predicate(chr(code))


class TestNumbers:
    """Test digit, decimal and signed."""

    def test_digit(self) -> None:
        """digit yields the integer value."""
        assert parse_only_str(digit(), "7") == 7
        assert parse_only(digit(), b"3") == 3

    def test_digit_rejects(self) -> None:
        """A non-digit names the expectation."""
        with pytest.raises(ParseFailedError) as exc_info:
            parse_only_str(digit(), "x")

        error = exc_info.value.error
        assert error.kind == ErrorKind.PREDICATE_FAILED
        assert error.expected == ("digit",)

    def test_decimal_bytes(self) -> None:
        """decimal folds the digit run."""
        assert parse_only(decimal(), b"1024") == 1024

    def test_decimal_stops_at_non_digit(self) -> None:
        """The run ends at the first non-digit."""
        assert parse_only_str(decimal() + token(";"), "12;") == (12, ";")

    def test_decimal_streamed(self) -> None:
        """A number split across chunks is read whole."""
        session = ParseSession(decimal(), "12")
        session.feed("34")
        session.finish()

        assert session.value == 1234

    @given(st.integers(min_value=0, max_value=10**30))
    def test_decimal_matches_int(self, value: int) -> None:
        """decimal agrees with int() on its own output."""
        assert parse_only_str(decimal(), str(value)) == value

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("-42", -42), ("+7", 7), ("7", 7), ("-0", 0)],
    )
    def test_signed(self, text: str, expected: int) -> None:
        assert parse_only_str(signed(decimal()), text) == expected

    def test_signed_requires_digits(self) -> None:
        """A sign alone is not a number."""
        with pytest.raises(ParseFailedError):
            parse_only_str(signed(decimal()), "-")


class TestWhitespace:
    """Test end_of_line and skip_whitespace."""

    @pytest.mark.parametrize("text", ["\r\n", "\n"])
    def test_end_of_line(self, text: str) -> None:
        assert parse_only_str(end_of_line(), text) is None

    def test_end_of_line_bytes(self) -> None:
        assert parse_only(end_of_line(), b"\r\n") is None

    def test_lone_cr(self) -> None:
        """CR must be followed by LF; the error is after the CR."""
        result = run(end_of_line(), "\rx")

        assert isinstance(result, Error)
        assert result.error.position == 1

    def test_skip_whitespace(self) -> None:
        """Whitespace of every kind is skipped."""
        assert parse_only_str(skip_whitespace() >> token("x"), " \t\r\n x") == "x"

    def test_skip_whitespace_none(self) -> None:
        """Nothing to skip is fine."""
        assert parse_only_str(skip_whitespace() >> token("x"), "x") == "x"
