"""Tests for the IDL lexer."""

import pytest
from idlgen.errors import LexError
from idlgen.lexer import (Lexer, tokenize, TOK_KEYWORD, TOK_IDENT, TOK_NUMBER,
                          TOK_STRING, TOK_CHAR, TOK_SYMBOL, TOK_OP,
                          TOK_PREPROC, TOK_EOF)


def kinds(text):
    return [t.kind for t in tokenize(text)]


def values(text):
    return [t.value for t in tokenize(text)][:-1]


class TestTokens:
    def test_keywords_and_identifiers(self):
        toks = tokenize("struct Point")
        assert toks[0].kind == TOK_KEYWORD
        assert toks[1].kind == TOK_IDENT
        assert toks[1].value == "Point"

    def test_ends_with_eof(self):
        assert kinds("") == [TOK_EOF]
        assert kinds("module")[-1] == TOK_EOF

    def test_double_colon_is_one_symbol(self):
        toks = tokenize("A::B")
        assert [(t.kind, t.value) for t in toks[:3]] == [
            (TOK_IDENT, "A"), (TOK_SYMBOL, "::"), (TOK_IDENT, "B")]

    def test_single_colon(self):
        assert values("case 1:") == ["case", "1", ":"]

    def test_punctuation(self):
        assert values("{}()[];,") == list("{}()[];,")
        assert set(kinds("{}()[];,")[:-1]) == {TOK_SYMBOL}

    def test_numbers(self):
        toks = tokenize("42 3.14")
        assert [(t.kind, t.value) for t in toks[:2]] == [
            (TOK_NUMBER, "42"), (TOK_NUMBER, "3.14")]

    def test_string_keeps_escapes(self):
        toks = tokenize(r'"a\"b\n"')
        assert toks[0].kind == TOK_STRING
        assert toks[0].value == r'a\"b\n'

    def test_char_literal(self):
        toks = tokenize(r"'x' '\''")
        assert toks[0].kind == TOK_CHAR
        assert toks[0].value == "x"
        assert toks[1].value == r"\'"

    def test_operators_greedy_two_chars(self):
        assert values("<< = >> -") == ["<<", "=", ">>", "-"]
        assert kinds("<<")[0] == TOK_OP

    def test_preprocessor_line(self):
        toks = tokenize('#include "a.idl"\r\nmodule')
        assert toks[0].kind == TOK_PREPROC
        assert toks[0].value == '#include "a.idl"'
        assert toks[1].value == "module"


class TestTrivia:
    def test_line_comment(self):
        assert values("a // comment\nb") == ["a", "b"]

    def test_block_comment(self):
        assert values("a /* x\ny */ b") == ["a", "b"]

    def test_positions(self):
        toks = tokenize("module A {\n  struct S;\n};", "x.idl")
        struct = toks[3]
        assert struct.value == "struct"
        assert (struct.line, struct.column) == (2, 2)
        assert struct.filename == "x.idl"

    def test_line_tracking_through_block_comment(self):
        toks = tokenize("/* one\ntwo */\nname")
        assert toks[0].line == 3


class TestLexer:
    def test_next_past_end_repeats_eof(self):
        lx = Lexer("x")
        assert lx.next().value == "x"
        assert lx.next().kind == TOK_EOF
        assert lx.next().kind == TOK_EOF

    def test_iteration_stops_after_eof(self):
        assert len(list(Lexer("a b"))) == 3


class TestErrors:
    def test_unterminated_string(self):
        with pytest.raises(LexError, match="unterminated string"):
            tokenize('"abc')

    def test_unterminated_char(self):
        with pytest.raises(LexError, match="unterminated character"):
            tokenize("'a")

    def test_string_cannot_span_lines(self):
        with pytest.raises(LexError):
            tokenize('"abc\ndef"')

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError, match="unterminated block comment"):
            tokenize("/* never closed")

    def test_illegal_character_is_located(self):
        with pytest.raises(LexError) as exc:
            tokenize("module\n  @", "bad.idl")
        assert str(exc.value) == "bad.idl:2:2: unexpected character '@'"

    def test_non_ascii_digit_is_illegal(self):
        with pytest.raises(LexError, match="unexpected character '²'"):
            tokenize("²")

    def test_non_ascii_digit_ends_identifier(self):
        with pytest.raises(LexError) as exc:
            tokenize("struct S²")
        assert str(exc.value) == "<input>:1:8: unexpected character '²'"
