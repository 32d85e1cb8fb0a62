"""Formula lexer and recursive descent parser.

Grammar, lowest precedence first::

    comparison := additive (("=" | "<" | ">" | "<=" | ">=" | "<>") additive)*
    additive   := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := "-" unary | primary
    primary    := NUMBER | STRING | "#REF!" | "(" comparison ")"
                | NAME "(" [comparison ("," comparison)*] ")"
                | reference
    reference  := CELL [":" (CELL | ROW)] | COLUMN [":" COLUMN]

References are resolved against the sheet bounds while parsing, so the tree
only ever holds coordinates that existed when the formula was entered.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import NamedTuple

from tabelle._errors import ParseError, ParseFailure
from tabelle.calc._ast import (
    ADDITIVE_OPS,
    COMPARISON_OPS,
    MULTIPLICATIVE_OPS,
    BinaryOp,
    CellRef,
    ColumnRef,
    FunctionCall,
    Node,
    NumberLit,
    RangeRef,
    RefErrorLit,
    StringLit,
    UnaryOp,
)
from tabelle.calc._functions import FunctionRegistry
from tabelle.calc._references import (
    LOWER,
    letter_case,
    normalize_range,
    resolve_column,
    resolve_row,
    split_reference,
)

# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

NUMBER = "NUMBER"
STRING = "STRING"
NAME = "NAME"
OP = "OP"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
COMMA = "COMMA"
COLON = "COLON"
REF_ERROR = "REF_ERROR"
EOF = "EOF"

_NUMBER_RE = re.compile(r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_REF_ERROR_RE = re.compile(r"#REF!", re.IGNORECASE)
_TWO_CHAR_OPS = ("<=", ">=", "<>")
_ONE_CHAR_OPS = "+-*/=<>"
_PUNCTUATION = {"(": LPAREN, ")": RPAREN, ",": COMMA, ":": COLON}


class Token(NamedTuple):
    kind: str
    text: str
    pos: int


def tokenize(text: str) -> list[Token]:
    """Split a formula body into tokens, ending with an ``EOF`` token."""
    tokens: list[Token] = []
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue

        if ch.isdigit() or (ch == "." and i + 1 < length and text[i + 1].isdigit()):
            m = _NUMBER_RE.match(text, i)
            if m is None:
                raise ParseError(ParseFailure.UNEXPECTED_TOKEN, f"Malformed number at {i}", i)
            tokens.append(Token(NUMBER, m.group(), i))
            i = m.end()
            continue

        if ch == '"':
            start = i
            i += 1
            chars: list[str] = []
            while True:
                if i >= length:
                    raise ParseError(
                        ParseFailure.UNTERMINATED_STRING, "Unterminated string literal", start,
                    )
                if text[i] == '"':
                    # "" inside a string is an escaped quote
                    if i + 1 < length and text[i + 1] == '"':
                        chars.append('"')
                        i += 2
                        continue
                    i += 1
                    break
                chars.append(text[i])
                i += 1
            tokens.append(Token(STRING, "".join(chars), start))
            continue

        m = _NAME_RE.match(text, i)
        if m:
            tokens.append(Token(NAME, m.group(), i))
            i = m.end()
            continue

        m = _REF_ERROR_RE.match(text, i)
        if m:
            tokens.append(Token(REF_ERROR, m.group(), i))
            i = m.end()
            continue

        two = text[i : i + 2]
        if two in _TWO_CHAR_OPS:
            tokens.append(Token(OP, two, i))
            i += 2
            continue
        if ch in _ONE_CHAR_OPS:
            tokens.append(Token(OP, ch, i))
            i += 1
            continue
        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, i))
            i += 1
            continue

        raise ParseError(ParseFailure.UNEXPECTED_TOKEN, f"Unexpected character {ch!r}", i)

    tokens.append(Token(EOF, "", length))
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class FormulaParser:
    """Parses formula bodies against fixed sheet bounds.

    Usage::

        parser = FormulaParser(n_rows=10, n_cols=3)
        tree = parser.parse("SUM(A1:A3)*2")
    """

    def __init__(
        self,
        n_rows: int,
        n_cols: int,
        functions: FunctionRegistry | None = None,
    ) -> None:
        self.n_rows = n_rows
        self.n_cols = n_cols
        self.functions = functions if functions is not None else FunctionRegistry()
        self._tokens: list[Token] = []
        self._index = 0
        self._case: str | None = None

    def parse(self, text: str) -> Node:
        """Parse a formula body (the text after the marker).  Raises ParseError."""
        self._tokens = tokenize(text)
        self._index = 0
        self._case = None
        node = self._comparison()
        tok = self._peek()
        if tok.kind != EOF:
            raise self._unexpected(tok)
        return node

    # -- token helpers ------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        return self._tokens[min(self._index + offset, len(self._tokens) - 1)]

    def _advance(self) -> Token:
        tok = self._tokens[self._index]
        if tok.kind != EOF:
            self._index += 1
        return tok

    def _expect(self, kind: str) -> Token:
        tok = self._peek()
        if tok.kind != kind:
            raise self._unexpected(tok)
        return self._advance()

    @staticmethod
    def _unexpected(tok: Token) -> ParseError:
        if tok.kind == EOF:
            return ParseError(ParseFailure.UNEXPECTED_TOKEN, "Unexpected end of formula", tok.pos)
        return ParseError(ParseFailure.UNEXPECTED_TOKEN, f"Unexpected {tok.text!r}", tok.pos)

    # -- precedence levels --------------------------------------------------

    def _binary_level(self, ops: tuple[str, ...], operand: Callable[[], Node]) -> Node:
        node = operand()
        while self._peek().kind == OP and self._peek().text in ops:
            op = self._advance().text
            node = BinaryOp(op, node, operand())
        return node

    def _comparison(self) -> Node:
        return self._binary_level(COMPARISON_OPS, self._additive)

    def _additive(self) -> Node:
        return self._binary_level(ADDITIVE_OPS, self._term)

    def _term(self) -> Node:
        return self._binary_level(MULTIPLICATIVE_OPS, self._unary)

    def _unary(self) -> Node:
        tok = self._peek()
        if tok.kind == OP and tok.text == "-":
            self._advance()
            return UnaryOp("-", self._unary())
        return self._primary()

    def _primary(self) -> Node:
        tok = self._peek()
        if tok.kind == NUMBER:
            self._advance()
            return NumberLit(float(tok.text), tok.text)
        if tok.kind == STRING:
            self._advance()
            return StringLit(tok.text)
        if tok.kind == REF_ERROR:
            self._advance()
            return RefErrorLit()
        if tok.kind == LPAREN:
            self._advance()
            node = self._comparison()
            self._expect(RPAREN)
            return node
        if tok.kind == NAME:
            if self._peek(1).kind == LPAREN:
                return self._call()
            return self._reference()
        raise self._unexpected(tok)

    def _call(self) -> FunctionCall:
        name_tok = self._advance()
        name = name_tok.text
        if not self.functions.has(name):
            raise ParseError(
                ParseFailure.UNKNOWN_FUNCTION, f"Unknown function {name!r}", name_tok.pos,
            )
        self._expect(LPAREN)
        args: list[Node] = []
        if self._peek().kind != RPAREN:
            args.append(self._comparison())
            while self._peek().kind == COMMA:
                self._advance()
                args.append(self._comparison())
        close = self._peek()
        if close.kind != RPAREN:
            raise self._unexpected(close)
        min_args, max_args = self.functions.arity(name)
        if len(args) < min_args or (max_args is not None and len(args) > max_args):
            raise ParseError(
                ParseFailure.UNEXPECTED_TOKEN,
                f"{name.upper()} does not take {len(args)} argument(s)",
                close.pos,
            )
        self._advance()
        return FunctionCall(name, tuple(args))

    # -- references ---------------------------------------------------------

    def _note_case(self, letters: str, pos: int) -> bool:
        """Record the letter case of a reference; return True for lower case."""
        case = letter_case(letters)
        if self._case is None:
            self._case = case
        elif case != self._case:
            raise ParseError(
                ParseFailure.MIXED_CASE,
                "Formula mixes upper-case and lower-case references",
                pos,
            )
        return case == LOWER

    def _reference(self) -> Node:
        tok = self._advance()
        letters, digits = split_reference(tok.text, tok.pos)
        lowercase = self._note_case(letters, tok.pos)
        col = resolve_column(letters, self.n_cols, tok.pos)

        if digits is None:
            # Whole column, optionally a span of columns: B or B:D
            last = col
            if self._peek().kind == COLON:
                self._advance()
                end_tok = self._expect(NAME)
                end_letters, end_digits = split_reference(end_tok.text, end_tok.pos)
                if end_digits is not None:
                    raise ParseError(
                        ParseFailure.INVALID_REFERENCE,
                        f"Cannot span from column {letters!r} to cell {end_tok.text!r}",
                        end_tok.pos,
                    )
                self._note_case(end_letters, end_tok.pos)
                last = resolve_column(end_letters, self.n_cols, end_tok.pos)
            first, last = min(col, last), max(col, last)
            return ColumnRef(first, last, lowercase)

        row = resolve_row(digits, self.n_rows, tok.pos)
        if self._peek().kind != COLON:
            return CellRef(row, col, lowercase)

        self._advance()
        end_tok = self._peek()
        if end_tok.kind == NUMBER and end_tok.text.isdigit():
            # Row shorthand: A1:3 is A1:A3
            self._advance()
            end_row, end_col = resolve_row(end_tok.text, self.n_rows, end_tok.pos), col
        elif end_tok.kind == NAME:
            self._advance()
            end_letters, end_digits = split_reference(end_tok.text, end_tok.pos)
            self._note_case(end_letters, end_tok.pos)
            if end_digits is None:
                raise ParseError(
                    ParseFailure.INVALID_REFERENCE,
                    f"Range end {end_tok.text!r} has no row number",
                    end_tok.pos,
                )
            end_row = resolve_row(end_digits, self.n_rows, end_tok.pos)
            end_col = resolve_column(end_letters, self.n_cols, end_tok.pos)
        else:
            raise self._unexpected(end_tok)

        top, left, bottom, right = normalize_range(row, col, end_row, end_col)
        return RangeRef(top, left, bottom, right, lowercase)


def parse(text: str, n_rows: int, n_cols: int, functions: FunctionRegistry | None = None) -> Node:
    """Parse a formula body against a sheet of ``n_rows`` x ``n_cols``."""
    return FormulaParser(n_rows, n_cols, functions).parse(text)
