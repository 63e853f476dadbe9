"""
Tokenizer and recursive-descent parser for the declarative query language.

Grammar::

    statement  := SELECT ident FROM ident [AS] ident
                  [WHERE or_expr] [ORDER BY order (, order)*]
    or_expr    := and_expr (OR and_expr)*
    and_expr   := not_expr (AND not_expr)*
    not_expr   := NOT not_expr | '(' or_expr ')' | predicate
    predicate  := operand ( cmp operand | [NOT] LIKE operand | IS [NOT] NULL )
    operand    := ident '.' ident | ':' ident | string | integer
    order      := ident '.' ident [ASC | DESC]
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, NoReturn, Optional

from ..errors import QuerySyntaxError
from .expressions import (
    BoolOp,
    Comparison,
    Condition,
    Like,
    Literal,
    Not,
    NullCheck,
    Operand,
    OrderItem,
    Parameter,
    Path,
    SelectStatement,
)

KEYWORDS = frozenset(
    {"SELECT", "FROM", "AS", "WHERE", "ORDER", "BY", "ASC", "DESC", "AND", "OR", "NOT", "LIKE", "IS", "NULL"}
)
COMPARISON_OPERATORS = frozenset({"=", "<>", "!=", "<", "<=", ">", ">="})

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>'(?:[^']|'')*')
  | (?P<number>\d+)
  | (?P<param>:[A-Za-z_][A-Za-z0-9_]*)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op><>|!=|<=|>=|=|<|>)
  | (?P<punct>[.,()])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Token:
    kind: str  # keyword, ident, string, number, param, op, punct, eof
    value: str
    position: int


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if match is None:
            raise QuerySyntaxError(f"Unexpected character {text[position]!r} at position {position}")
        kind = match.lastgroup or ""
        value = match.group()
        if kind == "ident" and value.upper() in KEYWORDS:
            tokens.append(Token("keyword", value.upper(), position))
        elif kind == "string":
            tokens.append(Token(kind, value[1:-1].replace("''", "'"), position))
        elif kind == "param":
            tokens.append(Token(kind, value[1:], position))
        elif kind != "ws":
            tokens.append(Token(kind, value, position))
        position = match.end()
    tokens.append(Token("eof", "", position))
    return tokens


class Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    # Token helpers -----------------------------------------------------
    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != "eof":
            self.index += 1
        return token

    def _at_keyword(self, *words: str) -> bool:
        return self.current.kind == "keyword" and self.current.value in words

    def _accept_keyword(self, word: str) -> bool:
        if self._at_keyword(word):
            self._advance()
            return True
        return False

    def _expect_keyword(self, word: str) -> None:
        if not self._accept_keyword(word):
            self._fail(f"expected {word}")

    def _accept_punct(self, symbol: str) -> bool:
        if self.current.kind == "punct" and self.current.value == symbol:
            self._advance()
            return True
        return False

    def _expect_punct(self, symbol: str) -> None:
        if not self._accept_punct(symbol):
            self._fail(f"expected '{symbol}'")

    def _expect_ident(self, what: str) -> str:
        if self.current.kind != "ident":
            self._fail(f"expected {what}")
        return self._advance().value

    def _fail(self, message: str) -> NoReturn:
        token = self.current
        found = "end of query" if token.kind == "eof" else repr(token.value)
        raise QuerySyntaxError(f"Invalid query at position {token.position}: {message}, found {found}")

    # Grammar -----------------------------------------------------------
    def parse(self) -> SelectStatement:
        self._expect_keyword("SELECT")
        result_alias = self._expect_ident("result alias")
        self._expect_keyword("FROM")
        entity = self._expect_ident("entity name")
        self._accept_keyword("AS")
        alias = self._expect_ident("entity alias")

        where: Optional[Condition] = None
        if self._accept_keyword("WHERE"):
            where = self._or_expr()

        order_by: List[OrderItem] = []
        if self._accept_keyword("ORDER"):
            self._expect_keyword("BY")
            order_by.append(self._order_item())
            while self._accept_punct(","):
                order_by.append(self._order_item())

        if self.current.kind != "eof":
            self._fail("unexpected trailing input")
        return SelectStatement(result_alias, entity, alias, where, tuple(order_by))

    def _or_expr(self) -> Condition:
        operands = [self._and_expr()]
        while self._accept_keyword("OR"):
            operands.append(self._and_expr())
        return operands[0] if len(operands) == 1 else BoolOp("OR", tuple(operands))

    def _and_expr(self) -> Condition:
        operands = [self._not_expr()]
        while self._accept_keyword("AND"):
            operands.append(self._not_expr())
        return operands[0] if len(operands) == 1 else BoolOp("AND", tuple(operands))

    def _not_expr(self) -> Condition:
        if self._accept_keyword("NOT"):
            return Not(self._not_expr())
        if self._accept_punct("("):
            condition = self._or_expr()
            self._expect_punct(")")
            return condition
        return self._predicate()

    def _predicate(self) -> Condition:
        subject = self._operand()
        token = self.current
        if token.kind == "op" and token.value in COMPARISON_OPERATORS:
            self._advance()
            operator = "<>" if token.value == "!=" else token.value
            return Comparison(subject, operator, self._operand())
        if self._accept_keyword("IS"):
            negated = self._accept_keyword("NOT")
            self._expect_keyword("NULL")
            return NullCheck(subject, negated)
        negated = self._accept_keyword("NOT")
        if self._accept_keyword("LIKE"):
            return Like(subject, self._operand(), negated)
        self._fail("expected comparison operator, LIKE or IS")

    def _operand(self) -> Operand:
        token = self.current
        if token.kind == "param":
            self._advance()
            return Parameter(token.value)
        if token.kind == "string":
            self._advance()
            return Literal(token.value)
        if token.kind == "number":
            self._advance()
            return Literal(int(token.value))
        if token.kind == "ident":
            return self._path()
        self._fail("expected operand")

    def _path(self) -> Path:
        alias = self._expect_ident("alias")
        self._expect_punct(".")
        field = self._expect_ident("field name")
        return Path(alias, field)

    def _order_item(self) -> OrderItem:
        path = self._path()
        if self._accept_keyword("DESC"):
            return OrderItem(path, True)
        self._accept_keyword("ASC")
        return OrderItem(path, False)


def parse_query(text: str) -> SelectStatement:
    if not text or not text.strip():
        raise QuerySyntaxError("Query text is empty.")
    return Parser(text).parse()
