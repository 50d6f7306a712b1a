"""
metrics/expression.py

Arithmetic formula language for metric definitions.

Grammar
-------
    expr   := term (("+" | "-") term)*
    term   := factor (("*" | "/") factor)*
    factor := ("+" | "-") factor | NUMBER | IDENT | "(" expr ")"

Formulas are parsed once into an immutable node tree and evaluated against
a ``name -> value`` mapping. Nothing is ever executed as code: the tokenizer
accepts digits, the four operators, parentheses, the decimal point,
whitespace and identifiers, and rejects every other character.

Evaluation is total. An unresolvable reference, a division by zero or a
non-finite intermediate result evaluates to ``None``.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final


class FormulaSyntaxError(ValueError):
    """
    Raised when a formula cannot be tokenized or parsed.
    """

    def __init__(self, formula: str, message: str, position: int | None = None) -> None:
        self.formula = formula
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Invalid formula '{formula}'{where}: {message}")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class Expression(ABC):
    """Base class for formula nodes."""

    @abstractmethod
    def evaluate(self, values: Mapping[str, float | None]) -> float | None:
        """Return the node value, or ``None`` when it cannot be computed."""

    @abstractmethod
    def references(self) -> frozenset[str]:
        """Return every identifier the node reads."""


@dataclass(frozen=True)
class Const(Expression):
    value: float

    def evaluate(self, values: Mapping[str, float | None]) -> float | None:
        return self.value

    def references(self) -> frozenset[str]:
        return frozenset()


@dataclass(frozen=True)
class Ref(Expression):
    name: str

    def evaluate(self, values: Mapping[str, float | None]) -> float | None:
        value = values.get(self.name)
        if value is None or not math.isfinite(value):
            return None
        return float(value)

    def references(self) -> frozenset[str]:
        return frozenset({self.name})


@dataclass(frozen=True)
class Neg(Expression):
    operand: Expression

    def evaluate(self, values: Mapping[str, float | None]) -> float | None:
        value = self.operand.evaluate(values)
        return None if value is None else -value

    def references(self) -> frozenset[str]:
        return self.operand.references()


@dataclass(frozen=True)
class BinaryOp(Expression):
    left: Expression
    right: Expression

    def evaluate(self, values: Mapping[str, float | None]) -> float | None:
        left = self.left.evaluate(values)
        if left is None:
            return None
        right = self.right.evaluate(values)
        if right is None:
            return None
        result = self.apply(left, right)
        if result is None or not math.isfinite(result):
            return None
        return result

    def references(self) -> frozenset[str]:
        return self.left.references() | self.right.references()

    @abstractmethod
    def apply(self, left: float, right: float) -> float | None: ...


class Add(BinaryOp):
    def apply(self, left: float, right: float) -> float | None:
        return left + right


class Sub(BinaryOp):
    def apply(self, left: float, right: float) -> float | None:
        return left - right


class Mul(BinaryOp):
    def apply(self, left: float, right: float) -> float | None:
        return left * right


class Div(BinaryOp):
    def apply(self, left: float, right: float) -> float | None:
        if right == 0:
            return None
        return left / right


_BINARY_OPERATORS: Final[dict[str, type[BinaryOp]]] = {
    "+": Add,
    "-": Sub,
    "*": Mul,
    "/": Div,
}


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    kind: str  # "number" | "ident" | "op" | "lparen" | "rparen"
    text: str
    position: int


_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def tokenize(formula: str) -> list[Token]:
    """Split *formula* into tokens, rejecting any character outside the language."""
    tokens: list[Token] = []
    position = 0
    length = len(formula)
    while position < length:
        char = formula[position]
        if char.isspace():
            position += 1
            continue
        if char in _BINARY_OPERATORS:
            tokens.append(Token("op", char, position))
            position += 1
            continue
        if char == "(":
            tokens.append(Token("lparen", char, position))
            position += 1
            continue
        if char == ")":
            tokens.append(Token("rparen", char, position))
            position += 1
            continue

        match = _NUMBER.match(formula, position)
        if match:
            tokens.append(Token("number", match.group(), position))
            position = match.end()
            continue
        match = _IDENT.match(formula, position)
        if match:
            tokens.append(Token("ident", match.group(), position))
            position = match.end()
            continue

        raise FormulaSyntaxError(formula, f"unexpected character {char!r}", position)
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, formula: str) -> None:
        self.formula = formula
        self.tokens = tokenize(formula)
        self.index = 0

    def parse(self) -> Expression:
        if not self.tokens:
            raise FormulaSyntaxError(self.formula, "empty formula")
        node = self._expr()
        if self.index < len(self.tokens):
            token = self.tokens[self.index]
            raise FormulaSyntaxError(self.formula, f"unexpected {token.text!r}", token.position)
        return node

    def _peek(self) -> Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError(self.formula, "unexpected end of formula", len(self.formula))
        self.index += 1
        return token

    def _expr(self) -> Expression:
        node = self._term()
        while (token := self._peek()) is not None and token.text in ("+", "-"):
            self._advance()
            node = _BINARY_OPERATORS[token.text](node, self._term())
        return node

    def _term(self) -> Expression:
        node = self._factor()
        while (token := self._peek()) is not None and token.text in ("*", "/"):
            self._advance()
            node = _BINARY_OPERATORS[token.text](node, self._factor())
        return node

    def _factor(self) -> Expression:
        token = self._advance()
        if token.kind == "op" and token.text in ("+", "-"):
            operand = self._factor()
            return Neg(operand) if token.text == "-" else operand
        if token.kind == "number":
            return Const(float(token.text))
        if token.kind == "ident":
            return Ref(token.text)
        if token.kind == "lparen":
            node = self._expr()
            closing = self._advance()
            if closing.kind != "rparen":
                raise FormulaSyntaxError(self.formula, "expected ')'", closing.position)
            return node
        raise FormulaSyntaxError(self.formula, f"unexpected {token.text!r}", token.position)


def parse_formula(formula: str) -> Expression:
    """
    Parse *formula* into an expression tree.

    Raises
    ------
    FormulaSyntaxError
        On illegal characters, unbalanced parentheses, dangling operators
        or an empty formula.
    """
    return _Parser(formula).parse()
