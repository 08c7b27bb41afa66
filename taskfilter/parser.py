"""
Filter text parser.

Turns filter text such as::

    priority >= 3 && done = false
    (title like "release" || labels in [4, 7]) && dueDate < now+7d

into a `FilterExpression`. The expression model is flat (groups of
conditions), so logical operators fold as follows:

- Without parentheses, the first logical operator joins conditions inside a
  group and the other operator joins groups: `a && b || c && d` is
  `(a && b) || (c && d)`, and `a || b && c` is `(a || b) && c`.
- A parenthesised run of conditions is one group. Once parentheses are used,
  every top-level element is its own group and all top-level operators must
  match.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from .exceptions import FilterParseError
from .fields import (
    AND,
    FIELD_KINDS,
    FORBIDDEN_FIELD_NAMES,
    ValueKind,
    canonical_field,
)
from .models import (
    FilterCondition,
    FilterExpression,
    FilterGroup,
    FilterValue,
    ParseError,
    ParseResult,
    Scalar,
)
from .tokenizer import FilterSyntaxError, Token, Tokenizer, TokenType

logger = logging.getLogger(__name__)

_INT = re.compile(r"^[+-]?\d+$")
_FLOAT = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")

_CONTEXT_RADIUS = 20


def parse_number(text: str) -> int | float | None:
    if _INT.match(text):
        return int(text)
    if _FLOAT.match(text):
        return float(text)
    return None


def _list_item(token: Token) -> Scalar:
    """Type a list element: numeric-looking words become numbers."""
    if token.type == TokenType.WORD:
        number = parse_number(token.value)
        if number is not None:
            return number
    return token.value


def error_context(text: str, position: int) -> str:
    """Excerpt of `text` around `position` with a caret marker line."""
    start = max(0, position - _CONTEXT_RADIUS)
    end = min(len(text), position + _CONTEXT_RADIUS)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(text) else ""
    marker = " " * (position - start + len(prefix)) + "^"
    return f"{prefix}{text[start:end]}{suffix}\n{marker}"


def fold_conditions(
    conditions: Sequence[FilterCondition], joiners: Sequence[str]
) -> FilterExpression:
    """
    Fold a flat run of conditions into groups.

    `joiners[i]` is the logical operator between `conditions[i]` and
    `conditions[i + 1]`. The first joiner becomes the per-group operator; the
    other operator, if it appears, separates groups.
    """
    if not conditions:
        return FilterExpression(())
    group_op = joiners[0] if joiners else AND
    expression_op = AND
    groups: list[FilterGroup] = []
    current = [conditions[0]]

    for joiner, condition in zip(joiners, conditions[1:]):
        if joiner == group_op:
            current.append(condition)
        else:
            expression_op = joiner
            groups.append(FilterGroup(tuple(current), group_op))
            current = [condition]

    groups.append(FilterGroup(tuple(current), group_op))
    return FilterExpression(tuple(groups), expression_op)


class _Parser:
    """Recursive descent parser over the token stream."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        """Advance to next token and return previous."""
        token = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def _at_logical(self) -> bool:
        return self._current().type in (TokenType.AND, TokenType.OR)

    def parse(self) -> FilterExpression:
        if self._current().type == TokenType.EOF:
            raise FilterSyntaxError("Empty filter expression", 0)

        elements: list[FilterCondition | FilterGroup] = [self._parse_element()]
        joiners: list[Token] = []
        while self._at_logical():
            joiners.append(self._advance())
            elements.append(self._parse_element())

        if self._current().type != TokenType.EOF:
            self._raise_unexpected(self._current())

        if any(isinstance(e, FilterGroup) for e in elements):
            return self._explicit_groups(elements, joiners)

        conditions = [e for e in elements if isinstance(e, FilterCondition)]
        return fold_conditions(conditions, [j.value for j in joiners])

    def _explicit_groups(
        self, elements: list[FilterCondition | FilterGroup], joiners: list[Token]
    ) -> FilterExpression:
        for joiner in joiners[1:]:
            if joiner.value != joiners[0].value:
                raise FilterSyntaxError(
                    f"Mixed '{joiners[0].value}' and '{joiner.value}' between groups "
                    f"at position {joiner.pos}. "
                    "Hint: Use one operator between parenthesised groups",
                    joiner.pos,
                )
        groups = tuple(
            e if isinstance(e, FilterGroup) else FilterGroup((e,), AND) for e in elements
        )
        return FilterExpression(groups, joiners[0].value if joiners else AND)

    def _parse_element(self) -> FilterCondition | FilterGroup:
        if self._current().type != TokenType.LPAREN:
            return self._parse_condition()

        open_token = self._advance()
        conditions = [self._parse_condition()]
        operator: Token | None = None
        while self._at_logical():
            joiner = self._advance()
            if operator is None:
                operator = joiner
            elif joiner.value != operator.value:
                raise FilterSyntaxError(
                    f"Mixed '{operator.value}' and '{joiner.value}' inside parentheses "
                    f"at position {joiner.pos}. Hint: Split them into separate groups",
                    joiner.pos,
                )
            conditions.append(self._parse_condition())

        closing = self._current()
        if closing.type != TokenType.RPAREN:
            raise FilterSyntaxError(
                f"Unbalanced parentheses: expected ')' at position {closing.pos} "
                f"to close '(' at position {open_token.pos}",
                closing.pos,
            )
        self._advance()
        return FilterGroup(tuple(conditions), operator.value if operator else AND)

    def _parse_condition(self) -> FilterCondition:
        token = self._current()

        if token.type == TokenType.LPAREN:
            raise FilterSyntaxError(
                f"Nested parentheses are not supported (position {token.pos})", token.pos
            )
        if token.type == TokenType.EOF:
            raise FilterSyntaxError("Unexpected end of filter; expected a field name", token.pos)
        if token.type == TokenType.OPERATOR:
            raise FilterSyntaxError(
                f"Missing field name before operator '{token.value}' at position {token.pos}",
                token.pos,
            )
        if token.type != TokenType.WORD:
            raise FilterSyntaxError(
                f"Expected field name at position {token.pos}, got '{token.value}'", token.pos
            )

        name = token.value
        if name in FORBIDDEN_FIELD_NAMES:
            raise FilterSyntaxError(f"Field name '{name}' is not allowed", token.pos)
        field = canonical_field(name)
        if field is None:
            raise FilterSyntaxError(
                f"Unknown field '{name}' at position {token.pos}. "
                f"Valid fields: {', '.join(FIELD_KINDS)}",
                token.pos,
            )
        self._advance()

        operator = self._parse_operator(field)
        value = self._parse_value(field, operator)
        return FilterCondition(field, operator, value)

    def _parse_operator(self, field: str) -> str:
        token = self._current()

        if token.type == TokenType.OPERATOR:
            self._advance()
            return token.value

        if token.type == TokenType.WORD:
            word = token.value.lower()
            if word in ("like", "in"):
                self._advance()
                return word
            following = self._peek()
            if (
                word == "not"
                and following.type == TokenType.WORD
                and following.value.lower() == "in"
            ):
                self._advance()
                self._advance()
                return "not in"

        if token.type == TokenType.EOF:
            raise FilterSyntaxError(
                f"Expected operator after field '{field}'; reached end of filter", token.pos
            )
        raise FilterSyntaxError(
            f"Expected operator after field '{field}' at position {token.pos}, "
            f"got '{token.value}'",
            token.pos,
        )

    def _parse_value(self, field: str, operator: str) -> FilterValue:
        token = self._current()

        if token.type == TokenType.LBRACKET:
            return self._parse_list()

        if token.type not in (TokenType.WORD, TokenType.STRING):
            if token.type == TokenType.EOF:
                raise FilterSyntaxError(
                    f"Expected value after operator '{operator}'; reached end of filter",
                    token.pos,
                )
            raise FilterSyntaxError(
                f"Expected value after operator '{operator}' at position {token.pos}, "
                f"got '{token.value}'",
                token.pos,
            )
        self._advance()

        if operator in ("in", "not in") and self._current().type == TokenType.COMMA:
            return self._parse_bare_list(token)

        kind = FIELD_KINDS[field]
        text = token.value
        if kind == ValueKind.BOOLEAN:
            if text.lower() not in ("true", "false"):
                raise FilterSyntaxError(
                    f"Expected true or false for field '{field}' at position {token.pos}, "
                    f"got '{text}'",
                    token.pos,
                )
            return text.lower() == "true"
        if kind == ValueKind.NUMBER:
            number = parse_number(text.strip())
            if number is None:
                raise FilterSyntaxError(
                    f"Expected a number for field '{field}' at position {token.pos}, "
                    f"got '{text}'",
                    token.pos,
                )
            return number
        if kind == ValueKind.ARRAY:
            return (_list_item(token),)
        return text

    def _parse_list(self) -> tuple[Scalar, ...]:
        open_token = self._advance()
        items: list[Scalar] = []

        if self._current().type == TokenType.RBRACKET:
            self._advance()
            return ()

        while True:
            token = self._current()
            if token.type == TokenType.EOF:
                raise FilterSyntaxError(
                    f"Unterminated list starting at position {open_token.pos}", token.pos
                )
            if token.type not in (TokenType.WORD, TokenType.STRING):
                raise FilterSyntaxError(
                    f"Expected list value at position {token.pos}, got '{token.value}'",
                    token.pos,
                )
            items.append(_list_item(self._advance()))

            separator = self._current()
            if separator.type == TokenType.RBRACKET:
                self._advance()
                return tuple(items)
            if separator.type == TokenType.EOF:
                raise FilterSyntaxError(
                    f"Unterminated list starting at position {open_token.pos}", separator.pos
                )
            if separator.type != TokenType.COMMA:
                raise FilterSyntaxError(
                    f"Expected ',' or ']' at position {separator.pos}, got '{separator.value}'",
                    separator.pos,
                )
            self._advance()

    def _parse_bare_list(self, first: Token) -> tuple[Scalar, ...]:
        """Unbracketed membership list: `labels in 1, 2, 3`."""
        items = [_list_item(first)]
        while self._current().type == TokenType.COMMA:
            self._advance()
            token = self._current()
            if token.type not in (TokenType.WORD, TokenType.STRING):
                raise FilterSyntaxError(
                    f"Expected list value at position {token.pos}, got '{token.value}'",
                    token.pos,
                )
            items.append(_list_item(self._advance()))
        return tuple(items)

    def _raise_unexpected(self, token: Token) -> None:
        if token.type == TokenType.RPAREN:
            raise FilterSyntaxError(
                f"Unbalanced parentheses: unexpected ')' at position {token.pos}", token.pos
            )
        if token.type in (TokenType.WORD, TokenType.STRING):
            upper = token.value.upper()
            if upper == "AND":
                raise FilterSyntaxError(
                    f"Unexpected 'AND' at position {token.pos}. "
                    "Hint: Use '&&' for AND: expr1 && expr2",
                    token.pos,
                )
            if upper == "OR":
                raise FilterSyntaxError(
                    f"Unexpected 'OR' at position {token.pos}. "
                    "Hint: Use '||' for OR: expr1 || expr2",
                    token.pos,
                )
            raise FilterSyntaxError(
                f"Unexpected token '{token.value}' at position {token.pos}. "
                f'Hint: Values with spaces must be quoted: "... {token.value}"',
                token.pos,
            )
        raise FilterSyntaxError(
            f"Unexpected token '{token.value}' at position {token.pos}", token.pos
        )


def parse_filter(text: str) -> ParseResult:
    """
    Parse filter text, reporting failures as data instead of raising.

    Returns:
        ParseResult with either the expression or a ParseError holding the
        message, the offset of the first unconsumed character and a short
        excerpt of the text around it.

    Examples:
        >>> result = parse_filter("priority >= 3 && done = false")
        >>> len(result.expression.groups)
        1

        >>> parse_filter("priority >> 3").error.position
        10
    """
    if not isinstance(text, str):
        return ParseResult(None, ParseError("Filter input must be a string", 0))
    if not text.strip():
        return ParseResult(None, ParseError("Empty filter expression", 0))

    try:
        tokens = Tokenizer(text).tokenize()
        expression = _Parser(tokens).parse()
    except FilterSyntaxError as e:
        logger.debug(f"Filter parse failed at {e.position}: {e.message}")
        return ParseResult(None, ParseError(e.message, e.position, error_context(text, e.position)))

    logger.debug(
        f"Parsed filter into {len(expression.groups)} group(s), "
        f"{len(expression.conditions)} condition(s)"
    )
    return ParseResult(expression)


def parse(text: str) -> FilterExpression:
    """
    Parse filter text into a FilterExpression.

    Raises:
        FilterParseError: If the text is malformed
    """
    result = parse_filter(text)
    if result.error is not None:
        raise FilterParseError(result.error)
    assert result.expression is not None
    return result.expression
