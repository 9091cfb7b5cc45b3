"""
Filter and sort expression grammar.

Filter expressions::

    make:Ford                      match
    make:[BMW,Honda]               any of several values
    msrp:[20000..40000]            numeric range
    msrp:<40000                    comparison (>, <, >=, <=)
    make:=Ford                     exact match
    make:!=Ford  make:!=[BMW,Kia]  negation
    model:`Civic (Hybrid)`         backticks around values with parentheses
    a:1 && (b:2 || c:3)            && binds tighter than ||

Sort expressions are up to three comma separated ``field:asc|desc`` pairs.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from nl_search.core.errors import GrammarViolation

MATCH = ":"
EXACT = "="
NOT_EQUAL = "!="
COMPARISON_OPERATORS = (">=", "<=", ">", "<")
LIST_OPERATORS = (MATCH, EXACT, NOT_EQUAL)

# Longest prefix first
_OPERATOR_PREFIXES = (NOT_EQUAL, ">=", "<=", ">", "<", EXACT)

MAX_SORT_FIELDS = 3
SORT_DIRECTIONS = ("asc", "desc")
TEXT_MATCH_FIELD = "_text_match"

ESCAPE = "`"

_FIELD_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.\-]*")
_RANGE_RE = re.compile(r"^(-?\d+(?:\.\d+)?)\s*\.\.\s*(-?\d+(?:\.\d+)?)$")
_ESCAPED_CHARS = set("()[],")


@dataclass(frozen=True)
class Range:
    """Inclusive numeric range ``low..high``."""

    low: str
    high: str


Value = Union[str, Range]


@dataclass(frozen=True)
class Clause:
    """Atomic ``field:<op>value`` or ``field:<op>[values]`` predicate."""

    field: str
    operator: str
    values: Tuple[Value, ...]
    bracketed: bool = False

    @property
    def negated(self) -> bool:
        return self.operator == NOT_EQUAL


@dataclass(frozen=True)
class And:
    children: Tuple["Node", ...]


@dataclass(frozen=True)
class Or:
    children: Tuple["Node", ...]


Node = Union[Clause, And, Or]


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: str


class _FilterParser:
    """Recursive descent parser for filter expressions."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def parse(self) -> Node:
        self._skip_ws()
        if self.pos >= len(self.text):
            raise GrammarViolation("Empty filter expression", self.text)
        node = self._parse_or()
        self._skip_ws()
        if self.pos < len(self.text):
            raise GrammarViolation(
                f"Unexpected '{self.text[self.pos]}' at position {self.pos}", self.text
            )
        return node

    def _parse_or(self) -> Node:
        children = [self._parse_and()]
        while self._consume("||"):
            children.append(self._parse_and())
        return children[0] if len(children) == 1 else Or(tuple(children))

    def _parse_and(self) -> Node:
        children = [self._parse_primary()]
        while self._consume("&&"):
            children.append(self._parse_primary())
        return children[0] if len(children) == 1 else And(tuple(children))

    def _parse_primary(self) -> Node:
        if self._consume("("):
            node = self._parse_or()
            if not self._consume(")"):
                raise GrammarViolation("Unbalanced parenthesis", self.text)
            return node
        return self._parse_clause()

    def _parse_clause(self) -> Clause:
        self._skip_ws()
        match = _FIELD_RE.match(self.text, self.pos)
        if not match:
            raise GrammarViolation(f"Expected a field name at position {self.pos}", self.text)
        field = match.group(0)
        self.pos = match.end()

        if not self._consume(":"):
            raise GrammarViolation(f"Expected ':' after field '{field}'", self.text)
        self._skip_ws()

        operator = MATCH
        for prefix in _OPERATOR_PREFIXES:
            if self.text.startswith(prefix, self.pos):
                operator = prefix
                self.pos += len(prefix)
                break
        self._skip_ws()

        if self.text.startswith("[", self.pos):
            if operator not in LIST_OPERATORS:
                raise GrammarViolation(
                    f"Operator '{operator}' cannot be applied to a list", self.text
                )
            return Clause(field, operator, self._parse_list(field), bracketed=True)
        return Clause(field, operator, (self._parse_scalar(field),))

    def _parse_scalar(self, field: str) -> str:
        if self.text.startswith(ESCAPE, self.pos):
            return self._parse_escaped()

        start = self.pos
        while self.pos < len(self.text):
            if self.text.startswith(("&&", "||"), self.pos) or self.text[self.pos] == ")":
                break
            if self.text[self.pos] in "([":
                raise GrammarViolation(
                    f"Value of '{field}' contains '{self.text[self.pos]}'; "
                    f"wrap it in backticks",
                    self.text,
                )
            self.pos += 1

        value = self.text[start:self.pos].strip()
        if not value:
            raise GrammarViolation(f"Missing value for field '{field}'", self.text)
        return value

    def _parse_list(self, field: str) -> Tuple[Value, ...]:
        self.pos += 1  # "["
        items: List[Value] = []
        buffer: List[str] = []
        escaped: Optional[str] = None

        while True:
            if self.pos >= len(self.text):
                raise GrammarViolation(f"Unterminated list for field '{field}'", self.text)
            char = self.text[self.pos]

            if char == ESCAPE:
                if escaped is not None or "".join(buffer).strip():
                    raise GrammarViolation(f"Malformed list item for field '{field}'", self.text)
                escaped = self._parse_escaped()
                buffer = []
                continue

            if char in ",]":
                items.append(self._list_item(field, "".join(buffer), escaped))
                buffer = []
                escaped = None
                self.pos += 1
                if char == "]":
                    return tuple(items)
                continue

            if char in "([)":
                raise GrammarViolation(
                    f"Value of '{field}' contains '{char}'; wrap it in backticks", self.text
                )
            if escaped is not None and not char.isspace():
                raise GrammarViolation(f"Malformed list item for field '{field}'", self.text)
            buffer.append(char)
            self.pos += 1

    def _list_item(self, field: str, raw: str, escaped: Optional[str]) -> Value:
        if escaped is not None:
            return escaped
        raw = raw.strip()
        if not raw:
            raise GrammarViolation(f"Empty value in list for field '{field}'", self.text)
        match = _RANGE_RE.match(raw)
        if match:
            return Range(match.group(1), match.group(2))
        return raw

    def _parse_escaped(self) -> str:
        end = self.text.find(ESCAPE, self.pos + 1)
        if end == -1:
            raise GrammarViolation("Unterminated backtick", self.text)
        value = self.text[self.pos + 1:end]
        self.pos = end + 1
        return value

    def _consume(self, token: str) -> bool:
        self._skip_ws()
        if self.text.startswith(token, self.pos):
            self.pos += len(token)
            return True
        return False

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1


def parse_filter(expression: str) -> Node:
    """
    Parse a filter expression.

    Raises:
        GrammarViolation: If the expression is not well formed
    """
    return _FilterParser(expression).parse()


def render_value(value: Value) -> str:
    if isinstance(value, Range):
        return f"{value.low}..{value.high}"
    needs_escape = (
        any(c in _ESCAPED_CHARS for c in value)
        or "&&" in value
        or "||" in value
        or value != value.strip()
        or not value
    )
    return f"{ESCAPE}{value}{ESCAPE}" if needs_escape else value


def render_clause(clause: Clause) -> str:
    prefix = "" if clause.operator == MATCH else clause.operator
    if clause.bracketed or len(clause.values) > 1:
        body = "[" + ",".join(render_value(v) for v in clause.values) + "]"
    else:
        body = render_value(clause.values[0])
    return f"{clause.field}:{prefix}{body}"


def render_filter(node: Node) -> str:
    """Render a parsed filter back to its canonical textual form."""
    if isinstance(node, Clause):
        return render_clause(node)
    if isinstance(node, And):
        parts = []
        for child in node.children:
            text = render_filter(child)
            parts.append(f"({text})" if isinstance(child, Or) else text)
        return " && ".join(parts)
    return " || ".join(render_filter(child) for child in node.children)


def iter_clauses(node: Node) -> Iterator[Clause]:
    if isinstance(node, Clause):
        yield node
        return
    for child in node.children:
        yield from iter_clauses(child)


def prune(node: Node, keep: Callable[[Clause], bool]) -> Optional[Node]:
    """
    Remove the clauses for which keep() is false.

    Returns:
        The remaining tree, or None when nothing is left
    """
    if isinstance(node, Clause):
        return node if keep(node) else None
    children = [c for c in (prune(child, keep) for child in node.children) if c is not None]
    if not children:
        return None
    if len(children) == 1:
        return children[0]
    return type(node)(tuple(children))


def normalize_filter(node: Node) -> Node:
    """
    Flatten nested groups of the same kind and fold same-field disjunctions.

    ``make:BMW || make:Honda || year:>2020`` becomes
    ``make:[BMW,Honda] || year:>2020``.
    """
    if isinstance(node, Clause):
        return node

    children: List[Node] = []
    for child in node.children:
        child = normalize_filter(child)
        if type(child) is type(node):
            children.extend(child.children)
        else:
            children.append(child)

    if isinstance(node, Or):
        children = _merge_same_field(children)
    if len(children) == 1:
        return children[0]
    return type(node)(tuple(children))


def _merge_same_field(children: List[Node]) -> List[Node]:
    merged: List[Node] = []
    positions: Dict[Tuple[str, str], int] = {}

    for child in children:
        if isinstance(child, Clause) and child.operator in (MATCH, EXACT):
            key = (child.field, child.operator)
            if key in positions:
                existing = merged[positions[key]]
                values = existing.values + tuple(
                    v for v in child.values if v not in existing.values
                )
                merged[positions[key]] = Clause(child.field, child.operator, values, bracketed=True)
                continue
            positions[key] = len(merged)
        merged.append(child)
    return merged


def parse_sort_clause(clause: str) -> SortKey:
    """
    Parse one ``field:direction`` pair.

    Raises:
        GrammarViolation: If the pair is malformed
    """
    field, separator, direction = clause.strip().rpartition(":")
    field = field.strip()
    if not separator or not field:
        raise GrammarViolation("Expected field:direction", clause.strip())
    direction = direction.strip().lower()
    if direction not in SORT_DIRECTIONS:
        raise GrammarViolation("Sort direction must be asc or desc", clause.strip())
    return SortKey(field, direction)


def parse_sort(expression: str) -> Tuple[SortKey, ...]:
    """Parse a sort expression without checking the number of pairs."""
    if not expression.strip():
        raise GrammarViolation("Empty sort expression", expression)
    return tuple(parse_sort_clause(part) for part in expression.split(","))


def render_sort(keys: Tuple[SortKey, ...]) -> str:
    return ",".join(f"{key.field}:{key.direction}" for key in keys)
