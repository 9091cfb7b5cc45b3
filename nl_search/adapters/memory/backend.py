"""
In-memory search backend.

Evaluates filter and sort expressions directly against a list of documents.
Used for fixture datasets and local experiments.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Sequence, Tuple

from nl_search.core.models import (
    MATCH_ALL_QUERY,
    CollectionSchema,
    FacetCount,
    SearchParams,
    SearchResult,
)
from nl_search.query.grammar import (
    TEXT_MATCH_FIELD,
    And,
    Clause,
    Node,
    Or,
    Range,
    parse_filter,
    parse_sort,
)

logger = logging.getLogger(__name__)


def _number(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _values_of(document: Dict[str, Any], field: str) -> List[Any]:
    """Values stored under a (dotted) field path; arrays are expanded."""
    current: Any = document
    for part in field.split("."):
        if not isinstance(current, dict) or part not in current:
            return []
        current = current[part]
    if current is None:
        return []
    return list(current) if isinstance(current, (list, tuple)) else [current]


def _equals(stored: Any, value: str) -> bool:
    if isinstance(stored, bool):
        return str(stored).lower() == value.lower()
    stored_number, number = _number(stored), _number(value)
    if stored_number is not None and number is not None:
        return stored_number == number
    return str(stored).lower() == value.lower()


def _in_range(stored: Any, value: Range) -> bool:
    number = _number(stored)
    return number is not None and float(value.low) <= number <= float(value.high)


def _compare(stored: Any, operator: str, value: str) -> bool:
    left, right = _number(stored), _number(value)
    if left is None or right is None:
        left, right = str(stored), value
    if operator == ">":
        return left > right
    if operator == "<":
        return left < right
    if operator == ">=":
        return left >= right
    return left <= right


def matches(document: Dict[str, Any], node: Node) -> bool:
    """Evaluate a parsed filter against one document."""
    if isinstance(node, And):
        return all(matches(document, child) for child in node.children)
    if isinstance(node, Or):
        return any(matches(document, child) for child in node.children)
    return _matches_clause(document, node)


def _matches_clause(document: Dict[str, Any], clause: Clause) -> bool:
    stored = _values_of(document, clause.field)

    if clause.operator in (">", "<", ">=", "<="):
        return any(_compare(s, clause.operator, clause.values[0]) for s in stored)

    hit = any(
        _in_range(s, v) if isinstance(v, Range) else _equals(s, v)
        for s in stored
        for v in clause.values
    )
    return not hit if clause.negated else hit


class InMemorySearchBackend:
    """
    Search backend over documents held in memory.

    Free-text queries match documents containing every query token in one of
    the ``query_by`` fields (case-insensitive).
    """

    def __init__(self):
        self._collections: Dict[str, Tuple[CollectionSchema, List[Dict[str, Any]]]] = {}

    def add_collection(
        self, schema: CollectionSchema, documents: Sequence[Dict[str, Any]]
    ) -> None:
        self._collections[schema.name] = (schema, list(documents))

    def _collection(self, name: str) -> Tuple[CollectionSchema, List[Dict[str, Any]]]:
        if name not in self._collections:
            raise KeyError(f"Collection '{name}' not found")
        return self._collections[name]

    def get_collection_schema(self, name: str) -> CollectionSchema:
        return self._collection(name)[0]

    def query_facet_counts(
        self, name: str, fields: List[str], max_values: int
    ) -> Dict[str, List[FacetCount]]:
        """Count distinct values; most frequent first, ties by value."""
        _, documents = self._collection(name)
        counts: Dict[str, List[FacetCount]] = {}
        for field in fields:
            counter = Counter(str(v) for doc in documents for v in _values_of(doc, field))
            ordered = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
            counts[field] = [FacetCount(value=v, count=c) for v, c in ordered[:max_values]]
        return counts

    def search(self, name: str, params: SearchParams) -> SearchResult:
        """
        Filter, sort and paginate the documents of a collection.

        Raises:
            GrammarViolation: If filter_by or sort_by cannot be parsed
        """
        _, documents = self._collection(name)
        hits = list(documents)

        if params.q and params.q != MATCH_ALL_QUERY:
            tokens = params.q.lower().split()
            hits = [doc for doc in hits if self._matches_text(doc, tokens, params.query_by)]

        if params.filter_by:
            node = parse_filter(params.filter_by)
            hits = [doc for doc in hits if matches(doc, node)]

        if params.sort_by:
            # Stable sorts applied from the last key to the first
            for key in reversed(parse_sort(params.sort_by)):
                if key.field == TEXT_MATCH_FIELD:
                    continue
                present = [d for d in hits if _values_of(d, key.field)]
                missing = [d for d in hits if not _values_of(d, key.field)]
                present.sort(
                    key=lambda d: self._sort_value(_values_of(d, key.field)[0]),
                    reverse=key.direction == "desc",
                )
                hits = present + missing

        start = (params.page - 1) * params.per_page
        page = hits[start:start + params.per_page]
        logger.debug("In-memory search on %s matched %d documents", name, len(hits))
        return SearchResult(total_hits=len(hits), documents=page)

    @staticmethod
    def _matches_text(document: Dict[str, Any], tokens: List[str], query_by: List[str]) -> bool:
        fields = query_by or list(document.keys())
        text = " ".join(str(v) for f in fields for v in _values_of(document, f)).lower()
        return all(token in text for token in tokens)

    @staticmethod
    def _sort_value(value: Any) -> Tuple[int, Any]:
        number = _number(value)
        return (0, number) if number is not None else (1, str(value).lower())
