"""
Validation and normalization of model-produced structured queries.

Model output is untrusted: expressions may reference unknown, non-filterable or
non-sortable fields, or break the grammar. In lenient mode offending clauses
are stripped; in strict mode the first violation is raised.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from nl_search.core.errors import GrammarViolation
from nl_search.core.models import FieldDescriptor, StructuredQuery
from nl_search.query.grammar import (
    COMPARISON_OPERATORS,
    MAX_SORT_FIELDS,
    TEXT_MATCH_FIELD,
    Clause,
    Range,
    SortKey,
    normalize_filter,
    parse_filter,
    parse_sort_clause,
    prune,
    render_clause,
    render_filter,
    render_sort,
)
from nl_search.schema.type_mappings import TypeMapper

logger = logging.getLogger(__name__)


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


class GrammarValidator:
    """
    Checks filter/sort expressions against the field table.

    Same-field disjunctions are always folded into the bracket form, in both
    modes, so ``make:BMW || make:Honda`` is returned as ``make:[BMW,Honda]``.
    """

    def __init__(self, fields: Sequence[FieldDescriptor], strict: bool = False):
        """
        Initialize grammar validator.

        Args:
            fields: Field descriptors of the target collection
            strict: Raise GrammarViolation instead of stripping invalid clauses
        """
        self.fields: Dict[str, FieldDescriptor] = {f.name: f for f in fields}
        self.strict = strict

    def normalize(self, structured_query: StructuredQuery) -> StructuredQuery:
        """
        Validate and normalize a structured query.

        Raises:
            GrammarViolation: In strict mode, on the first violation
        """
        normalized, _ = self.normalize_with_report(structured_query)
        return normalized

    def normalize_with_report(
        self, structured_query: StructuredQuery
    ) -> Tuple[StructuredQuery, List[GrammarViolation]]:
        """
        Validate and normalize a structured query.

        Returns:
            Tuple of the normalized query and the violations that were stripped
        """
        violations: List[GrammarViolation] = []

        filter_by = None
        if structured_query.filter_by:
            filter_by = self._normalize_filter(structured_query.filter_by, violations)

        sort_by = None
        if structured_query.sort_by:
            sort_by = self._normalize_sort(structured_query.sort_by, violations)

        for violation in violations:
            logger.warning("Stripped invalid expression: %s", violation)

        normalized = StructuredQuery(
            query=structured_query.query, filter_by=filter_by, sort_by=sort_by
        )
        return normalized, violations

    def _reject(self, violation: GrammarViolation, violations: List[GrammarViolation]) -> None:
        if self.strict:
            raise violation
        violations.append(violation)

    def _normalize_filter(
        self, expression: str, violations: List[GrammarViolation]
    ) -> Optional[str]:
        try:
            node = parse_filter(expression)
        except GrammarViolation as e:
            self._reject(e, violations)
            return None

        def keep(clause: Clause) -> bool:
            problem = self._clause_problem(clause)
            if problem is None:
                return True
            self._reject(GrammarViolation(problem, render_clause(clause)), violations)
            return False

        node = prune(node, keep)
        if node is None:
            return None
        return render_filter(normalize_filter(node))

    def _clause_problem(self, clause: Clause) -> Optional[str]:
        field = self.fields.get(clause.field)
        if field is None:
            return f"Unknown field '{clause.field}'"
        if not field.filterable:
            return f"Field '{clause.field}' is not filterable"

        numeric = TypeMapper.is_numeric(field.data_type)
        has_range = any(isinstance(v, Range) for v in clause.values)
        if (clause.operator in COMPARISON_OPERATORS or has_range) and not (
            numeric or field.data_type.startswith("date")
        ):
            return f"Field '{clause.field}' does not support numeric comparisons"
        if numeric:
            for value in clause.values:
                if isinstance(value, str) and not _is_number(value):
                    return f"Field '{clause.field}' expects a number, got '{value}'"
        return None

    def _normalize_sort(
        self, expression: str, violations: List[GrammarViolation]
    ) -> Optional[str]:
        keys: List[SortKey] = []
        for part in expression.split(","):
            try:
                key = parse_sort_clause(part)
            except GrammarViolation as e:
                self._reject(e, violations)
                continue

            problem = self._sort_problem(key, keys)
            if problem is not None:
                self._reject(GrammarViolation(problem, part.strip()), violations)
                continue
            keys.append(key)

        if len(keys) > MAX_SORT_FIELDS:
            self._reject(
                GrammarViolation(
                    f"At most {MAX_SORT_FIELDS} sort fields are allowed", expression
                ),
                violations,
            )
            keys = keys[:MAX_SORT_FIELDS]

        return render_sort(tuple(keys)) or None

    def _sort_problem(self, key: SortKey, accepted: List[SortKey]) -> Optional[str]:
        if any(k.field == key.field for k in accepted):
            return f"Field '{key.field}' is sorted on more than once"
        if key.field == TEXT_MATCH_FIELD:
            return None
        field = self.fields.get(key.field)
        if field is None:
            return f"Unknown field '{key.field}'"
        if not field.sortable:
            return f"Field '{key.field}' is not sortable"
        return None
