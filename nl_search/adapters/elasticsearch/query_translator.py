"""
Elasticsearch query translator.

Converts SearchParams (free-text query, filter and sort expressions) to
Elasticsearch DSL.
"""

from typing import Any, Dict, List, Union

from nl_search.core.models import MATCH_ALL_QUERY, SearchParams
from nl_search.query.grammar import (
    MATCH,
    TEXT_MATCH_FIELD,
    And,
    Clause,
    Node,
    Or,
    Range,
    SortKey,
    parse_filter,
    parse_sort,
)

NUMERIC_ES_TYPES = {
    "integer", "long", "short", "byte", "unsigned_long",
    "double", "float", "half_float", "scaled_float",
}

RANGE_OPERATORS = {">": "gt", "<": "lt", ">=": "gte", "<=": "lte"}


class ESQueryTranslator:
    """
    Translates search parameters to Elasticsearch DSL.

    ``field_info`` maps field paths to ``{"es_type": ..., "keyword": ...}`` as
    produced by ESSchemaExtractor.field_info.
    """

    def translate(
        self, params: SearchParams, field_info: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Convert SearchParams to an Elasticsearch DSL request body.

        Raises:
            GrammarViolation: If filter_by or sort_by cannot be parsed
        """
        must: List[Dict[str, Any]] = []
        if params.q and params.q != MATCH_ALL_QUERY:
            if params.query_by:
                must.append(
                    {"multi_match": {"query": params.q, "fields": params.query_by, "operator": "and"}}
                )
            else:
                must.append({"simple_query_string": {"query": params.q, "default_operator": "and"}})

        filters: List[Dict[str, Any]] = []
        if params.filter_by:
            filters.append(self.translate_filter(parse_filter(params.filter_by), field_info))

        if must or filters:
            bool_query: Dict[str, Any] = {}
            if must:
                bool_query["must"] = must
            if filters:
                bool_query["filter"] = filters
            query: Dict[str, Any] = {"bool": bool_query}
        else:
            query = {"match_all": {}}

        elastic_query: Dict[str, Any] = {
            "query": query,
            "from": (params.page - 1) * params.per_page,
            "size": params.per_page,
        }
        if params.sort_by:
            elastic_query["sort"] = [
                self._translate_sort(key, field_info) for key in parse_sort(params.sort_by)
            ]
        return elastic_query

    def translate_filter(
        self, node: Node, field_info: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Translate a parsed filter tree to a query clause."""
        if isinstance(node, And):
            return {"bool": {"filter": [self.translate_filter(c, field_info) for c in node.children]}}
        if isinstance(node, Or):
            return {
                "bool": {
                    "should": [self.translate_filter(c, field_info) for c in node.children],
                    "minimum_should_match": 1,
                }
            }
        return self._translate_clause(node, field_info)

    def _translate_clause(
        self, clause: Clause, field_info: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        info = field_info.get(clause.field, {})
        es_type = info.get("es_type")
        field = clause.field

        if clause.operator in RANGE_OPERATORS:
            bound = RANGE_OPERATORS[clause.operator]
            return {"range": {field: {bound: self._coerce(clause.values[0], es_type)}}}

        exact_field = info.get("keyword") or field
        options = []
        for value in clause.values:
            if isinstance(value, Range):
                options.append(
                    {"range": {field: {"gte": self._coerce(value.low, es_type), "lte": self._coerce(value.high, es_type)}}}
                )
            elif es_type == "text" and clause.operator == MATCH:
                options.append({"match": {field: {"query": value, "operator": "and"}}})
            else:
                options.append({"term": {exact_field: self._coerce(value, es_type)}})

        positive = options[0] if len(options) == 1 else {
            "bool": {"should": options, "minimum_should_match": 1}
        }
        if clause.negated:
            return {"bool": {"must_not": [positive]}}
        return positive

    @staticmethod
    def _translate_sort(key: SortKey, field_info: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        if key.field == TEXT_MATCH_FIELD:
            return {"_score": {"order": key.direction}}
        field = field_info.get(key.field, {}).get("keyword") or key.field
        return {field: {"order": key.direction}}

    @staticmethod
    def _coerce(value: str, es_type: Any) -> Union[str, int, float, bool]:
        """Convert a grammar value to the JSON type Elasticsearch expects."""
        if es_type in NUMERIC_ES_TYPES:
            try:
                number = float(value)
            except ValueError:
                return value
            return int(number) if number.is_integer() else number
        if es_type == "boolean" and value.lower() in ("true", "false"):
            return value.lower() == "true"
        return value
