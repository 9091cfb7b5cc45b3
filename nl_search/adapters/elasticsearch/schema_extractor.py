"""
Elasticsearch schema extraction.

Reads index mappings into CollectionSchema and samples facet values with a
single terms-aggregation request.
"""

import logging
from typing import Any, Dict, List, Optional

from elasticsearch import Elasticsearch

from nl_search.core.models import CollectionSchema, FacetCount, FieldSchema
from nl_search.schema.introspector import DESCRIPTIONS_METADATA_KEY
from nl_search.schema.type_mappings import TypeMapper

logger = logging.getLogger(__name__)

KEYWORD_SUBFIELD = "keyword"


def _body(response: Any) -> Dict[str, Any]:
    """Unwrap an elastic-transport response into a plain dict."""
    return getattr(response, "body", response)


def _flag(meta: Dict[str, Any], key: str) -> bool:
    return str(meta.get(key, "")).lower() == "true"


class ESSchemaExtractor:
    """
    Extracts collection schemas from Elasticsearch indices.

    Field-level ``meta`` entries carry what a mapping cannot express:
    ``description``, ``facet: "true"``, ``array: "true"`` and ``optional: "true"``.
    Fields listed in ``category_fields`` are faceted as well.
    """

    IGNORED_FIELD_TYPES = {"alias"}

    def __init__(
        self,
        es_client: Elasticsearch,
        category_fields: Optional[List[str]] = None,
    ):
        """
        Initialize Elasticsearch schema extractor.

        Args:
            es_client: Elasticsearch client
            category_fields: List of fields to treat as facets (enums)
        """
        self.es_client = es_client
        self.category_fields = list(category_fields or [])
        self._field_info: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def get_collection_schema(self, name: str) -> CollectionSchema:
        """
        Extract the schema of an index.

        Args:
            name: Index name

        Returns:
            CollectionSchema with leaf fields flattened to dotted paths
        """
        mappings = _body(self.es_client.indices.get_mapping(index=name))
        index_mapping = mappings.get(name, {}).get("mappings", {})

        fields: List[FieldSchema] = []
        descriptions: Dict[str, str] = {}
        field_info: Dict[str, Dict[str, Any]] = {}
        self._collect_fields(
            index_mapping.get("properties", {}), "", fields, descriptions, field_info
        )
        self._field_info[name] = field_info

        metadata = dict(index_mapping.get("_meta", {}))
        metadata[DESCRIPTIONS_METADATA_KEY] = descriptions
        return CollectionSchema(name=name, fields=fields, metadata=metadata)

    def _collect_fields(
        self,
        properties: Dict[str, Any],
        prefix: str,
        fields: List[FieldSchema],
        descriptions: Dict[str, str],
        field_info: Dict[str, Dict[str, Any]],
    ) -> None:
        for field_name, field_props in properties.items():
            full_path = f"{prefix}.{field_name}" if prefix else field_name

            if "properties" in field_props:
                self._collect_fields(
                    field_props["properties"], full_path, fields, descriptions, field_info
                )
                continue

            es_type = field_props.get("type", "object")
            if es_type in self.IGNORED_FIELD_TYPES:
                continue

            meta = field_props.get("meta", {})
            keyword = None
            if es_type == "text" and KEYWORD_SUBFIELD in field_props.get("fields", {}):
                keyword = f"{full_path}.{KEYWORD_SUBFIELD}"

            sortable = field_props.get("doc_values", True) is not False and (
                TypeMapper.is_sortable(es_type) or keyword is not None
            )
            fields.append(
                FieldSchema(
                    name=full_path,
                    type=TypeMapper.normalize_type(es_type, "elasticsearch", array=_flag(meta, "array")),
                    facet=_flag(meta, "facet") or full_path in self.category_fields,
                    index=field_props.get("index", True) is not False,
                    sort=sortable,
                    optional=_flag(meta, "optional"),
                )
            )
            if meta.get("description"):
                descriptions[full_path] = meta["description"]
            field_info[full_path] = {"es_type": es_type, "keyword": keyword}

    def field_info(self, name: str) -> Dict[str, Dict[str, Any]]:
        """
        Elasticsearch details per field path (type and keyword sub-field).

        Fetches the mapping on first use.
        """
        if name not in self._field_info:
            self.get_collection_schema(name)
        return self._field_info[name]

    def query_facet_counts(
        self, name: str, fields: List[str], max_values: int
    ) -> Dict[str, List[FacetCount]]:
        """
        Get the most frequent values of several fields in one request.

        Args:
            name: Index name
            fields: Field paths
            max_values: Maximum number of distinct values per field

        Returns:
            Mapping of field path to buckets, most frequent first
        """
        if not fields:
            return {}

        info = self.field_info(name)
        aggs = {}
        for i, field_path in enumerate(fields):
            agg_field = info.get(field_path, {}).get("keyword") or field_path
            aggs[f"facet_{i}"] = {"terms": {"field": agg_field, "size": max_values}}

        response = _body(self.es_client.search(index=name, size=0, aggs=aggs))
        aggregations = response.get("aggregations", {})

        counts: Dict[str, List[FacetCount]] = {}
        for i, field_path in enumerate(fields):
            buckets = aggregations.get(f"facet_{i}", {}).get("buckets", [])
            counts[field_path] = [
                FacetCount(value=bucket.get("key_as_string", bucket["key"]), count=bucket.get("doc_count", 0))
                for bucket in buckets
            ]
        logger.debug("Sampled facets of %s: %s", name, {k: len(v) for k, v in counts.items()})
        return counts
