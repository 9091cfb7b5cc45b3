"""
Schema introspection.

Turns a collection's field definitions and facet value distributions into the
ordered field table that is embedded in the translation prompt.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from nl_search.core.errors import IntrospectionFailed
from nl_search.core.interfaces import ISearchBackend
from nl_search.core.models import CollectionSchema, FacetCount, FieldDescriptor, FieldSchema

logger = logging.getLogger(__name__)

FacetSampler = Callable[[List[str], int], Mapping[str, Sequence[Any]]]

DESCRIPTIONS_METADATA_KEY = "field_descriptions"


def describe_fields(
    schema: CollectionSchema,
    facet_sampler: FacetSampler,
    max_enum_values: int,
    descriptions: Optional[Mapping[str, str]] = None,
) -> Tuple[FieldDescriptor, ...]:
    """
    Describe every field of a collection.

    Faceted fields are sampled in a single call asking for one value more than
    ``max_enum_values``; receiving that extra value marks the field as truncated.

    Args:
        schema: Collection definition
        facet_sampler: Callable(fields, max_values) returning value/count buckets per field
        max_enum_values: Maximum number of enum values kept per faceted field
        descriptions: Per-field annotations; override those in the schema metadata

    Returns:
        Non-faceted descriptors followed by faceted ones, each group in
        declaration order

    Raises:
        ValueError: If max_enum_values is negative
        IntrospectionFailed: If the sampler output or the description metadata is malformed
    """
    if max_enum_values < 0:
        raise ValueError("max_enum_values must be >= 0")

    stored = schema.metadata.get(DESCRIPTIONS_METADATA_KEY) or {}
    if not isinstance(stored, Mapping):
        raise IntrospectionFailed(
            f"Malformed '{DESCRIPTIONS_METADATA_KEY}' metadata: expected a mapping, "
            f"got {type(stored).__name__}"
        )
    annotations: Dict[str, str] = dict(stored)
    annotations.update(descriptions or {})

    plain = [f for f in schema.fields if not f.facet]
    faceted = [f for f in schema.fields if f.facet]

    samples: Mapping[str, Sequence[Any]] = {}
    if faceted:
        samples = facet_sampler([f.name for f in faceted], max_enum_values + 1)
        if not isinstance(samples, Mapping):
            raise IntrospectionFailed(
                f"Facet sampler returned {type(samples).__name__}, expected a mapping"
            )

    described = [_descriptor(f, annotations) for f in plain]
    for field in faceted:
        values = _facet_values(field.name, samples.get(field.name) or [])
        truncated = len(values) > max_enum_values
        described.append(
            _descriptor(
                field,
                annotations,
                enum_values=tuple(values[:max_enum_values]),
                enum_truncated=truncated,
            )
        )
    return tuple(described)


def _descriptor(
    field: FieldSchema,
    annotations: Mapping[str, str],
    enum_values: Tuple[str, ...] = (),
    enum_truncated: bool = False,
) -> FieldDescriptor:
    return FieldDescriptor(
        name=field.name,
        data_type=field.type,
        filterable=field.index,
        sortable=field.sort,
        enum_values=enum_values,
        enum_truncated=enum_truncated,
        description=annotations.get(field.name) or None,
    )


def _facet_values(field_name: str, buckets: Sequence[Any]) -> List[str]:
    """Extract the bucket values as strings, keeping backend order."""
    if isinstance(buckets, (str, bytes)) or not isinstance(buckets, Sequence):
        raise IntrospectionFailed(f"Malformed facet counts for field '{field_name}'")

    values = []
    for bucket in buckets:
        try:
            if isinstance(bucket, FacetCount):
                value = bucket.value
            elif isinstance(bucket, Mapping):
                value = FacetCount.model_validate(bucket).value
            else:
                raise TypeError(type(bucket).__name__)
        except (TypeError, ValidationError) as e:
            raise IntrospectionFailed(
                f"Malformed facet bucket for field '{field_name}': {e}"
            ) from e
        values.append(str(value))
    return values


class SchemaIntrospector:
    """
    Produces field descriptors for collections served by a search backend.

    Each call to ``describe`` issues one schema request and, when the
    collection has faceted fields, one facet-count request. Results are not
    cached here; see ``QueryOrchestrator.get_fields``.
    """

    def __init__(
        self,
        backend: ISearchBackend,
        max_enum_values: int,
        descriptions: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize schema introspector.

        Args:
            backend: Search backend implementation
            max_enum_values: Maximum number of enum values listed per faceted field
            descriptions: Per-field annotations (units, semantics)
        """
        if max_enum_values < 0:
            raise ValueError("max_enum_values must be >= 0")
        self.backend = backend
        self.max_enum_values = max_enum_values
        self.descriptions = dict(descriptions or {})

    def describe(self, collection: str) -> Tuple[FieldDescriptor, ...]:
        """
        Describe the fields of a collection.

        Args:
            collection: Collection name

        Returns:
            Ordered tuple of FieldDescriptor

        Raises:
            IntrospectionFailed: If a backend call fails or returns a malformed shape
        """
        schema = self._fetch_schema(collection)

        def sample(fields: List[str], max_values: int) -> Mapping[str, Sequence[Any]]:
            try:
                return self.backend.query_facet_counts(collection, fields, max_values)
            except Exception as e:
                raise IntrospectionFailed(
                    f"Facet query on collection '{collection}' failed: {e}"
                ) from e

        fields = describe_fields(schema, sample, self.max_enum_values, self.descriptions)
        logger.info(
            "Described %d fields of collection %s (%d faceted)",
            len(fields),
            collection,
            sum(1 for f in schema.fields if f.facet),
        )
        return fields

    def _fetch_schema(self, collection: str) -> CollectionSchema:
        try:
            raw = self.backend.get_collection_schema(collection)
        except Exception as e:
            raise IntrospectionFailed(
                f"Schema retrieval for collection '{collection}' failed: {e}"
            ) from e

        if isinstance(raw, CollectionSchema):
            return raw
        try:
            return CollectionSchema.model_validate(raw)
        except ValidationError as e:
            raise IntrospectionFailed(
                f"Malformed schema for collection '{collection}': {e}"
            ) from e
