"""
Shared data models for the translation pipeline.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

MATCH_ALL_QUERY = "*"


class FieldSchema(BaseModel):
    """Represents a single field of a search collection, as declared by the backend."""

    name: str
    type: str  # string, int32, int64, float, bool, date, string[], ...
    facet: bool = False
    index: bool = True  # filterable
    sort: bool = False
    optional: bool = False


class CollectionSchema(BaseModel):
    """Collection definition returned by a search backend."""

    name: str
    fields: List[FieldSchema]
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("fields")
    @classmethod
    def _unique_names(cls, fields: List[FieldSchema]) -> List[FieldSchema]:
        seen = set()
        for field in fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name '{field.name}'")
            seen.add(field.name)
        return fields


class FacetCount(BaseModel):
    """One bucket of a value-distribution query."""

    value: Any
    count: int = 0


class FieldDescriptor(BaseModel):
    """
    Prompt-facing description of one collection field.

    Instances are immutable snapshots derived from collection metadata and
    facet counts, so a sequence of them can be shared between requests.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str
    filterable: bool
    sortable: bool
    enum_values: Tuple[str, ...] = ()
    enum_truncated: bool = False
    description: Optional[str] = None


class SearchParams(BaseModel):
    """Concrete parameters of a downstream search request."""

    q: str = MATCH_ALL_QUERY
    query_by: List[str] = Field(default_factory=list)
    filter_by: str = ""
    sort_by: str = ""
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1, le=250)


class StructuredQuery(BaseModel):
    """
    Structured form of a natural language search request.

    Every attribute is optional. Absent attributes are omitted when serialized;
    defaults are only substituted by ``to_search_params``.
    """

    model_config = ConfigDict(extra="ignore")

    query: Optional[str] = Field(
        default=None,
        description="Free-text search terms left after extracting filters, or '*' to match everything",
    )
    filter_by: Optional[str] = Field(
        default=None,
        description="Filter expression, e.g. 'make:[BMW,Honda] && msrp:<40000'",
    )
    sort_by: Optional[str] = Field(
        default=None,
        description="Up to 3 comma separated field:direction pairs, e.g. 'year:desc'",
    )

    @field_validator("query", "filter_by", "sort_by", mode="before")
    @classmethod
    def _strings_only(cls, value: Any, info) -> Optional[str]:
        """Null out anything that is not a non-blank string."""
        if value is None:
            return None
        if not isinstance(value, str):
            logger.warning(
                "Discarding %s: expected a string, got %s", info.field_name, type(value).__name__
            )
            return None
        value = value.strip()
        return value or None

    def to_dict(self) -> Dict[str, str]:
        """Serialize with absent attributes omitted."""
        return self.model_dump(exclude_none=True)

    def to_search_params(
        self,
        query_by: Optional[List[str]] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> SearchParams:
        """
        Convert into concrete search parameters.

        Args:
            query_by: Fields the free-text query is matched against
            page: 1-based result page
            per_page: Page size

        Returns:
            SearchParams with '*' as default query and empty filter/sort
        """
        return SearchParams(
            q=self.query or MATCH_ALL_QUERY,
            query_by=list(query_by or []),
            filter_by=self.filter_by or "",
            sort_by=self.sort_by or "",
            page=page,
            per_page=per_page,
        )


class SearchResult(BaseModel):
    """Standardized search result format."""

    total_hits: int = 0
    documents: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
    success: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)


class LLMConfig(BaseModel):
    """Configuration for LLM client."""

    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.0
    max_tokens: Optional[int] = None
    retries: int = 3
    timeout: Optional[float] = None
