"""Core interfaces, models and errors."""

from nl_search.core.errors import (
    NLSearchError,
    IntrospectionFailed,
    TranslationFailed,
    GrammarViolation,
)
from nl_search.core.interfaces import ISearchBackend, ILLMClient, ICache
from nl_search.core.models import (
    FieldSchema,
    CollectionSchema,
    FacetCount,
    FieldDescriptor,
    StructuredQuery,
    SearchParams,
    SearchResult,
    LLMConfig,
)

__all__ = [
    "NLSearchError",
    "IntrospectionFailed",
    "TranslationFailed",
    "GrammarViolation",
    "ISearchBackend",
    "ILLMClient",
    "ICache",
    "FieldSchema",
    "CollectionSchema",
    "FacetCount",
    "FieldDescriptor",
    "StructuredQuery",
    "SearchParams",
    "SearchResult",
    "LLMConfig",
]
