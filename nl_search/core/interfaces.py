"""
Abstract interfaces for external collaborators.

These protocols define the contract that search backends, model clients and
caches must implement to work with the translation pipeline.
"""

from typing import Any, Callable, Dict, Iterable, List, Protocol, TypeVar

from pydantic import BaseModel

from nl_search.core.models import CollectionSchema, FacetCount, SearchParams, SearchResult

T = TypeVar("T")


class ISearchBackend(Protocol):
    """
    Search engine capability.

    The exact wire protocol is the concern of the implementing adapter.
    """

    def get_collection_schema(self, name: str) -> CollectionSchema:
        """
        Return the field definitions and metadata of a collection.

        Args:
            name: Collection (index) name

        Returns:
            CollectionSchema with fields in declaration order
        """
        ...

    def query_facet_counts(
        self, name: str, fields: List[str], max_values: int
    ) -> Dict[str, List[FacetCount]]:
        """
        Run one value-distribution query over several fields.

        Args:
            name: Collection (index) name
            fields: Faceted field names
            max_values: Maximum number of distinct values per field

        Returns:
            Mapping of field name to value/count buckets, most frequent first
        """
        ...

    def search(self, name: str, params: SearchParams) -> SearchResult:
        """
        Execute a search request.

        Args:
            name: Collection (index) name
            params: Concrete search parameters

        Returns:
            SearchResult
        """
        ...


class ILLMClient(Protocol):
    """Generative model capability with structured output."""

    async def parse_query(
        self,
        inputs: Any,
        filter_model: type[BaseModel],
    ) -> Dict[str, Any]:
        """
        Run the model and return its output as a plain dictionary.

        Args:
            inputs: Prompt text (or list of inputs)
            filter_model: Pydantic model describing the output shape

        Returns:
            Structured output as a dictionary
        """
        ...


class ICache(Protocol):
    """Memoization capability with manual, tag based invalidation."""

    def get_or_compute(
        self, key: str, compute: Callable[[], T], tags: Iterable[str] = ()
    ) -> T:
        ...

    def invalidate(self, tag: str) -> int:
        ...
