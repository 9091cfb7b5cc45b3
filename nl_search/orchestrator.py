"""
Query orchestrator - main entry point.

Coordinates all components to provide a unified natural language search interface.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from nl_search.core.cache import TaggedCache
from nl_search.core.config import DEFAULT_MAX_ENUM_VALUES, Settings
from nl_search.core.errors import GrammarViolation, TranslationFailed
from nl_search.core.interfaces import ICache, ILLMClient, ISearchBackend
from nl_search.core.models import FieldDescriptor, StructuredQuery
from nl_search.llm.client_factory import LLMClientFactory
from nl_search.query.prompt_generator import PromptGenerator
from nl_search.query.translator import QueryTranslator
from nl_search.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)


class QueryOrchestrator:
    """
    Main orchestrator for natural language search.

    Coordinates schema introspection (through the field cache), prompt
    rendering, model translation, and search execution.
    """

    def __init__(
        self,
        backend: ISearchBackend,
        collection: str,
        llm_client: Optional[ILLMClient] = None,
        cache: Optional[ICache] = None,
        max_enum_values: int = DEFAULT_MAX_ENUM_VALUES,
        descriptions: Optional[Mapping[str, str]] = None,
        query_by: Optional[List[str]] = None,
        strict: bool = False,
        llm_timeout: Optional[float] = None,
        sort_hints: Optional[Sequence[str]] = None,
        fallback_on_failure: bool = True,
        per_page: int = 10,
    ):
        """
        Initialize query orchestrator.

        Args:
            backend: Search backend implementation
            collection: Collection (index) to search
            llm_client: Model client (for natural language queries)
            cache: Cache for the field table (a private TaggedCache by default)
            max_enum_values: Maximum number of enum values listed per faceted field
            descriptions: Per-field annotations shown in the prompt
            query_by: Fields the free-text part of a query is matched against
            strict: Reject invalid filter/sort clauses instead of stripping them
            llm_timeout: Seconds allowed for the model call
            sort_hints: Advisory sort rules rendered into the prompt
            fallback_on_failure: Search with the raw query when translation fails
            per_page: Default page size
        """
        self.backend = backend
        self.collection = collection
        self.llm_client = llm_client
        self.cache = cache if cache is not None else TaggedCache()
        self.query_by = list(query_by or [])
        self.fallback_on_failure = fallback_on_failure
        self.per_page = per_page
        self.sort_hints = sort_hints

        self.introspector = SchemaIntrospector(
            backend, max_enum_values=max_enum_values, descriptions=descriptions
        )
        self.translator: Optional[QueryTranslator] = None
        if llm_client is not None:
            self.translator = QueryTranslator(
                llm_client, strict=strict, timeout=llm_timeout, sort_hints=sort_hints
            )

    @classmethod
    def from_elasticsearch(
        cls,
        es_host: str,
        index_name: str,
        category_fields: Optional[List[str]] = None,
        llm_model: Optional[str] = None,
        llm_api_key: Optional[str] = None,
        llm_base_url: Optional[str] = None,
        request_timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> "QueryOrchestrator":
        """
        Create orchestrator for Elasticsearch.

        Args:
            es_host: Elasticsearch host URL
            index_name: Name of the index
            category_fields: List of fields to treat as facets
            llm_model: LLM model name
            llm_api_key: LLM API key
            llm_base_url: Base URL of an OpenAI-compatible API
            request_timeout: Seconds allowed per Elasticsearch request
            **kwargs: Passed through to the constructor

        Returns:
            Configured QueryOrchestrator for Elasticsearch
        """
        from nl_search.adapters.elasticsearch import ESSearchBackend

        backend = ESSearchBackend(
            es_host=es_host,
            category_fields=category_fields,
            request_timeout=request_timeout,
        )
        llm_client = None
        if llm_model:
            llm_client = LLMClientFactory(llm_model, llm_api_key, base_url=llm_base_url)

        return cls(backend=backend, collection=index_name, llm_client=llm_client, **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueryOrchestrator":
        """Create an Elasticsearch orchestrator from Settings."""
        from nl_search.adapters.elasticsearch import ESSearchBackend

        backend = ESSearchBackend(
            es_host=settings.es_host,
            category_fields=settings.category_fields,
            request_timeout=settings.es_timeout,
        )
        llm_config = settings.llm_config()
        llm_client = LLMClientFactory.from_config(llm_config) if llm_config else None

        return cls(
            backend=backend,
            collection=settings.es_index,
            llm_client=llm_client,
            max_enum_values=settings.max_enum_values,
            query_by=settings.query_by,
            strict=settings.strict_grammar,
            llm_timeout=settings.llm_timeout,
            per_page=settings.per_page,
        )

    @property
    def cache_key(self) -> str:
        return f"fields:{self.collection}"

    @property
    def cache_tag(self) -> str:
        return f"collection:{self.collection}"

    def get_fields(self, force_refresh: bool = False) -> Tuple[FieldDescriptor, ...]:
        """
        Get the field descriptor table of the collection.

        Args:
            force_refresh: If True, drop the cached table and re-introspect

        Returns:
            Ordered tuple of FieldDescriptor

        Raises:
            IntrospectionFailed: If the backend calls fail
        """
        if force_refresh:
            self.invalidate_fields()
        return self.cache.get_or_compute(
            self.cache_key,
            lambda: self.introspector.describe(self.collection),
            tags=(self.cache_tag,),
        )

    def invalidate_fields(self) -> int:
        """Drop the cached field table of the collection."""
        return self.cache.invalidate(self.cache_tag)

    def generate_prompt(self, user_query: str) -> str:
        """Render the prompt that would be sent for user_query."""
        return PromptGenerator(self.get_fields(), self.sort_hints).generate_prompt(user_query)

    async def translate(self, user_query: str) -> StructuredQuery:
        """
        Translate a natural language query.

        Raises:
            ValueError: If no model client is configured
            IntrospectionFailed: If the field table cannot be built
            TranslationFailed: If the model call fails
            GrammarViolation: In strict mode, if the output breaks the grammar
        """
        if self.translator is None:
            raise ValueError("LLM not configured. Provide llm_model and llm_api_key.")

        fields = self.get_fields()
        return await self.translator.translate(user_query, fields)

    async def search(
        self,
        user_query: str,
        page: int = 1,
        per_page: Optional[int] = None,
        execute: bool = True,
    ) -> Dict[str, Any]:
        """
        Translate a natural language query and optionally execute it.

        When translation fails (model error, strict grammar rejection, or no
        model configured) and fallback_on_failure is set, the raw query is
        searched as free text without filters or custom sort.

        Args:
            user_query: Natural language query string
            page: 1-based result page
            per_page: Page size (defaults to the orchestrator setting)
            execute: If True, execute the search and return results

        Returns:
            Dictionary with the structured query, search parameters, whether
            the fallback was used and optionally the results
        """
        fallback = False
        if self.translator is None and self.fallback_on_failure:
            logger.warning("LLM not configured, searching raw query")
            structured = StructuredQuery(query=user_query)
            fallback = True
        else:
            try:
                structured = await self.translate(user_query)
            except (TranslationFailed, GrammarViolation) as e:
                if not self.fallback_on_failure:
                    raise
                logger.warning("Translation failed, searching raw query: %s", e)
                structured = StructuredQuery(query=user_query)
                fallback = True

        params = structured.to_search_params(
            query_by=self.query_by, page=page, per_page=per_page or self.per_page
        )

        response: Dict[str, Any] = {
            "natural_language_query": user_query,
            "structured_query": structured.to_dict(),
            "search_params": params.model_dump(),
            "fallback": fallback,
        }

        if execute:
            result = self.backend.search(self.collection, params)
            response["results"] = result.model_dump()

        return response
