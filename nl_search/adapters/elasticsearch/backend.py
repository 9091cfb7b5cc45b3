"""
Elasticsearch search backend.

Combines schema extraction, query translation and execution behind the
ISearchBackend interface.
"""

from typing import Dict, List, Optional

from elasticsearch import Elasticsearch

from nl_search.adapters.elasticsearch.executor import ESQueryExecutor
from nl_search.adapters.elasticsearch.query_translator import ESQueryTranslator
from nl_search.adapters.elasticsearch.schema_extractor import ESSchemaExtractor
from nl_search.core.models import CollectionSchema, FacetCount, SearchParams, SearchResult


class ESSearchBackend:
    """Search backend over Elasticsearch indices."""

    def __init__(
        self,
        es_host: Optional[str] = None,
        category_fields: Optional[List[str]] = None,
        request_timeout: Optional[float] = None,
        es_client: Optional[Elasticsearch] = None,
    ):
        """
        Initialize Elasticsearch backend.

        Args:
            es_host: Elasticsearch host URL
            category_fields: List of fields to treat as facets
            request_timeout: Seconds allowed per Elasticsearch request
            es_client: Pre-configured client (takes precedence over es_host)
        """
        if es_client is None:
            if not es_host:
                raise ValueError("es_host or es_client is required")
            es_client = Elasticsearch(hosts=[es_host], request_timeout=request_timeout)

        self.es_client = es_client
        self.schema_extractor = ESSchemaExtractor(es_client, category_fields=category_fields)
        self.query_translator = ESQueryTranslator()
        self.query_executor = ESQueryExecutor(es_client)

    def get_collection_schema(self, name: str) -> CollectionSchema:
        return self.schema_extractor.get_collection_schema(name)

    def query_facet_counts(
        self, name: str, fields: List[str], max_values: int
    ) -> Dict[str, List[FacetCount]]:
        return self.schema_extractor.query_facet_counts(name, fields, max_values)

    def search(self, name: str, params: SearchParams) -> SearchResult:
        query = self.query_translator.translate(params, self.schema_extractor.field_info(name))
        return self.query_executor.execute(name, query)
