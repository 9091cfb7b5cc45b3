"""
Elasticsearch query executor.

Executes Elasticsearch DSL queries and returns normalized results.
"""

import logging
from typing import Any, Dict

from elasticsearch import Elasticsearch

from nl_search.core.models import SearchResult

logger = logging.getLogger(__name__)


class ESQueryExecutor:
    """
    Executes Elasticsearch queries.

    Failures are reported in the returned SearchResult rather than raised.
    """

    def __init__(self, es_client: Elasticsearch):
        """
        Initialize Elasticsearch query executor.

        Args:
            es_client: Elasticsearch client
        """
        self.es_client = es_client

    def execute(self, index_name: str, query: Dict[str, Any]) -> SearchResult:
        """
        Execute an Elasticsearch query.

        Args:
            index_name: Index to search
            query: Elasticsearch DSL request body

        Returns:
            SearchResult
        """
        kwargs = dict(query)
        if "from" in kwargs:
            kwargs["from_"] = kwargs.pop("from")

        try:
            response = self.es_client.search(index=index_name, **kwargs)
        except Exception as e:
            logger.error("Search on %s failed: %s", index_name, e)
            return SearchResult(error=str(e), success=False, metadata={"query": query})

        hits = response["hits"]
        total = hits["total"]["value"] if isinstance(hits["total"], dict) else hits["total"]
        return SearchResult(
            total_hits=total,
            documents=[hit["_source"] for hit in hits["hits"]],
            metadata={"query": query},
        )
