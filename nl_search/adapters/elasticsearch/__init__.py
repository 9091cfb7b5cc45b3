"""Elasticsearch adapter."""

from nl_search.adapters.elasticsearch.schema_extractor import ESSchemaExtractor
from nl_search.adapters.elasticsearch.query_translator import ESQueryTranslator
from nl_search.adapters.elasticsearch.executor import ESQueryExecutor
from nl_search.adapters.elasticsearch.backend import ESSearchBackend

__all__ = ["ESSchemaExtractor", "ESQueryTranslator", "ESQueryExecutor", "ESSearchBackend"]
