"""LLM client management."""

from nl_search.llm.client_factory import LLMClientFactory

__all__ = ["LLMClientFactory"]
