"""
NL Search - natural language to structured search query translation.

Main entry point for creating query orchestrators for a search collection.
"""

from nl_search.orchestrator import QueryOrchestrator

__all__ = ["QueryOrchestrator"]
