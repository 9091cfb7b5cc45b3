"""In-memory adapter."""

from nl_search.adapters.memory.backend import InMemorySearchBackend, matches

__all__ = ["InMemorySearchBackend", "matches"]
