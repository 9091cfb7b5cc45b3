"""Query grammar, prompt rendering and translation components."""

from nl_search.query.grammar import parse_filter, parse_sort, render_filter, normalize_filter
from nl_search.query.prompt_generator import PromptGenerator
from nl_search.query.validator import GrammarValidator
from nl_search.query.translator import QueryTranslator

__all__ = [
    "parse_filter",
    "parse_sort",
    "render_filter",
    "normalize_filter",
    "PromptGenerator",
    "GrammarValidator",
    "QueryTranslator",
]
