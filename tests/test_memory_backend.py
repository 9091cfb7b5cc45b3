import pytest

from nl_search.core.errors import GrammarViolation
from nl_search.core.models import SearchParams
from nl_search.query.grammar import parse_filter
from nl_search.adapters.memory import matches


def _models(result):
    return [doc["model"] for doc in result.documents]


def test_facet_counts_are_ordered_by_frequency(backend):
    counts = backend.query_facet_counts("cars", ["make", "market_category"], 3)

    assert [(c.value, c.count) for c in counts["make"]] == [("Ford", 4), ("BMW", 2), ("Honda", 2)]
    assert [c.value for c in counts["market_category"]] == ["Crossover", "Performance", "Hybrid"]


def test_unknown_collection(backend):
    with pytest.raises(KeyError):
        backend.get_collection_schema("bikes")


def test_match_all_returns_everything(backend):
    result = backend.search("cars", SearchParams(per_page=100))
    assert result.total_hits == 10


def test_free_text_query(backend):
    result = backend.search("cars", SearchParams(q="civic", query_by=["model"]))
    assert _models(result) == ["Civic (Hybrid)"]


def test_list_filter_on_array_field(backend):
    result = backend.search(
        "cars", SearchParams(filter_by="market_category:[Hybrid,Luxury]", per_page=100)
    )
    assert sorted(_models(result)) == ["Civic (Hybrid)", "M3", "Prius", "X3"]


def test_range_and_negation(backend):
    result = backend.search(
        "cars",
        SearchParams(filter_by="msrp:[27000..30000] && make:!=Ford", per_page=100),
    )
    assert sorted(_models(result)) == ["Civic (Hybrid)", "Prius"]


def test_backtick_value(backend):
    result = backend.search("cars", SearchParams(filter_by="model:`Civic (Hybrid)`"))
    assert result.total_hits == 1


def test_multi_key_sort_and_pagination(backend):
    params = SearchParams(sort_by="year:desc,msrp:asc", per_page=3, page=2)
    result = backend.search("cars", params)

    assert result.total_hits == 10
    # 2024: Telluride, Bronco; 2023: Prius, Civic, Escape; 2022: Mustang, M3
    assert _models(result) == ["Civic (Hybrid)", "Escape", "Mustang"]


def test_text_match_sort_keeps_order(backend):
    result = backend.search("cars", SearchParams(sort_by="_text_match:desc", per_page=2))
    assert _models(result) == ["Mustang", "Escape"]


def test_invalid_filter_raises(backend):
    with pytest.raises(GrammarViolation):
        backend.search("cars", SearchParams(filter_by="make:"))


def test_matches_is_case_insensitive_and_numeric_aware():
    document = {"make": "Ford", "specs": {"doors": 4}}

    assert matches(document, parse_filter("make:ford"))
    assert matches(document, parse_filter("specs.doors:4.0"))
    assert matches(document, parse_filter("specs.doors:>=4"))
    assert not matches(document, parse_filter("specs.seats:5"))
