import pytest

from nl_search.core.errors import GrammarViolation
from nl_search.core.models import SearchParams, StructuredQuery
from nl_search.query.grammar import parse_filter
from nl_search.query.validator import GrammarValidator


def test_valid_query_passes_through(fields):
    query = StructuredQuery(filter_by="make:Ford && msrp:<40000", sort_by="year:desc")

    normalized = GrammarValidator(fields).normalize(query)

    assert normalized.filter_by == "make:Ford && msrp:<40000"
    assert normalized.sort_by == "year:desc"


def test_same_field_or_is_rewritten_in_both_modes(fields):
    query = StructuredQuery(filter_by="make:BMW || make:Honda")

    assert GrammarValidator(fields).normalize(query).filter_by == "make:[BMW,Honda]"
    assert GrammarValidator(fields, strict=True).normalize(query).filter_by == "make:[BMW,Honda]"


def test_rewrite_returns_the_same_result_set(fields, backend):
    original = "make:BMW || make:Honda"
    rewritten = GrammarValidator(fields).normalize(StructuredQuery(filter_by=original)).filter_by

    before = backend.search("cars", SearchParams(filter_by=original, per_page=100))
    after = backend.search("cars", SearchParams(filter_by=rewritten, per_page=100))

    assert before.total_hits == after.total_hits == 4
    assert before.documents == after.documents


def test_rewrite_equivalence_with_other_conjuncts(fields, backend):
    original = "(make:BMW || make:Honda) && year:>=2020"
    rewritten = GrammarValidator(fields).normalize(StructuredQuery(filter_by=original)).filter_by

    assert rewritten == "make:[BMW,Honda] && year:>=2020"
    before = backend.search("cars", SearchParams(filter_by=original, per_page=100))
    after = backend.search("cars", SearchParams(filter_by=rewritten, per_page=100))
    assert [d["model"] for d in before.documents] == [d["model"] for d in after.documents]


def test_lenient_mode_strips_non_filterable_clauses(fields):
    query = StructuredQuery(filter_by="vin:ABC123 && make:Ford && color:red")

    normalized, violations = GrammarValidator(fields).normalize_with_report(query)

    assert normalized.filter_by == "make:Ford"
    assert [v.reason for v in violations] == [
        "Field 'vin' is not filterable",
        "Unknown field 'color'",
    ]


def test_strict_mode_rejects_non_filterable_clauses(fields):
    with pytest.raises(GrammarViolation, match="not filterable"):
        GrammarValidator(fields, strict=True).normalize(StructuredQuery(filter_by="vin:ABC123"))


def test_non_numeric_values_on_numeric_fields(fields):
    query = StructuredQuery(filter_by="make:Ford && msrp:<40K")

    assert GrammarValidator(fields).normalize(query).filter_by == "make:Ford"
    with pytest.raises(GrammarViolation, match="expects a number"):
        GrammarValidator(fields, strict=True).normalize(query)


def test_comparison_on_string_field_is_rejected(fields):
    query = StructuredQuery(filter_by="make:>Ford")
    assert GrammarValidator(fields).normalize(query).filter_by is None


def test_unparsable_filter_is_dropped_or_rejected(fields):
    query = StructuredQuery(query="ford", filter_by="make:Ford &&", sort_by="year:desc")

    normalized = GrammarValidator(fields).normalize(query)
    assert normalized.filter_by is None
    assert normalized.query == "ford"
    assert normalized.sort_by == "year:desc"

    with pytest.raises(GrammarViolation):
        GrammarValidator(fields, strict=True).normalize(query)


def test_sort_on_non_sortable_field(fields):
    query = StructuredQuery(sort_by="make:asc,year:desc")

    assert GrammarValidator(fields).normalize(query).sort_by == "year:desc"
    with pytest.raises(GrammarViolation, match="not sortable"):
        GrammarValidator(fields, strict=True).normalize(query)


def test_sort_with_four_pairs_is_rejected_by_strict_validator(fields):
    query = StructuredQuery(sort_by="year:desc,msrp:asc,engine_hp:desc,highway_mpg:desc")

    with pytest.raises(GrammarViolation, match="At most 3"):
        GrammarValidator(fields, strict=True).normalize(query)

    normalized = GrammarValidator(fields).normalize(query)
    assert normalized.sort_by == "year:desc,msrp:asc,engine_hp:desc"


def test_three_sort_pairs_are_accepted(fields):
    query = StructuredQuery(sort_by="year:DESC, msrp:asc, _text_match:desc")
    normalized = GrammarValidator(fields, strict=True).normalize(query)
    assert normalized.sort_by == "year:desc,msrp:asc,_text_match:desc"


def test_duplicate_sort_field(fields):
    query = StructuredQuery(sort_by="year:desc,year:asc")
    assert GrammarValidator(fields).normalize(query).sort_by == "year:desc"


def test_everything_stripped_yields_empty_query(fields):
    query = StructuredQuery(filter_by="vin:1", sort_by="vin:asc")
    normalized = GrammarValidator(fields).normalize(query)
    assert normalized.to_dict() == {}


def test_latest_ford_output_is_grammatical(fields):
    # Plausible model output for "Latest Ford under 40K$"
    query = StructuredQuery(filter_by="make:Ford && msrp:<40000", sort_by="year:desc")
    normalized = GrammarValidator(fields, strict=True).normalize(query)

    parse_filter(normalized.filter_by)
    assert normalized.sort_by.split(":")[0] == "year"
