import asyncio

import pytest
from pydantic_ai.models.test import TestModel as StructuredTestModel

from conftest import StubLLMClient
from nl_search.core.errors import GrammarViolation, TranslationFailed
from nl_search.core.models import StructuredQuery
from nl_search.llm.client_factory import LLMClientFactory
from nl_search.query.grammar import parse_filter, parse_sort
from nl_search.query.translator import QueryTranslator


def test_translation_renders_prompt_and_normalizes(fields):
    client = StubLLMClient({"filter_by": "make:BMW || make:Honda", "sort_by": "year:desc"})
    translator = QueryTranslator(client)

    result = asyncio.run(translator.translate("BMW or Honda, newest first", fields))

    assert result == StructuredQuery(filter_by="make:[BMW,Honda]", sort_by="year:desc")
    assert len(client.prompts) == 1
    assert client.prompts[0] == translator.render_prompt("BMW or Honda, newest first", fields)
    assert client.output_models == [StructuredQuery]


def test_latest_ford_translation_is_grammatical(fields):
    client = StubLLMClient(
        {"query": None, "filter_by": "make:Ford && msrp:<40000", "sort_by": "year:desc"}
    )

    result = asyncio.run(QueryTranslator(client, strict=True).translate("Latest Ford under 40K$", fields))

    parse_filter(result.filter_by)
    parse_sort(result.sort_by)
    assert "query" not in result.to_dict()


def test_wrong_types_are_nulled_out(fields):
    client = StubLLMClient({"query": 42, "filter_by": ["make:Ford"], "sort_by": "year:desc"})

    result = asyncio.run(QueryTranslator(client).translate("anything", fields))

    assert result.to_dict() == {"sort_by": "year:desc"}


def test_output_that_is_not_an_object_fails(fields):
    client = StubLLMClient(["make:Ford"])

    with pytest.raises(TranslationFailed, match="not a structured query"):
        asyncio.run(QueryTranslator(client).translate("anything", fields))


def test_model_errors_become_translation_failed(fields):
    client = StubLLMClient(error=RuntimeError("rate limited"))

    with pytest.raises(TranslationFailed, match="rate limited"):
        asyncio.run(QueryTranslator(client).translate("anything", fields))


def test_model_call_timeout(fields):
    class SlowClient:
        async def parse_query(self, inputs, filter_model):
            await asyncio.sleep(5)
            return {}

    with pytest.raises(TranslationFailed, match="timed out"):
        asyncio.run(QueryTranslator(SlowClient(), timeout=0.01).translate("anything", fields))


def test_strict_mode_propagates_grammar_violations(fields):
    client = StubLLMClient({"sort_by": "make:asc"})

    with pytest.raises(GrammarViolation):
        asyncio.run(QueryTranslator(client, strict=True).translate("by make", fields))

    result = asyncio.run(QueryTranslator(client).translate("by make", fields))
    assert result.sort_by is None


def test_translation_through_pydantic_ai_agent(fields):
    model = StructuredTestModel(
        custom_output_args={"filter_by": "make:Ford && msrp:<40000", "sort_by": "year:desc"}
    )
    translator = QueryTranslator(LLMClientFactory(model=model))

    result = asyncio.run(translator.translate("Latest Ford under 40K$", fields))

    assert result.filter_by == "make:Ford && msrp:<40000"
    assert result.sort_by == "year:desc"


def test_client_factory_returns_structured_output_as_dict():
    model = StructuredTestModel(custom_output_args={"query": "hybrid", "sort_by": "msrp:asc"})
    client = LLMClientFactory(model=model)

    output = asyncio.run(client.parse_query("cheap hybrids", StructuredQuery))

    assert output == {"query": "hybrid", "filter_by": None, "sort_by": "msrp:asc"}


def test_agent_output_with_wrong_types_is_coerced(fields):
    model = StructuredTestModel(custom_output_args={"query": 7, "filter_by": "make:Ford"})
    translator = QueryTranslator(LLMClientFactory(model=model))

    result = asyncio.run(translator.translate("Ford", fields))

    assert result.to_dict() == {"filter_by": "make:Ford"}
