"""
Example: natural language search over an Elasticsearch car catalogue.

Expects an index whose mapping flags facets through field ``meta``, e.g.::

    "make": {"type": "keyword", "meta": {"facet": "true", "description": "Manufacturer"}},
    "msrp": {"type": "integer", "meta": {"description": "Price in USD"}},
    "year": {"type": "integer"}

Configuration is read from the environment (see nl_search.core.config).
"""

import asyncio
import json

from nl_search import QueryOrchestrator
from nl_search.core.config import Settings
from nl_search.core.logging import setup_logging


async def main():
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    orchestrator = QueryOrchestrator.from_settings(settings)

    print("=== Field Table ===")
    for field in orchestrator.get_fields():
        values = f" ({len(field.enum_values)} values)" if field.enum_values else ""
        print(f"  {field.name}: {field.data_type}{values}")

    for query in ["Latest Ford under 40K$", "BMW or Honda with at least 300 hp", "cheapest convertible"]:
        response = await orchestrator.search(query, per_page=5)
        print(f"\n=== {query} ===")
        print(json.dumps(response["structured_query"], indent=2))
        results = response.get("results", {})
        print(f"Total hits: {results.get('total_hits', 0)} (fallback: {response['fallback']})")
        for doc in results.get("documents", []):
            print(f"  {doc.get('year')} {doc.get('make')} {doc.get('model')} - ${doc.get('msrp')}")


if __name__ == "__main__":
    asyncio.run(main())
