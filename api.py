"""
FastAPI REST API for natural language search.

Converts natural language queries to structured search parameters and runs them.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from nl_search import QueryOrchestrator
from nl_search.core.config import Settings
from nl_search.core.errors import GrammarViolation, IntrospectionFailed, TranslationFailed
from nl_search.core.logging import setup_logging
from nl_search.core.models import FieldDescriptor, StructuredQuery

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Natural Language Search API",
    description="Translate natural language queries into filter/sort search parameters",
    version="1.0.0",
)


class QueryRequest(BaseModel):
    """Request model for natural language query."""
    query: str = Field(..., min_length=1, description="Natural language query string")


class SearchRequest(QueryRequest):
    page: int = Field(1, ge=1, description="1-based result page")
    per_page: Optional[int] = Field(None, ge=1, le=250, description="Page size")
    execute: bool = Field(True, description="Run the search and return results")


class SearchResponse(BaseModel):
    natural_language_query: str
    structured_query: Dict[str, str]
    search_params: Dict[str, Any]
    fallback: bool
    results: Optional[Dict[str, Any]] = None


_orchestrator: Optional[QueryOrchestrator] = None


def get_orchestrator() -> QueryOrchestrator:
    """Create or get the cached orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = QueryOrchestrator.from_settings(Settings.from_env())
    return _orchestrator


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/fields", response_model=List[FieldDescriptor])
async def list_fields(orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Return the field table used to build prompts."""
    try:
        return list(orchestrator.get_fields())
    except IntrospectionFailed as e:
        raise HTTPException(status_code=503, detail=f"Schema introspection failed: {e}")


@app.post("/fields/refresh")
async def refresh_fields(orchestrator: QueryOrchestrator = Depends(get_orchestrator)):
    """Invalidate the cached field table."""
    removed = orchestrator.invalidate_fields()
    return {"invalidated": removed}


@app.post("/translate", response_model=Dict[str, str])
async def translate_query(
    request: QueryRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """Translate a natural language query without searching."""
    try:
        structured: StructuredQuery = await orchestrator.translate(request.query)
    except IntrospectionFailed as e:
        raise HTTPException(status_code=503, detail=f"Schema introspection failed: {e}")
    except TranslationFailed as e:
        raise HTTPException(status_code=502, detail=f"Query translation failed: {e}")
    except GrammarViolation as e:
        raise HTTPException(status_code=422, detail=f"Invalid model output: {e}")
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))

    logger.info("Translated %r -> %s", request.query, structured.to_dict())
    return structured.to_dict()


@app.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """Translate a natural language query and run it against the collection."""
    try:
        return await orchestrator.search(
            request.query,
            page=request.page,
            per_page=request.per_page,
            execute=request.execute,
        )
    except IntrospectionFailed as e:
        raise HTTPException(status_code=503, detail=f"Schema introspection failed: {e}")
    except TranslationFailed as e:
        raise HTTPException(status_code=502, detail=f"Query translation failed: {e}")
    except GrammarViolation as e:
        raise HTTPException(status_code=422, detail=f"Invalid model output: {e}")
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
