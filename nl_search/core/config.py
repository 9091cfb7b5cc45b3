"""
Application configuration.

Values are read from environment variables (a local .env file is loaded first).
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from nl_search.core.models import LLMConfig

DEFAULT_MAX_ENUM_VALUES = 20


def _split_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _as_bool(raw: Optional[str], default: bool = False) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _as_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw == "":
        return None
    return float(raw)


class Settings(BaseModel):
    """
    Central configuration for the search translation service.

    Attributes:
        llm_model: Model name (e.g. "gpt-4o-mini", "qwen3:8b")
        llm_api_key: API key for the model provider
        llm_base_url: Base URL of an OpenAI-compatible API (e.g. Ollama)
        es_host: Elasticsearch host URL
        es_index: Index holding the searchable collection
        category_fields: Fields treated as facets in addition to those flagged in the mapping
        query_by: Fields the free-text part of a query is matched against
        max_enum_values: Maximum number of enum values listed per faceted field
        strict_grammar: Reject (instead of strip) invalid filter/sort clauses
    """

    llm_model: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None
    llm_temperature: float = 0.0
    llm_timeout: Optional[float] = 30.0
    llm_retries: int = 3

    es_host: str = "http://localhost:9200"
    es_index: str = "cars"
    es_timeout: float = 10.0

    category_fields: List[str] = Field(default_factory=list)
    query_by: List[str] = Field(default_factory=list)
    max_enum_values: int = Field(default=DEFAULT_MAX_ENUM_VALUES, ge=0)
    strict_grammar: bool = False
    per_page: int = 10

    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        load_dotenv()

        timeout = os.getenv("LLM_TIMEOUT")
        return cls(
            llm_model=os.getenv("LLM_MODEL"),
            llm_api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
            llm_base_url=os.getenv("LLM_BASE_URL"),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0")),
            llm_timeout=_as_float(timeout) if timeout is not None else 30.0,
            llm_retries=int(os.getenv("LLM_RETRIES", "3")),
            es_host=os.getenv("ES_HOST", "http://localhost:9200"),
            es_index=os.getenv("ES_INDEX", "cars"),
            es_timeout=float(os.getenv("ES_TIMEOUT", "10")),
            category_fields=_split_list(os.getenv("CATEGORY_FIELDS")),
            query_by=_split_list(os.getenv("QUERY_BY")),
            max_enum_values=int(os.getenv("MAX_ENUM_VALUES", str(DEFAULT_MAX_ENUM_VALUES))),
            strict_grammar=_as_bool(os.getenv("STRICT_GRAMMAR")),
            per_page=int(os.getenv("PER_PAGE", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )

    def llm_config(self) -> Optional[LLMConfig]:
        """Return the model configuration, or None when no model is configured."""
        if not self.llm_model:
            return None
        return LLMConfig(
            model=self.llm_model,
            api_key=self.llm_api_key,
            base_url=self.llm_base_url,
            temperature=self.llm_temperature,
            retries=self.llm_retries,
            timeout=self.llm_timeout,
        )
