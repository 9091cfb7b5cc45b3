"""
LLM client factory and management.

Handles creation of pydantic-ai agents for structured query translation.
"""

import os
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.providers.openai import OpenAIProvider

from nl_search.core.models import LLMConfig


class LLMClientFactory:
    """
    Creates and manages LLM clients for query translation.

    Handles client initialization and query parsing with structured output.
    Supports OpenAI, Anthropic, Gemini and OpenAI-compatible APIs.

    Reads configuration from environment variables by default:
    - LLM_MODEL: Model name
    - LLM_API_KEY or OPENAI_API_KEY: API key
    - LLM_BASE_URL: Optional base URL for OpenAI-compatible APIs
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_settings: Optional[Dict[str, Any]] = None,
        retries: int = 3,
        model: Optional[Model] = None,
    ):
        """
        Initialize LLM client factory.

        Args:
            model_name: Name of the LLM model (e.g., "gpt-4o", "qwen3:8b").
                       If not provided, reads from LLM_MODEL environment variable.
            api_key: API key for the LLM provider.
                    If not provided, reads from LLM_API_KEY or OPENAI_API_KEY.
                    Optional when using base_url (e.g., Ollama doesn't require real API keys).
            base_url: Optional base URL for OpenAI-compatible APIs (e.g., "http://localhost:11434/v1" for Ollama).
                     If not provided, reads from LLM_BASE_URL environment variable.
            model_settings: Optional model settings (temperature, top_p, etc.)
            retries: Output validation retries granted to the agent
            model: Pre-built pydantic-ai model; skips all provider configuration

        Raises:
            ValueError: If model_name is missing, or if api_key is missing when not using base_url
        """
        self.model_settings = model_settings or {"temperature": 0, "top_p": 1.0}
        self.retries = retries
        self.base_url: Optional[str] = None
        self.model: Union[str, Model]

        if model is not None:
            self.api_key = api_key
            self.model = model
            return

        # Read from environment variables if not provided
        model_name = model_name or os.getenv("LLM_MODEL")
        api_key = api_key or os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY")
        base_url = base_url or os.getenv("LLM_BASE_URL")

        if not model_name:
            raise ValueError("model_name is required (provide as parameter or set LLM_MODEL env var)")

        self.api_key = api_key

        if base_url:
            # OpenAI-compatible API (Ollama, vLLM); ensure the /v1 suffix
            normalized_base_url = base_url.rstrip("/")
            if not normalized_base_url.endswith("/v1"):
                normalized_base_url = f"{normalized_base_url}/v1"

            self.base_url = normalized_base_url

            provider_kwargs = {"base_url": normalized_base_url}
            if api_key:
                provider_kwargs["api_key"] = api_key

            self.model = OpenAIModel(
                model_name=model_name,
                provider=OpenAIProvider(**provider_kwargs),
            )
        elif not api_key:
            raise ValueError("api_key is required when not using a custom base_url (provide as parameter or set LLM_API_KEY/OPENAI_API_KEY env var)")
        elif model_name.startswith(("openai:", "gpt")):
            os.environ["OPENAI_API_KEY"] = api_key
            self.model = model_name if ":" in model_name else f"openai:{model_name}"
        elif model_name.startswith(("anthropic:", "claude")):
            os.environ["ANTHROPIC_API_KEY"] = api_key
            self.model = model_name if ":" in model_name else f"anthropic:{model_name}"
        elif model_name.startswith(("gemini:", "google:")):
            os.environ["GEMINI_API_KEY"] = api_key
            self.model = model_name
        else:
            # Default to OpenAI
            os.environ["OPENAI_API_KEY"] = api_key
            self.model = f"openai:{model_name}"

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClientFactory":
        """Create a factory from an LLMConfig."""
        settings: Dict[str, Any] = {"temperature": config.temperature, "top_p": 1.0}
        if config.max_tokens is not None:
            settings["max_tokens"] = config.max_tokens
        return cls(
            model_name=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            model_settings=settings,
            retries=config.retries,
        )

    def _create_agent(self, output_type: type[BaseModel]) -> Agent:
        """
        Create a Pydantic AI agent.

        Args:
            output_type: Pydantic model for structured output

        Returns:
            Configured Pydantic AI Agent
        """
        return Agent(
            model=self.model,
            output_type=output_type,
            model_settings=self.model_settings,
            retries=self.retries,
        )

    async def parse_query(
        self,
        inputs: Union[str, List[str]],
        filter_model: type[BaseModel],
    ) -> Dict[str, Any]:
        """
        Run the model on the given inputs.

        Args:
            inputs: Prompt text, or a list of text parts
            filter_model: Pydantic model describing the output shape

        Returns:
            Validated structured output as a JSON-compatible dict
        """
        agent = self._create_agent(filter_model)

        result = await agent.run(inputs)

        return result.output.model_dump(mode="json")
