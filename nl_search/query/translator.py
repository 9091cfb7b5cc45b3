"""
Natural language to structured query translation.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from nl_search.core.errors import TranslationFailed
from nl_search.core.interfaces import ILLMClient
from nl_search.core.models import FieldDescriptor, StructuredQuery
from nl_search.query.prompt_generator import PromptGenerator
from nl_search.query.validator import GrammarValidator

logger = logging.getLogger(__name__)


class QueryTranslator:
    """
    Translates a user query into a StructuredQuery.

    Renders the prompt, makes a single model call and passes the output through
    the grammar validator. Holds no per-request state, so one instance can
    serve concurrent requests.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        strict: bool = False,
        timeout: Optional[float] = None,
        sort_hints: Optional[Sequence[str]] = None,
    ):
        """
        Initialize query translator.

        Args:
            llm_client: Model client with structured output support
            strict: Raise GrammarViolation instead of stripping invalid clauses
            timeout: Seconds allowed for the model call (None for no limit)
            sort_hints: Advisory sort rules rendered into the prompt
        """
        self.llm_client = llm_client
        self.strict = strict
        self.timeout = timeout
        self.sort_hints = sort_hints

    def render_prompt(self, user_query: str, fields: Sequence[FieldDescriptor]) -> str:
        return PromptGenerator(fields, self.sort_hints).generate_prompt(user_query)

    async def translate(
        self, user_query: str, fields: Sequence[FieldDescriptor]
    ) -> StructuredQuery:
        """
        Translate a natural language query.

        Args:
            user_query: Raw user query
            fields: Complete field descriptor table of the target collection

        Returns:
            Validated and normalized StructuredQuery

        Raises:
            TranslationFailed: If the model call fails, times out or returns
                output that cannot be read as a StructuredQuery
            GrammarViolation: In strict mode, if the output breaks the grammar
        """
        prompt = self.render_prompt(user_query, fields)
        raw = await self._call_model(prompt)

        try:
            structured = StructuredQuery.model_validate(raw)
        except ValidationError as e:
            raise TranslationFailed(f"Model output is not a structured query: {e}") from e

        logger.debug("Model output for %r: %s", user_query, structured.to_dict())
        return GrammarValidator(fields, strict=self.strict).normalize(structured)

    async def _call_model(self, prompt: str) -> Any:
        try:
            return await asyncio.wait_for(
                self.llm_client.parse_query(prompt, StructuredQuery),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise TranslationFailed(f"Model call timed out after {self.timeout}s") from e
        except Exception as e:
            raise TranslationFailed(f"Model call failed: {e}") from e
