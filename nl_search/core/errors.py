"""
Exceptions raised by the translation pipeline.
"""

from typing import Optional


class NLSearchError(Exception):
    """Base class for all package errors."""


class IntrospectionFailed(NLSearchError):
    """Schema retrieval or facet sampling failed, or returned a malformed shape."""


class TranslationFailed(NLSearchError):
    """The model call failed, timed out, or returned output of the wrong shape."""


class GrammarViolation(NLSearchError):
    """
    A filter or sort expression does not conform to the query grammar.

    Attributes:
        expression: The offending expression (or clause)
        reason: Human readable description of the violation
    """

    def __init__(self, reason: str, expression: Optional[str] = None):
        self.reason = reason
        self.expression = expression
        message = reason if expression is None else f"{reason}: {expression!r}"
        super().__init__(message)
