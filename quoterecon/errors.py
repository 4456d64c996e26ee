"""Typed errors raised at the edges of the reconciliation engine.

Matching ambiguity is data, not failure, so nothing in here is raised by the
matcher itself.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for extraction adapter failures."""

    code = "extraction-failed"
    hint = "The quote could not be analysed. Please enter it manually."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.hint)
        self.message = message or self.hint


class ExtractionNotConfiguredError(ExtractionError):
    code = "not-configured"
    hint = "AI quote analysis is not configured. Please enter the quote manually."


class ExtractionRateLimitedError(ExtractionError):
    code = "rate-limited"
    hint = "Rate limit exceeded. Please try again in a few moments."


class UnreadableDocumentError(ExtractionError):
    code = "unreadable-document"
    hint = "The AI could not read the document. Please try a clearer image."


class MalformedExtractionError(ExtractionError):
    code = "malformed-response"
    hint = "The AI response was not in the expected format."


class InvalidDecisionError(ValueError):
    """Approval decision outside approve / decline / request_revision."""


class UnknownResultError(KeyError):
    """A resolution refers to a result id that is not in the result set."""


class NotAnExtraError(ValueError):
    """Only extra results can be marked resolved."""
