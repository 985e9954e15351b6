"""Error taxonomy shared by every pipeline stage.

Each exception carries an HTTP-style ``status_code`` so an outer surface (the
CLI today) can map failures mechanically without inspecting messages.
"""

from __future__ import annotations


class PRInsightError(Exception):
    """Root of all errors raised by prinsight."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PRInsightError):
    """Malformed or missing request fields, or a request that contradicts stored state."""

    status_code = 400


class NotFoundError(PRInsightError):
    """Unknown repository, pull request, report or template (locally or upstream)."""

    status_code = 404


class UpstreamError(PRInsightError):
    """A source-control or LLM call failed."""

    status_code = 500


class AuthError(UpstreamError):
    """The source-control host rejected the token (HTTP 401/403)."""

    status_code = 400


class GenerationError(UpstreamError):
    """The LLM call failed or returned unusable content."""


class EmptyResponseError(GenerationError):
    pass


class MalformedResponseError(GenerationError):
    pass


class RenderError(PRInsightError):
    """HTML or PDF generation failed."""


class BrowserLaunchError(RenderError):
    pass


class RenderTimeoutError(RenderError):
    pass
