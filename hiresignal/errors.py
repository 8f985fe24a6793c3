"""
HireSignal - Error Taxonomy
Every pipeline failure carries the HTTP status the API surfaces it with.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for errors raised by the assessment pipeline."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(PipelineError):
    """Missing or malformed request field."""
    status_code = 400


class AuthenticationError(PipelineError):
    """No identity, or an identity that cannot be verified."""
    status_code = 401


class AuthorizationError(PipelineError):
    """Valid identity lacking a required role."""
    status_code = 403


class NotFoundError(PipelineError):
    """A required record (context, corpus) does not exist."""
    status_code = 404


class QuotaExceededError(PipelineError):
    """The inference provider refused the call for billing/quota reasons."""
    status_code = 402


class RateLimitedError(PipelineError):
    """The inference provider asked us to slow down. Retry later."""
    status_code = 429


class InferenceTransportError(PipelineError):
    """Any other non-2xx or network-level inference failure."""
    status_code = 500

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class PersistenceError(PipelineError):
    """A decision or audit write failed."""
    status_code = 500


class DuplicateDecisionError(PipelineError):
    """A current decision already exists and the write asked for uniqueness."""
    status_code = 409


class MalformedModelOutputError(PipelineError):
    """Model output could not be parsed. Recovered locally, never surfaced."""
    status_code = 500
