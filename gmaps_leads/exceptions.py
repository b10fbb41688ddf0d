"""Custom exceptions for the gmaps-leads library."""


class GMapsLeadsError(Exception):
    """Base exception for all gmaps-leads errors."""
    pass


class ServerError(GMapsLeadsError):
    """Raised when the API server cannot be started or reached."""
    pass


class ConfigurationError(GMapsLeadsError):
    """Raised when configuration is invalid or incomplete (e.g. missing API key)."""
    pass


class UpstreamError(GMapsLeadsError):
    """Raised when the Gemini API returns an error that is not a rate limit."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(UpstreamError):
    """Raised when the upstream service signals quota exhaustion (HTTP 429)."""
    pass


class TransientError(GMapsLeadsError):
    """Raised for network failures and non-429 HTTP errors on a single batch."""
    pass


class MalformedResponseError(GMapsLeadsError):
    """Raised when a response does not contain a parseable JSON array."""
    pass


class BatchExhaustedError(GMapsLeadsError):
    """Raised internally when a batch has used up its retry budget."""
    pass


class ExtractionError(GMapsLeadsError):
    """Raised when a whole extraction run has to be aborted."""
    pass
