"""
Transcript pipeline errors.

Raised by the extraction client, its transports and the normalizer.
TranscriptParsingService turns every one of them into a ParseFailure value,
so none of these ever reach the application-submission flow.
"""

from typing import Optional


class TranscriptError(Exception):
    """Base class. `reason` is the human-readable failure message."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigurationError(TranscriptError):
    """Missing credential or unknown provider. Never retried."""


class ClientRequestError(TranscriptError):
    """4xx from the AI service - the request itself is bad. Never retried."""

    def __init__(self, reason: str, status_code: int):
        super().__init__(reason)
        self.status_code = status_code


class TransientServiceError(TranscriptError):
    """5xx or network-level failure. Retried with backoff."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason)
        self.status_code = status_code


class MalformedResponse(TranscriptError):
    """Model output could not be located, parsed or had the wrong shape."""


class ModelReportedError(TranscriptError):
    """The model answered with an explicit {"error": ...} payload."""


class NoUsableData(TranscriptError):
    """Nothing survived validation and status filtering."""


class TranscriptFileNotFound(TranscriptError):
    """No file behind the stored reference. Common and expected."""
