"""
Models module - internal data transfer objects.

API request/response contracts live in jobconnect.schemas instead.
"""

from jobconnect.models.transcript import (
    SubjectStatus,
    SubjectRecord,
    YearSummary,
    TranscriptSummary,
    ParseSuccess,
    ParseFailure,
    ParseOutcome,
    ApplicationSnapshot,
)

__all__ = [
    "SubjectStatus",
    "SubjectRecord",
    "YearSummary",
    "TranscriptSummary",
    "ParseSuccess",
    "ParseFailure",
    "ParseOutcome",
    "ApplicationSnapshot",
]
