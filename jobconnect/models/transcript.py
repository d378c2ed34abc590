"""
Transcript pipeline data types.

SubjectRecord -> YearSummary -> TranscriptSummary are what the normalizer
produces. ParseSuccess / ParseFailure are the only things the orchestrator
ever hands back. ApplicationSnapshot is the denormalized copy written onto
an application row, once, when the application is created.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class SubjectStatus(str, Enum):
    PASS = "PASS"
    PASS_WITH_DISTINCTION = "PASS WITH DISTINCTION"
    SUPPLEMENTARY_PASSED = "SUPPLEMENTARY PASSED"
    FAIL = "FAIL"
    ABSENT = "ABSENT"
    SUPPLEMENTARY = "SUPPLEMENTARY"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: str) -> "SubjectStatus":
        """Map a transcript status string onto the enum, OTHER if unknown."""
        cleaned = " ".join(raw.replace("_", " ").replace("-", " ").upper().split())
        for status in cls:
            if status.value == cleaned:
                return status
        return cls.OTHER

    @property
    def is_pass(self) -> bool:
        return self in PASS_FAMILY


PASS_FAMILY = frozenset({
    SubjectStatus.PASS,
    SubjectStatus.PASS_WITH_DISTINCTION,
    SubjectStatus.SUPPLEMENTARY_PASSED,
})


class SubjectRecord(BaseModel):
    code: str
    name: str
    mark: float = Field(..., ge=0, le=100)
    status: SubjectStatus


class YearSummary(BaseModel):
    year: str
    subjects: List[SubjectRecord] = []
    average: Optional[float] = None  # None when no subject was retained


class TranscriptSummary(BaseModel):
    years: List[YearSummary]
    overall_average: float
    notes: str = ""
    recommendations: str = ""

    @property
    def subject_count(self) -> int:
        return sum(len(y.subjects) for y in self.years)

    def year_averages(self) -> Dict[str, Optional[float]]:
        return {y.year: y.average for y in self.years}


# ============================================================
# PARSE OUTCOME
# ============================================================

@dataclass(frozen=True)
class ParseSuccess:
    summary: TranscriptSummary
    ok: bool = True


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    kind: str = "TranscriptError"
    ok: bool = False


ParseOutcome = Union[ParseSuccess, ParseFailure]


# ============================================================
# APPLICATION SNAPSHOT
# ============================================================

@dataclass(frozen=True)
class ApplicationSnapshot:
    """
    Columns written onto `applications` at insert time:
    overall_average, third_year_average, all_year_subjects, ai_summary,
    transcript_parsed.
    """
    overall_average: Optional[float] = None
    target_year_average: Optional[float] = None
    serialized_years: Optional[str] = None
    serialized_summary: Optional[str] = None
    parsed: bool = False

    @classmethod
    def empty(cls) -> "ApplicationSnapshot":
        return cls()

    @classmethod
    def from_summary(
        cls,
        summary: TranscriptSummary,
        target_year_average: Optional[float]
    ) -> "ApplicationSnapshot":
        years = [y.model_dump(mode="json") for y in summary.years]
        ai_summary = {
            "overall_average": summary.overall_average,
            "year_averages": summary.year_averages(),
            "subject_count": summary.subject_count,
            "notes": summary.notes,
            "recommendations": summary.recommendations,
        }
        return cls(
            overall_average=summary.overall_average,
            target_year_average=target_year_average,
            serialized_years=json.dumps(years),
            serialized_summary=json.dumps(ai_summary),
            parsed=True,
        )

    def as_params(self) -> dict:
        """Bind parameters for the applications INSERT."""
        return {
            "overall_average": self.overall_average,
            "third_year_average": self.target_year_average,
            "all_year_subjects": self.serialized_years,
            "ai_summary": self.serialized_summary,
            "transcript_parsed": self.parsed,
        }
