"""
Transcript Normalizer - raw model text -> TranscriptSummary.

Pure: no I/O, no clock, no randomness. Same text in, same summary out.

Steps:
1. Locate the first balanced {...} or [...] span (models like to add commentary)
2. json.loads it
3. Propagate an explicit {"error": ...} from the model
4. Validate each subject entry, silently dropping broken ones
5. Keep PASS-family statuses only
6. Per-year average and overall average over retained marks
7. Nothing retained -> NoUsableData
"""

import json
import math
import re
from typing import Any, List, Optional

from jobconnect.core.exceptions import (
    TranscriptError,
    MalformedResponse,
    ModelReportedError,
    NoUsableData,
)
from jobconnect.models.transcript import (
    SubjectStatus,
    SubjectRecord,
    YearSummary,
    TranscriptSummary,
    ParseSuccess,
    ParseFailure,
    ParseOutcome,
)

DEFAULT_YEAR_LABEL = "Unknown"
_CLOSING = {"{": "}", "[": "]"}


# ============================================================
# JSON LOCATION
# ============================================================

def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the bracket matching text[start], or None."""
    stack = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSING:
            stack.append(_CLOSING[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i + 1
    return None


def extract_json_span(text: str) -> Optional[str]:
    """First balanced JSON object/array embedded in `text`."""
    for start, ch in enumerate(text):
        if ch in _CLOSING:
            end = _balanced_end(text, start)
            if end is not None:
                return text[start:end]
    return None


# ============================================================
# ENTRY VALIDATION
# ============================================================

def _first_text(entry: dict, *keys: str) -> str:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            value = str(value).strip()
            if value:
                return value
    return ""


def _coerce_mark(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    if not 0 <= value <= 100:
        return None
    return float(value)


def validate_subject(entry: Any) -> Optional[SubjectRecord]:
    """SubjectRecord for a well-formed entry, None for anything else."""
    if not isinstance(entry, dict):
        return None

    code = _first_text(entry, "subjectCode", "code")
    name = _first_text(entry, "subjectName", "name", "description")
    if not code and not name:
        return None

    mark = _coerce_mark(entry.get("mark"))
    if mark is None:
        return None

    status = entry.get("status")
    if not isinstance(status, str) or not status.strip():
        return None

    return SubjectRecord(
        code=code or name,
        name=name or code,
        mark=mark,
        status=SubjectStatus.parse(status)
    )


def _mean(marks: List[float]) -> float:
    return round(sum(marks) / len(marks), 2)


# ============================================================
# NORMALIZATION
# ============================================================

def _raw_years(payload: Any, default_year: str) -> List[tuple]:
    """[(label, [raw subject entries])] for every supported payload shape."""
    if isinstance(payload, list):
        return [(default_year, payload)]

    if not isinstance(payload, dict):
        raise MalformedResponse("AI response is neither a JSON object nor an array")

    if isinstance(payload.get("years"), list):
        years = []
        for entry in payload["years"]:
            if not isinstance(entry, dict):
                continue
            label = _first_text(entry, "year", "label") or default_year
            subjects = entry.get("subjects")
            years.append((label, subjects if isinstance(subjects, list) else []))
        return years

    if isinstance(payload.get("subjects"), list):
        label = _first_text(payload, "year") or default_year
        return [(label, payload["subjects"])]

    raise MalformedResponse("AI response has no 'years' or 'subjects' list")


def build_summary(payload: Any, default_year: str = DEFAULT_YEAR_LABEL) -> TranscriptSummary:
    """Validated, filtered and averaged summary for an already-decoded payload."""
    if isinstance(payload, dict) and payload.get("error"):
        raise ModelReportedError(str(payload["error"]))

    years = []
    all_marks = []
    for label, entries in _raw_years(payload, default_year):
        retained = []
        for entry in entries:
            record = validate_subject(entry)
            if record is not None and record.status.is_pass:
                retained.append(record)
        marks = [s.mark for s in retained]
        all_marks.extend(marks)
        years.append(YearSummary(
            year=label,
            subjects=retained,
            average=_mean(marks) if marks else None
        ))

    if not all_marks:
        raise NoUsableData("no passed subjects found")

    notes = payload.get("notes", "") if isinstance(payload, dict) else ""
    recommendations = payload.get("recommendations", "") if isinstance(payload, dict) else ""
    return TranscriptSummary(
        years=years,
        overall_average=_mean(all_marks),
        notes=notes if isinstance(notes, str) else "",
        recommendations=recommendations if isinstance(recommendations, str) else ""
    )


def parse_model_text(raw_text: str, default_year: str = DEFAULT_YEAR_LABEL) -> TranscriptSummary:
    """Like normalize() but raises TranscriptError subclasses."""
    span = extract_json_span(raw_text or "")
    if span is None:
        raise MalformedResponse("No JSON found in AI response")
    try:
        payload = json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Failed to parse AI response: {e.msg}") from e
    return build_summary(payload, default_year)


def normalize(raw_text: str, default_year: str = DEFAULT_YEAR_LABEL) -> ParseOutcome:
    """Raw model text -> ParseSuccess(summary) | ParseFailure(reason)."""
    try:
        return ParseSuccess(parse_model_text(raw_text, default_year))
    except TranscriptError as e:
        return ParseFailure(reason=e.reason, kind=e.kind)


# ============================================================
# TARGET-YEAR PROJECTION
# ============================================================

_ORDINALS = {
    "first": "1", "1st": "1",
    "second": "2", "2nd": "2",
    "third": "3", "3rd": "3",
    "fourth": "4", "4th": "4",
    "fifth": "5", "5th": "5",
}


def _label_tokens(label: str) -> set:
    tokens = re.findall(r"[a-z0-9]+", label.lower())
    return {_ORDINALS.get(t, t) for t in tokens}


def find_year(summary: TranscriptSummary, target: str) -> Optional[YearSummary]:
    """
    Year whose label contains one of the comma-separated alternatives in
    `target` as whole tokens.

    Ordinal words count as their digit, so with target "3" the labels
    "3", "Year 3", "3rd Year" and "Third Year" all match, "2023" does not.
    A target of "2023" matches the calendar-year label exactly, and
    "3,2023" accepts either. Alternatives are tried in the order given;
    within one alternative the first matching year wins.
    """
    for alternative in target.split(","):
        wanted = _label_tokens(alternative)
        if not wanted:
            continue
        for year in summary.years:
            if wanted <= _label_tokens(year.year):
                return year
    return None


def target_year_average(summary: TranscriptSummary, target: str) -> Optional[float]:
    """Average of the matching year, None when absent or empty."""
    year = find_year(summary, target)
    return year.average if year is not None else None
