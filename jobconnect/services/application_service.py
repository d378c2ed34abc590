"""
Application Service - a student applying to a job post.

The submission runs as a fixed sequence of steps. Each step either returns
the data the next one needs or an ApplicationRejected, which ends the run:

    load student -> profile complete? -> load job -> accepting applications?
    -> not already applied? -> parse transcript (best effort) -> insert

The transcript step is the exception: it cannot reject. Whatever the parser
returns, the application is created; a failed parse just means an empty
snapshot (transcript_parsed = false, null averages).

The transcript call happens outside any database transaction. The
UNIQUE(student_id, job_id) constraint is the final guard against two
concurrent submissions for the same pair.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional, Union

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from jobconnect.core.config import get_settings
from jobconnect.db.database import get_db_session
from jobconnect.models.transcript import ApplicationSnapshot, ParseSuccess
from jobconnect.services.transcript_normalizer import target_year_average
from jobconnect.services.transcript_service import TranscriptParsingService

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    student_not_found = "student_not_found"
    profile_incomplete = "profile_incomplete"
    job_not_found = "job_not_found"
    job_closed = "job_closed"
    duplicate = "duplicate"


@dataclass(frozen=True)
class ApplicationRejected:
    reason: RejectionReason
    message: str


@dataclass(frozen=True)
class ApplicationCreated:
    application_id: int
    snapshot: ApplicationSnapshot
    transcript_error: Optional[str] = None


SubmissionResult = Union[ApplicationCreated, ApplicationRejected]


class ApplicationService:

    def __init__(
        self,
        parser: TranscriptParsingService,
        target_year: Optional[str] = None,
        today: Callable[[], date] = date.today
    ):
        self.parser = parser
        self.target_year = target_year or get_settings().transcript_target_year
        self._today = today

    # ---------------- steps ----------------

    def _load_student(self, db, student_id: int):
        row = db.execute(
            text("""
                SELECT student_id, student_number, academic_transcript, profile_complete
                FROM students WHERE student_id = :sid
            """),
            {"sid": student_id}
        ).mappings().fetchone()
        if not row:
            return ApplicationRejected(RejectionReason.student_not_found, "Student not found")
        if not row["profile_complete"]:
            return ApplicationRejected(
                RejectionReason.profile_incomplete,
                "Please complete your profile before applying"
            )
        return dict(row)

    def _load_open_job(self, db, job_id: int):
        row = db.execute(
            text("SELECT job_id, is_active, application_deadline FROM job_posts WHERE job_id = :jid"),
            {"jid": job_id}
        ).mappings().fetchone()
        if not row:
            return ApplicationRejected(RejectionReason.job_not_found, "Job not found")
        if not row["is_active"]:
            return ApplicationRejected(RejectionReason.job_closed, "Job is not accepting applications")
        if str(row["application_deadline"]) < self._today().isoformat():
            return ApplicationRejected(RejectionReason.job_closed, "Application deadline has passed")
        return dict(row)

    def _check_not_applied(self, db, student_id: int, job_id: int):
        existing = db.execute(
            text("SELECT application_id FROM applications WHERE student_id = :sid AND job_id = :jid"),
            {"sid": student_id, "jid": job_id}
        ).fetchone()
        if existing:
            return ApplicationRejected(RejectionReason.duplicate, "You have already applied for this job")
        return None

    def _transcript_snapshot(self, student: dict):
        """Best effort: always yields a snapshot, never a rejection."""
        reference = student.get("academic_transcript")
        if not reference:
            logger.info("No transcript uploaded for student %s", student["student_number"])
            return ApplicationSnapshot.empty(), None

        logger.info("Parsing transcript for student %s", student["student_number"])
        outcome = self.parser.parse_student_transcript(reference)
        if isinstance(outcome, ParseSuccess):
            summary = outcome.summary
            snapshot = ApplicationSnapshot.from_summary(
                summary, target_year_average(summary, self.target_year)
            )
            return snapshot, None

        logger.warning(
            "Transcript parsing failed for student %s [%s]: %s - continuing without it",
            student["student_number"], outcome.kind, outcome.reason
        )
        return ApplicationSnapshot.empty(), outcome.reason

    def _insert(self, student_id: int, job_id: int, snapshot: ApplicationSnapshot):
        try:
            with get_db_session() as db:
                result = db.execute(
                    text("""
                        INSERT INTO applications (student_id, job_id, status, overall_average,
                            third_year_average, all_year_subjects, ai_summary, transcript_parsed)
                        VALUES (:sid, :jid, 'pending', :overall_average, :third_year_average,
                            :all_year_subjects, :ai_summary, :transcript_parsed)
                        RETURNING application_id
                    """),
                    {"sid": student_id, "jid": job_id, **snapshot.as_params()}
                )
                return result.fetchone()[0]
        except IntegrityError:
            # The checks ran before the transcript call; re-run them to see what changed since
            with get_db_session() as db:
                duplicate = self._check_not_applied(db, student_id, job_id)
                if duplicate is not None:
                    return duplicate
                job = self._load_open_job(db, job_id)
                if isinstance(job, ApplicationRejected):
                    return job
                student = self._load_student(db, student_id)
                if isinstance(student, ApplicationRejected):
                    return student
            raise

    # ---------------- pipeline ----------------

    def submit(self, student_id: int, job_id: int) -> SubmissionResult:
        with get_db_session() as db:
            student = self._load_student(db, student_id)
            if isinstance(student, ApplicationRejected):
                return student
            job = self._load_open_job(db, job_id)
            if isinstance(job, ApplicationRejected):
                return job
            duplicate = self._check_not_applied(db, student_id, job_id)
            if duplicate is not None:
                return duplicate

        snapshot, transcript_error = self._transcript_snapshot(student)

        application_id = self._insert(student_id, job_id, snapshot)
        if isinstance(application_id, ApplicationRejected):
            return application_id

        logger.info(
            "Application %s created for student %s to job %s (transcript_parsed=%s)",
            application_id, student_id, job_id, snapshot.parsed
        )
        return ApplicationCreated(application_id, snapshot, transcript_error)
