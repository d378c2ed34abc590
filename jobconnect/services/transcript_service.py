"""
Transcript Parsing Service - the pipeline orchestrator.

    stored file reference -> bytes -> ExtractionClient (retried)
                          -> raw model text -> normalizer -> ParseOutcome

parse_student_transcript() NEVER raises. Every failure, expected
(no file on disk) or not (provider down, garbage output, bugs), comes back
as a ParseFailure so the application flow can always carry on.

Holds no state between calls; one instance is safe to share across requests.
"""

import logging
import os
from typing import Optional

from jobconnect.core.config import get_settings
from jobconnect.core.exceptions import TranscriptError, TranscriptFileNotFound
from jobconnect.models.transcript import ParseFailure, ParseOutcome, ParseSuccess
from jobconnect.services.extraction_client import ExtractionClient, get_extraction_client
from jobconnect.services.transcript_normalizer import parse_model_text
from jobconnect.services.transcript_prompts import ExtractionContract, MULTI_YEAR_CONTRACT

logger = logging.getLogger(__name__)


class TranscriptParsingService:
    """
    Complete transcript parsing workflow:
    1. Resolve the file reference inside the uploads directory
    2. Send the PDF to the AI service (with retry/backoff)
    3. Normalize the answer into a TranscriptSummary
    """

    def __init__(
        self,
        client: ExtractionClient,
        uploads_dir: str,
        contract: ExtractionContract = MULTI_YEAR_CONTRACT
    ):
        self.client = client
        self.uploads_dir = os.path.abspath(uploads_dir)
        self.contract = contract

    def resolve_path(self, file_reference: str) -> str:
        """Absolute path of a stored upload. Refuses to leave the uploads directory."""
        if not file_reference:
            raise TranscriptFileNotFound("No transcript on file")
        path = os.path.abspath(os.path.join(self.uploads_dir, file_reference))
        if os.path.commonpath([path, self.uploads_dir]) != self.uploads_dir:
            raise TranscriptFileNotFound("Transcript file not found")
        if not os.path.isfile(path):
            raise TranscriptFileNotFound("Transcript file not found")
        return path

    def load_document(self, file_reference: str) -> bytes:
        with open(self.resolve_path(file_reference), "rb") as f:
            return f.read()

    def parse_student_transcript(self, file_reference: Optional[str]) -> ParseOutcome:
        """
        Parse a student's stored transcript.

        Args:
            file_reference: filename of the upload, as stored on the student row

        Returns:
            ParseSuccess(summary) or ParseFailure(reason, kind)
        """
        try:
            document = self.load_document(file_reference)
            raw_text = self.client.extract(document, self.contract)
            summary = parse_model_text(raw_text)
        except TranscriptFileNotFound as e:
            logger.info("Transcript %r not parsed: %s", file_reference, e.reason)
            return ParseFailure(reason=e.reason, kind=e.kind)
        except TranscriptError as e:
            logger.warning("Transcript %r parse failed [%s]: %s", file_reference, e.kind, e.reason)
            return ParseFailure(reason=e.reason, kind=e.kind)
        except Exception as e:
            logger.exception("Unexpected error parsing transcript %r", file_reference)
            return ParseFailure(reason=f"Error parsing transcript: {e}", kind=type(e).__name__)

        logger.info(
            "Transcript %r parsed: %d subjects over %d years, overall average %.2f",
            file_reference, summary.subject_count, len(summary.years), summary.overall_average
        )
        return ParseSuccess(summary)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_transcript_parser() -> TranscriptParsingService:
    """Get transcript parsing service instance (FastAPI dependency)."""
    return TranscriptParsingService(
        client=get_extraction_client(),
        uploads_dir=get_settings().uploads_dir
    )
