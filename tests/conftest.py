"""
Shared fixtures.

Settings are read once at import time, so the environment has to point at a
throwaway SQLite database and uploads directory before anything from
jobconnect is imported.
"""

import io
import json
import os
import tempfile
from datetime import date, timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="jobconnect-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'jobconnect-test.db')}"
os.environ["UPLOADS_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["AI_PROVIDER"] = "gemini"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["TRANSCRIPT_TARGET_YEAR"] = "3,2023"
os.environ["APPLICANT_MIN_AVERAGE"] = "67"
os.environ["AI_MAX_ATTEMPTS"] = "3"

import pytest
from fastapi.testclient import TestClient
from PyPDF2 import PdfWriter

from jobconnect.db.database import engine
from jobconnect.db.tables import metadata
from jobconnect.main import app
from jobconnect.models.transcript import ParseFailure
from jobconnect.schemas.schemas import DocumentType
from jobconnect.services.transcript_normalizer import normalize
from jobconnect.services.transcript_service import get_transcript_parser


# ============================================================
# HELPERS
# ============================================================

def make_pdf() -> bytes:
    """A valid one-page PDF."""
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def year_payload(label: str, marks, status: str = "PASS") -> dict:
    return {
        "year": label,
        "subjects": [
            {"subjectCode": f"CS{i:03d}", "subjectName": f"Subject {i}", "mark": m, "status": status}
            for i, m in enumerate(marks, start=1)
        ],
    }


def transcript_outcome(third_year_marks, other_years=None):
    """ParseSuccess for a transcript with a 'Year 3' section (plus optional others)."""
    years = [year_payload(label, marks) for label, marks in (other_years or {}).items()]
    years.append(year_payload("Year 3", third_year_marks))
    return normalize(json.dumps({"years": years, "notes": "", "recommendations": ""}))


def future_deadline(days: int = 30) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


class FakeTranscriptParser:
    """Stands in for TranscriptParsingService; hands out queued outcomes."""

    def __init__(self):
        self.outcomes = []
        self.calls = []
        self.during_parse = None  # callable run while "parsing"

    def parse_student_transcript(self, file_reference):
        self.calls.append(file_reference)
        if self.during_parse is not None:
            self.during_parse()
        if self.outcomes:
            return self.outcomes.pop(0)
        return ParseFailure(reason="No outcome queued", kind="TranscriptError")


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def fresh_db():
    """Empty schema for every test that touches the database."""
    metadata.drop_all(engine)
    metadata.create_all(engine)
    yield engine


@pytest.fixture
def fake_parser():
    return FakeTranscriptParser()


@pytest.fixture
def client(fresh_db, fake_parser):
    """TestClient with the transcript parser dependency replaced."""
    app.dependency_overrides[get_transcript_parser] = lambda: fake_parser
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def pdf_bytes():
    return make_pdf()


@pytest.fixture
def api(client, pdf_bytes):
    """Small helper around the HTTP API for setting up scenarios."""
    return ApiHelper(client, pdf_bytes)


class ApiHelper:

    def __init__(self, client: TestClient, pdf: bytes):
        self.client = client
        self.pdf = pdf
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def login(self, email: str, password: str = "password123") -> dict:
        response = self.client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    def register_student(self, student_number: str = None) -> dict:
        n = self._next()
        email = f"student{n}@uni.example.com"
        response = self.client.post("/api/auth/register/student", json={
            "email": email,
            "password": "password123",
            "student_number": student_number or f"{200000000 + n}",
            "first_name": "Thandi",
            "last_name": f"Student{n}",
        })
        assert response.status_code == 201, response.text
        return self.login(email)

    def register_faculty(self) -> dict:
        n = self._next()
        email = f"faculty{n}@uni.example.com"
        response = self.client.post("/api/auth/register/faculty", json={
            "email": email,
            "password": "password123",
            "staff_number": f"STAFF{n}",
            "first_name": "Sipho",
            "last_name": f"Admin{n}",
            "faculty": "Computing",
        })
        assert response.status_code == 201, response.text
        return self.login(email)

    def complete_profile(self, headers: dict, documents=None) -> dict:
        response = self.client.put("/api/students/profile", headers=headers, json={
            "phone": "0821234567",
            "emergency_contact_name": "Parent",
            "emergency_contact_phone": "0827654321",
            "emergency_contact_relationship": "Mother",
        })
        assert response.status_code == 200, response.text
        fields = documents or [d.value for d in DocumentType]
        response = self.client.post(
            "/api/students/documents",
            headers=headers,
            files={f: (f"{f}.pdf", self.pdf, "application/pdf") for f in fields},
        )
        assert response.status_code == 200, response.text
        return response.json()

    def complete_student(self) -> dict:
        headers = self.register_student()
        self.complete_profile(headers)
        return headers

    def create_job(self, headers: dict, **overrides) -> int:
        body = {
            "job_title": "Lab Assistant",
            "faculty": "Computing",
            "job_type": "part-time",
            "description": "Help run first-year programming labs.",
            "requirements": "Third-year average of 67% or more.",
            "application_deadline": future_deadline(),
        }
        body.update(overrides)
        response = self.client.post("/api/faculty/jobs", headers=headers, json=body)
        assert response.status_code == 201, response.text
        return response.json()["job_id"]

    def apply(self, headers: dict, job_id: int):
        return self.client.post(f"/api/jobs/{job_id}/apply", headers=headers)
