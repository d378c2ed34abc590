"""
Student Routes

GET /students/profile - Get own profile with completion progress
PUT /students/profile - Update contact details
POST /students/documents - Upload documents (PDF only)
GET /students/applications - Get my applications
DELETE /students/applications/{application_id} - Withdraw an application
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from sqlalchemy import text
from typing import List, Optional

from jobconnect.db.database import get_db_session, execute_raw_sql
from jobconnect.core.auth import get_current_student
from jobconnect.utils.file_upload import save_pdf_upload
from jobconnect.schemas.schemas import (
    StudentUpdate, StudentResponse, DocumentType, DocumentUploadResponse,
    ApplicationResponse, MessageResponse
)

router = APIRouter(prefix="/students", tags=["Students"])

CONTACT_FIELDS = [
    "phone", "emergency_contact_name", "emergency_contact_phone", "emergency_contact_relationship"
]
DOCUMENT_FIELDS = [d.value for d in DocumentType]

# Everything a student must fill in before applying
REQUIRED_FIELDS = [
    "first_name", "last_name", "email", "student_number", *CONTACT_FIELDS, *DOCUMENT_FIELDS
]


def profile_progress(student: dict) -> int:
    """Percentage of REQUIRED_FIELDS that are filled in."""
    filled = sum(1 for f in REQUIRED_FIELDS if student.get(f) and str(student[f]).strip())
    return round(filled / len(REQUIRED_FIELDS) * 100)


def _load_student(student_id: int) -> dict:
    rows = execute_raw_sql("""
        SELECT s.*, u.email FROM students s JOIN users u ON s.user_id = u.user_id
        WHERE s.student_id = :id
    """, {"id": student_id})
    return rows[0]


def _refresh_profile_complete(student_id: int) -> dict:
    """Recompute profile_complete from the stored row and persist it."""
    student = _load_student(student_id)
    complete = profile_progress(student) == 100
    if bool(student["profile_complete"]) != complete:
        with get_db_session() as db:
            db.execute(
                text("UPDATE students SET profile_complete = :c WHERE student_id = :id"),
                {"c": complete, "id": student_id}
            )
        student["profile_complete"] = complete
    return student


@router.get("/profile", response_model=StudentResponse)
async def get_profile(student: dict = Depends(get_current_student)):
    """Get current student's profile and how complete it is."""
    row = _load_student(student["student_id"])

    return StudentResponse(
        student_id=row["student_id"], user_id=row["user_id"], student_number=row["student_number"],
        first_name=row["first_name"], last_name=row["last_name"], email=row["email"],
        phone=row["phone"], emergency_contact_name=row["emergency_contact_name"],
        emergency_contact_phone=row["emergency_contact_phone"],
        emergency_contact_relationship=row["emergency_contact_relationship"],
        documents={f: bool(row[f]) for f in DOCUMENT_FIELDS},
        profile_complete=bool(row["profile_complete"]), profile_progress=profile_progress(row),
        created_at=row["created_at"]
    )


@router.put("/profile", response_model=MessageResponse)
async def update_profile(data: StudentUpdate, student: dict = Depends(get_current_student)):
    """Update contact details. Only provided fields are updated."""
    updates = []
    params = {"id": student["student_id"]}

    for field in CONTACT_FIELDS:
        value = getattr(data, field)
        if value is not None:
            updates.append(f"{field} = :{field}")
            params[field] = value

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        db.execute(
            text(f"UPDATE students SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE student_id = :id"),
            params
        )
    _refresh_profile_complete(student["student_id"])

    return MessageResponse(message="Profile updated successfully")


@router.post("/documents", response_model=DocumentUploadResponse)
async def upload_documents(
    id_document: Optional[UploadFile] = File(None),
    proof_of_tax: Optional[UploadFile] = File(None),
    proof_of_bank: Optional[UploadFile] = File(None),
    resume: Optional[UploadFile] = File(None),
    academic_transcript: Optional[UploadFile] = File(None),
    student: dict = Depends(get_current_student)
):
    """
    Upload one or more profile documents (PDF only, max 5MB each).

    The academic transcript is what applications are screened on: it is
    parsed by AI each time the student applies for a job.
    """
    files = {
        "id_document": id_document,
        "proof_of_tax": proof_of_tax,
        "proof_of_bank": proof_of_bank,
        "resume": resume,
        "academic_transcript": academic_transcript,
    }
    files = {field: f for field, f in files.items() if f is not None and f.filename}
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    current = _load_student(student["student_id"])
    stored = {}
    for field, upload in files.items():
        stored[field] = await save_pdf_upload(upload, owner=current["student_number"])

    with get_db_session() as db:
        db.execute(
            text(
                f"UPDATE students SET {', '.join(f'{f} = :{f}' for f in stored)}, "
                f"updated_at = CURRENT_TIMESTAMP WHERE student_id = :id"
            ),
            {**stored, "id": student["student_id"]}
        )

    updated = _refresh_profile_complete(student["student_id"])
    return DocumentUploadResponse(
        success=True,
        message=f"{len(stored)} document(s) uploaded",
        uploaded=list(stored),
        profile_complete=bool(updated["profile_complete"]),
        profile_progress=profile_progress(updated)
    )


@router.get("/applications", response_model=List[ApplicationResponse])
async def get_my_applications(student: dict = Depends(get_current_student)):
    """Get all job applications for current student."""
    results = execute_raw_sql("""
        SELECT a.application_id, a.job_id, j.job_title, j.faculty, j.application_deadline,
               a.status, a.applied_at, a.transcript_parsed, a.overall_average, a.third_year_average
        FROM applications a
        JOIN job_posts j ON a.job_id = j.job_id
        WHERE a.student_id = :id ORDER BY a.applied_at DESC, a.application_id DESC
    """, {"id": student["student_id"]})

    return [
        ApplicationResponse(
            application_id=r["application_id"], job_id=r["job_id"], job_title=r["job_title"],
            faculty=r["faculty"], application_deadline=r["application_deadline"],
            status=r["status"], applied_at=r["applied_at"],
            transcript_parsed=bool(r["transcript_parsed"]),
            overall_average=r["overall_average"], third_year_average=r["third_year_average"]
        ) for r in results
    ]


@router.delete("/applications/{application_id}", response_model=MessageResponse)
async def withdraw_application(application_id: int, student: dict = Depends(get_current_student)):
    """Withdraw one of my applications."""
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM applications WHERE application_id = :aid AND student_id = :sid"),
            {"aid": application_id, "sid": student["student_id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Application not found")

    return MessageResponse(message="Application withdrawn")
