"""
Faculty Routes

GET /faculty/profile - Get own profile
PUT /faculty/profile - Update profile
POST /faculty/jobs - Create job post
GET /faculty/jobs - List own job posts (dashboard)
PUT /faculty/jobs/{job_id} - Update own job post
DELETE /faculty/jobs/{job_id} - Delete own job post
GET /faculty/jobs/{job_id}/applicants - Qualified applicants (third-year average >= threshold)
GET /faculty/applicants/{application_id} - Applicant details incl. transcript breakdown
PUT /faculty/applications/{application_id}/status - Update application status
"""

import json
import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from typing import List

from jobconnect.db.database import get_db_session, execute_raw_sql
from jobconnect.core.auth import get_current_faculty
from jobconnect.core.config import get_settings
from jobconnect.api.routes.job_routes import JOB_COLUMNS, to_job_response
from jobconnect.schemas.schemas import (
    FacultyUpdate, FacultyResponse, JobCreate, JobUpdate, JobResponse,
    ApplicantResponse, ApplicantListResponse, ApplicantDetailResponse,
    ApplicationStatusUpdate, DocumentType, MessageResponse
)

router = APIRouter(prefix="/faculty", tags=["Faculty"])
logger = logging.getLogger(__name__)

APPLICANT_COLUMNS = """
    a.application_id, a.student_id, s.student_number, s.first_name, s.last_name, u.email, s.phone,
    a.status, a.applied_at, a.transcript_parsed, a.overall_average, a.third_year_average
"""


def _owned_job(db, job_id: int, faculty_admin_id: int):
    return db.execute(
        text("SELECT job_id, job_title FROM job_posts WHERE job_id = :jid AND faculty_admin_id = :fid"),
        {"jid": job_id, "fid": faculty_admin_id}
    ).fetchone()


def _applicant_fields(r: dict) -> dict:
    return dict(
        application_id=r["application_id"], student_id=r["student_id"],
        student_number=r["student_number"], first_name=r["first_name"], last_name=r["last_name"],
        email=r["email"], phone=r["phone"], status=r["status"], applied_at=r["applied_at"],
        transcript_parsed=bool(r["transcript_parsed"]),
        overall_average=r["overall_average"], third_year_average=r["third_year_average"]
    )


# ============================================================
# PROFILE
# ============================================================

@router.get("/profile", response_model=FacultyResponse)
async def get_profile(faculty: dict = Depends(get_current_faculty)):
    """Get current faculty admin's profile."""
    rows = execute_raw_sql("""
        SELECT f.faculty_admin_id, f.user_id, f.staff_number, f.first_name, f.last_name, u.email,
               f.faculty, f.phone, f.created_at
        FROM faculty_admins f JOIN users u ON f.user_id = u.user_id
        WHERE f.faculty_admin_id = :id
    """, {"id": faculty["faculty_admin_id"]})
    return FacultyResponse(**rows[0])


@router.put("/profile", response_model=MessageResponse)
async def update_profile(data: FacultyUpdate, faculty: dict = Depends(get_current_faculty)):
    """Update faculty profile. Only provided fields are updated."""
    updates = []
    params = {"id": faculty["faculty_admin_id"]}

    for field in ["first_name", "last_name", "faculty", "phone"]:
        value = getattr(data, field)
        if value is not None:
            updates.append(f"{field} = :{field}")
            params[field] = value

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        db.execute(
            text(f"UPDATE faculty_admins SET {', '.join(updates)} WHERE faculty_admin_id = :id"),
            params
        )

    return MessageResponse(message="Profile updated successfully")


# ============================================================
# JOB POSTS
# ============================================================

@router.post("/jobs", response_model=JobResponse, status_code=201)
async def create_job(job: JobCreate, faculty: dict = Depends(get_current_faculty)):
    """Create a new job post."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO job_posts (faculty_admin_id, job_title, faculty, job_type, description,
                    requirements, application_deadline, is_active)
                VALUES (:fid, :title, :faculty, :job_type, :description, :requirements, :deadline, :active)
                RETURNING job_id
            """),
            {
                "fid": faculty["faculty_admin_id"], "title": job.job_title, "faculty": job.faculty,
                "job_type": job.job_type.value, "description": job.description,
                "requirements": job.requirements, "deadline": job.application_deadline.isoformat(),
                "active": True
            }
        )
        job_id = result.fetchone()[0]

    rows = execute_raw_sql(
        "SELECT" + JOB_COLUMNS + """
        FROM job_posts j JOIN faculty_admins f ON j.faculty_admin_id = f.faculty_admin_id
        WHERE j.job_id = :jid
        """,
        {"jid": job_id}
    )
    return to_job_response(rows[0])


@router.get("/jobs", response_model=List[JobResponse])
async def get_my_jobs(faculty: dict = Depends(get_current_faculty)):
    """All job posts created by this faculty admin, newest first."""
    results = execute_raw_sql(
        "SELECT" + JOB_COLUMNS + """
        FROM job_posts j JOIN faculty_admins f ON j.faculty_admin_id = f.faculty_admin_id
        WHERE j.faculty_admin_id = :fid
        ORDER BY j.date_posted DESC, j.job_id DESC
        """,
        {"fid": faculty["faculty_admin_id"]}
    )
    return [to_job_response(r) for r in results]


@router.put("/jobs/{job_id}", response_model=MessageResponse)
async def update_job(job_id: int, update: JobUpdate, faculty: dict = Depends(get_current_faculty)):
    """Update a job post. Only the owning faculty admin can update."""
    with get_db_session() as db:
        if not _owned_job(db, job_id, faculty["faculty_admin_id"]):
            raise HTTPException(status_code=404, detail="Job not found or access denied")

        updates = []
        params = {"jid": job_id}

        for field in ["job_title", "faculty", "description", "requirements", "is_active"]:
            value = getattr(update, field)
            if value is not None:
                updates.append(f"{field} = :{field}")
                params[field] = value

        if update.job_type:
            updates.append("job_type = :job_type")
            params["job_type"] = update.job_type.value
        if update.application_deadline:
            updates.append("application_deadline = :deadline")
            params["deadline"] = update.application_deadline.isoformat()

        if updates:
            db.execute(
                text(f"UPDATE job_posts SET {', '.join(updates)} WHERE job_id = :jid"),
                params
            )

    return MessageResponse(message="Job updated successfully")


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: int, faculty: dict = Depends(get_current_faculty)):
    """Delete a job post. Cascades to applications."""
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM job_posts WHERE job_id = :jid AND faculty_admin_id = :fid"),
            {"jid": job_id, "fid": faculty["faculty_admin_id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Job not found or access denied")

    return MessageResponse(message="Job deleted successfully")


# ============================================================
# APPLICANTS
# ============================================================

@router.get("/jobs/{job_id}/applicants", response_model=ApplicantListResponse)
async def get_applicants(job_id: int, faculty: dict = Depends(get_current_faculty)):
    """
    Qualified applicants for one of my jobs.

    Only applications whose stored third-year average meets
    APPLICANT_MIN_AVERAGE (67 by default) are listed. Applications without a
    parsed transcript have a NULL average and never qualify.
    """
    min_average = get_settings().applicant_min_average

    with get_db_session() as db:
        job = _owned_job(db, job_id, faculty["faculty_admin_id"])
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    results = execute_raw_sql(
        "SELECT" + APPLICANT_COLUMNS + """
        FROM applications a
        JOIN students s ON a.student_id = s.student_id
        JOIN users u ON s.user_id = u.user_id
        WHERE a.job_id = :jid AND a.third_year_average >= :min_average
        ORDER BY a.applied_at DESC, a.application_id DESC
        """,
        {"jid": job_id, "min_average": min_average}
    )

    return ApplicantListResponse(
        job_id=job[0], job_title=job[1], min_average=min_average,
        applicants=[ApplicantResponse(**_applicant_fields(r)) for r in results]
    )


@router.get("/applicants/{application_id}", response_model=ApplicantDetailResponse)
async def get_applicant_details(application_id: int, faculty: dict = Depends(get_current_faculty)):
    """Applicant details including documents and the stored transcript breakdown."""
    documents = ", ".join(f"s.{d.value}" for d in DocumentType)
    results = execute_raw_sql(
        "SELECT" + APPLICANT_COLUMNS + f""", a.job_id, j.job_title, a.all_year_subjects, a.ai_summary,
               {documents}
        FROM applications a
        JOIN students s ON a.student_id = s.student_id
        JOIN users u ON s.user_id = u.user_id
        JOIN job_posts j ON a.job_id = j.job_id
        WHERE a.application_id = :aid AND j.faculty_admin_id = :fid
        """,
        {"aid": application_id, "fid": faculty["faculty_admin_id"]}
    )

    if not results:
        raise HTTPException(
            status_code=404,
            detail="Applicant not found or you do not have permission to view this application"
        )

    r = results[0]
    try:
        years = json.loads(r["all_year_subjects"]) if r["all_year_subjects"] else []
        ai_summary = json.loads(r["ai_summary"]) if r["ai_summary"] else None
    except ValueError:
        logger.error("Corrupt transcript snapshot on application %s", application_id)
        years, ai_summary = [], None

    return ApplicantDetailResponse(
        **_applicant_fields(r),
        job_id=r["job_id"], job_title=r["job_title"],
        documents={d.value: r[d.value] for d in DocumentType},
        years=years, ai_summary=ai_summary
    )


@router.put("/applications/{application_id}/status", response_model=MessageResponse)
async def update_application_status(
    application_id: int,
    update: ApplicationStatusUpdate,
    faculty: dict = Depends(get_current_faculty)
):
    """Update status of an application to one of my jobs."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT a.application_id FROM applications a
                JOIN job_posts j ON a.job_id = j.job_id
                WHERE a.application_id = :aid AND j.faculty_admin_id = :fid
            """),
            {"aid": application_id, "fid": faculty["faculty_admin_id"]}
        )
        if not result.fetchone():
            raise HTTPException(status_code=404, detail="Application not found")

        db.execute(
            text("UPDATE applications SET status = :status WHERE application_id = :aid"),
            {"aid": application_id, "status": update.status.value}
        )

    return MessageResponse(message=f"Status updated to '{update.status.value}'")
