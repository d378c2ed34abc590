"""
Job Routes

GET /jobs - List open job posts with filters and pagination
GET /jobs/{job_id} - Get job details
POST /jobs/{job_id}/apply - Apply to job (student only)
"""

import math
from datetime import date

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional

from jobconnect.db.database import execute_raw_sql
from jobconnect.core.auth import get_current_student
from jobconnect.services.application_service import (
    ApplicationService, ApplicationRejected, RejectionReason
)
from jobconnect.services.transcript_service import TranscriptParsingService, get_transcript_parser
from jobconnect.schemas.schemas import JobResponse, JobListResponse, ApplicationSubmitResponse, ErrorResponse

router = APIRouter(prefix="/jobs", tags=["Jobs"])

JOB_COLUMNS = """
    j.job_id, j.faculty_admin_id, f.first_name, f.last_name, j.job_title, j.faculty, j.job_type,
    j.description, j.requirements, j.application_deadline, j.is_active, j.date_posted
"""

REJECTION_STATUS = {
    RejectionReason.student_not_found: 404,
    RejectionReason.job_not_found: 404,
    RejectionReason.profile_incomplete: 400,
    RejectionReason.job_closed: 400,
    RejectionReason.duplicate: 409,
}


def to_job_response(r: dict) -> JobResponse:
    return JobResponse(
        job_id=r["job_id"], faculty_admin_id=r["faculty_admin_id"],
        posted_by=f"{r['first_name']} {r['last_name']}",
        job_title=r["job_title"], faculty=r["faculty"], job_type=r["job_type"],
        description=r["description"], requirements=r["requirements"],
        application_deadline=r["application_deadline"], is_active=bool(r["is_active"]),
        date_posted=r["date_posted"]
    )


@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: Optional[str] = Query(None, description="Search in title, faculty and description"),
    job_type: Optional[str] = Query(None),
    faculty: Optional[str] = Query(None, description="Filter by faculty/department")
):
    """List active job posts whose deadline has not passed."""
    where = " WHERE j.is_active = :active AND j.application_deadline >= :today"
    params = {"active": True, "today": date.today().isoformat()}

    if search:
        where += """ AND (LOWER(j.job_title) LIKE :search OR LOWER(j.faculty) LIKE :search
                     OR LOWER(j.description) LIKE :search)"""
        params["search"] = f"%{search.lower()}%"
    if job_type:
        where += " AND j.job_type = :job_type"
        params["job_type"] = job_type
    if faculty:
        where += " AND j.faculty = :faculty"
        params["faculty"] = faculty

    base = " FROM job_posts j JOIN faculty_admins f ON j.faculty_admin_id = f.faculty_admin_id"

    total = execute_raw_sql("SELECT COUNT(*) AS count" + base + where, params)[0]["count"]
    total_pages = math.ceil(total / limit)

    # Clamp to the last page instead of returning an empty one
    if total_pages and page > total_pages:
        page = total_pages

    results = execute_raw_sql(
        "SELECT" + JOB_COLUMNS + base + where
        + " ORDER BY j.date_posted DESC, j.job_id DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": limit, "offset": (page - 1) * limit}
    )

    return JobListResponse(
        jobs=[to_job_response(r) for r in results],
        total=total, page=page, limit=limit, total_pages=total_pages
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: int):
    """Get details of a specific job."""
    results = execute_raw_sql(
        "SELECT" + JOB_COLUMNS + """
        FROM job_posts j JOIN faculty_admins f ON j.faculty_admin_id = f.faculty_admin_id
        WHERE j.job_id = :jid
        """,
        {"jid": job_id}
    )

    if not results:
        raise HTTPException(status_code=404, detail="Job not found")

    return to_job_response(results[0])


@router.post(
    "/{job_id}/apply",
    response_model=ApplicationSubmitResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
def apply_to_job(
    job_id: int,
    student: dict = Depends(get_current_student),
    parser: TranscriptParsingService = Depends(get_transcript_parser)
):
    """
    Apply to a job. Students only. Cannot apply twice to same job (409).

    If a transcript is on file it is parsed by AI and the averages are
    stored with the application. A failed parse never blocks the application.

    Plain `def`: FastAPI runs it in the threadpool, so the AI call and its
    backoff waits don't hold up other requests.
    """
    service = ApplicationService(parser)
    result = service.submit(student["student_id"], job_id)

    if isinstance(result, ApplicationRejected):
        raise HTTPException(status_code=REJECTION_STATUS[result.reason], detail=result.message)

    snapshot = result.snapshot
    return ApplicationSubmitResponse(
        application_id=result.application_id,
        message="Application submitted successfully",
        transcript_parsed=snapshot.parsed,
        overall_average=snapshot.overall_average,
        third_year_average=snapshot.target_year_average,
        transcript_error=result.transcript_error
    )
