"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Any, Dict
from datetime import date, datetime
from enum import Enum

from jobconnect.models.transcript import YearSummary


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    faculty = "faculty"


class JobType(str, Enum):
    part_time = "part-time"
    full_time = "full-time"
    tutor = "tutor"
    research_assistant = "research-assistant"
    internship = "internship"


class ApplicationStatus(str, Enum):
    pending = "pending"
    under_review = "under_review"
    shortlisted = "shortlisted"
    interviewed = "interviewed"
    accepted = "accepted"
    rejected = "rejected"


class DocumentType(str, Enum):
    id_document = "id_document"
    proof_of_tax = "proof_of_tax"
    proof_of_bank = "proof_of_bank"
    resume = "resume"
    academic_transcript = "academic_transcript"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class StudentRegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    student_number: str = Field(..., pattern=r"^\d{9}$", description="9-digit student number")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

class FacultyRegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    staff_number: str = Field(..., min_length=1, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    faculty: str = Field(..., min_length=2, max_length=200)
    phone: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class UserResponse(BaseModel):
    user_id: int
    email: str
    role: str
    is_active: bool
    created_at: datetime


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentUpdate(BaseModel):
    phone: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None

class StudentResponse(BaseModel):
    student_id: int
    user_id: int
    student_number: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    documents: Dict[str, bool] = {}
    profile_complete: bool = False
    profile_progress: int = 0
    created_at: datetime

class DocumentUploadResponse(BaseModel):
    success: bool
    message: str
    uploaded: List[str] = []
    profile_complete: bool = False
    profile_progress: int = 0


# ============================================================
# FACULTY SCHEMAS
# ============================================================

class FacultyUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    faculty: Optional[str] = Field(None, min_length=2, max_length=200)
    phone: Optional[str] = None

class FacultyResponse(BaseModel):
    faculty_admin_id: int
    user_id: int
    staff_number: str
    first_name: str
    last_name: str
    email: str
    faculty: str
    phone: Optional[str] = None
    created_at: datetime


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    job_title: str = Field(..., min_length=3, max_length=200)
    faculty: str = Field(..., min_length=2, max_length=200)
    job_type: JobType = JobType.part_time
    description: str = Field(..., min_length=1)
    requirements: str = Field(..., min_length=1)
    application_deadline: date

class JobUpdate(BaseModel):
    job_title: Optional[str] = Field(None, min_length=3, max_length=200)
    faculty: Optional[str] = None
    job_type: Optional[JobType] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    application_deadline: Optional[date] = None
    is_active: Optional[bool] = None

class JobResponse(BaseModel):
    job_id: int
    faculty_admin_id: int
    posted_by: str
    job_title: str
    faculty: str
    job_type: str
    description: str
    requirements: str
    application_deadline: date
    is_active: bool
    date_posted: datetime

class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    limit: int
    total_pages: int


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationSubmitResponse(BaseModel):
    application_id: int
    message: str
    transcript_parsed: bool
    overall_average: Optional[float] = None
    third_year_average: Optional[float] = None
    transcript_error: Optional[str] = None

class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus

class ApplicationResponse(BaseModel):
    application_id: int
    job_id: int
    job_title: str
    faculty: str
    application_deadline: date
    status: str
    applied_at: datetime
    transcript_parsed: bool
    overall_average: Optional[float] = None
    third_year_average: Optional[float] = None

class ApplicantResponse(BaseModel):
    application_id: int
    student_id: int
    student_number: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    status: str
    applied_at: datetime
    transcript_parsed: bool
    overall_average: Optional[float] = None
    third_year_average: Optional[float] = None

class ApplicantListResponse(BaseModel):
    job_id: int
    job_title: str
    min_average: float
    applicants: List[ApplicantResponse]

class ApplicantDetailResponse(ApplicantResponse):
    job_id: int
    job_title: str
    documents: Dict[str, Optional[str]] = {}
    years: List[YearSummary] = []
    ai_summary: Optional[Dict[str, Any]] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class ErrorResponse(BaseModel):
    detail: str
