"""
Authentication Routes

POST /auth/register/student - Register a student account + student row
POST /auth/register/faculty - Register a faculty admin account + faculty row
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from jobconnect.db.database import get_db_session, execute_raw_sql
from jobconnect.core.auth import hash_password, verify_password, create_access_token, get_current_user
from jobconnect.schemas.schemas import (
    StudentRegisterRequest, FacultyRegisterRequest, LoginRequest, TokenResponse,
    UserResponse, UserRole, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _create_user(db, email: str, password: str, role: str) -> int:
    result = db.execute(
        text("""
            INSERT INTO users (email, password_hash, role)
            VALUES (:email, :password_hash, :role)
            RETURNING user_id
        """),
        {"email": email, "password_hash": hash_password(password), "role": role}
    )
    return result.fetchone()[0]


@router.post("/register/student", response_model=MessageResponse, status_code=201)
async def register_student(request: StudentRegisterRequest):
    """
    Register a new student.

    After registration, login to get access token, then upload documents.
    """
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT 1 FROM users WHERE email = :email
                UNION
                SELECT 1 FROM students WHERE student_number = :number
            """),
            {"email": request.email, "number": request.student_number}
        )
        if result.fetchone():
            raise HTTPException(status_code=400, detail="Email or student number already exists")

        user_id = _create_user(db, request.email, request.password, UserRole.student.value)
        db.execute(
            text("""
                INSERT INTO students (user_id, student_number, first_name, last_name)
                VALUES (:user_id, :student_number, :first_name, :last_name)
            """),
            {
                "user_id": user_id,
                "student_number": request.student_number,
                "first_name": request.first_name,
                "last_name": request.last_name
            }
        )

    return MessageResponse(message="Registered successfully as student. Please login.")


@router.post("/register/faculty", response_model=MessageResponse, status_code=201)
async def register_faculty(request: FacultyRegisterRequest):
    """Register a new faculty admin."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT 1 FROM users WHERE email = :email
                UNION
                SELECT 1 FROM faculty_admins WHERE staff_number = :number
            """),
            {"email": request.email, "number": request.staff_number}
        )
        if result.fetchone():
            raise HTTPException(status_code=400, detail="Email or staff number already exists")

        user_id = _create_user(db, request.email, request.password, UserRole.faculty.value)
        db.execute(
            text("""
                INSERT INTO faculty_admins (user_id, staff_number, first_name, last_name, faculty, phone)
                VALUES (:user_id, :staff_number, :first_name, :last_name, :faculty, :phone)
            """),
            {
                "user_id": user_id,
                "staff_number": request.staff_number,
                "first_name": request.first_name,
                "last_name": request.last_name,
                "faculty": request.faculty,
                "phone": request.phone
            }
        )

    return MessageResponse(message="Registered successfully as faculty admin. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Exchange email + password for a JWT.

    Send it back as: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        account = db.execute(
            text("SELECT user_id, password_hash, role, is_active FROM users WHERE email = :email"),
            {"email": request.email}
        ).mappings().fetchone()

    # Same answer for unknown email and wrong password
    if not account or not verify_password(request.password, account["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not account["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    token = create_access_token(account["user_id"], account["role"])
    return TokenResponse(access_token=token, user_id=account["user_id"], role=account["role"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Current account."""
    rows = execute_raw_sql(
        "SELECT user_id, email, role, is_active, created_at FROM users WHERE user_id = :id",
        {"id": user["user_id"]}
    )
    return UserResponse(**rows[0])
