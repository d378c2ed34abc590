"""
Authentication - passwords, JWT access tokens and role dependencies.

A token carries the user id in `sub` and the role for convenience; the role
that counts is always re-read from the users table on each request.

Dependencies:
- get_current_user: any logged-in, active account
- get_current_student: role "student", adds student_id
- get_current_faculty: role "faculty", adds faculty_admin_id
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from jobconnect.core.config import get_settings
from jobconnect.db.database import get_db_session

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer()

# role -> (profile table, id column, 403 detail)
ROLE_PROFILES = {
    "student": ("students", "student_id", "Students only"),
    "faculty": ("faculty_admins", "faculty_admin_id", "Faculty admins only"),
}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Signed JWT for `user_id`, valid for JWT_EXPIRE_MINUTES unless overridden."""
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    claims = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Claims of a valid token, None if the signature or expiry check fails."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - the authenticated account.

    Usage:
        @router.get("/me")
        async def me(user: dict = Depends(get_current_user)):
            ...
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    claims = decode_token(credentials.credentials)
    subject = claims.get("sub") if claims else None
    if not subject or not str(subject).isdigit():
        raise unauthorized

    with get_db_session() as db:
        account = db.execute(
            text("SELECT user_id, email, role, is_active FROM users WHERE user_id = :id"),
            {"id": int(subject)}
        ).mappings().fetchone()

    if not account:
        raise unauthorized
    if not account["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {"user_id": account["user_id"], "email": account["email"], "role": account["role"]}


def _attach_profile(user: dict, role: str) -> dict:
    """Check the role and add the id of the matching profile row."""
    table, id_column, forbidden = ROLE_PROFILES[role]
    if user["role"] != role:
        raise HTTPException(status_code=403, detail=forbidden)

    with get_db_session() as db:
        profile_id = db.execute(
            text(f"SELECT {id_column} FROM {table} WHERE user_id = :id"),
            {"id": user["user_id"]}
        ).scalar()

    if profile_id is None:
        raise HTTPException(status_code=404, detail=f"{role.capitalize()} profile not found")

    return {**user, id_column: profile_id}


async def get_current_student(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - student accounts only; adds student_id."""
    return _attach_profile(user, "student")


async def get_current_faculty(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - faculty admin accounts only; adds faculty_admin_id."""
    return _attach_profile(user, "faculty")
