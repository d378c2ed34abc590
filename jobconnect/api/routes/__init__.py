"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from jobconnect.api.routes.auth_routes import router as auth_router
from jobconnect.api.routes.student_routes import router as student_router
from jobconnect.api.routes.job_routes import router as job_router
from jobconnect.api.routes.faculty_routes import router as faculty_router

# Main API router
api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(student_router)
api_router.include_router(job_router)
api_router.include_router(faculty_router)
