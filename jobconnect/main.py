"""
JobConnect - Main Application

FastAPI backend with:
- SQL database (PostgreSQL in production, SQLite for local runs)
- Gemini / OpenAI-compatible model for transcript extraction
- JWT authentication

Run: uvicorn jobconnect.main:app --reload
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobconnect.api.routes import api_router
from jobconnect.core.config import get_settings
from jobconnect.core.logging import setup_logging
from jobconnect.db.database import init_db, test_database_connection
from jobconnect.services.extraction_client import get_extraction_client

settings = get_settings()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="JobConnect",
    description="""
    Campus job board with AI-assisted transcript screening.

    ## Features
    - **Authentication**: JWT-based auth for students and faculty admins
    - **Students**: Profile, PDF document uploads, applications
    - **Jobs**: Search, filter and apply to job posts
    - **Faculty**: Job post management and applicant screening
    - **Transcript parsing**: Subjects, marks and averages extracted from the
      academic transcript when a student applies
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Configure logging, create tables and the uploads directory, build the AI client."""
    setup_logging(settings.log_level)
    init_db()
    os.makedirs(settings.uploads_dir, exist_ok=True)

    get_extraction_client()
    if not settings.ai_api_key:
        logger.warning(
            "No API key configured for AI provider '%s' - applications will be stored "
            "without transcript averages", settings.ai_provider
        )
    logger.info("JobConnect started (AI provider: %s)", settings.ai_provider)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "JobConnect", "docs": "/docs"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if test_database_connection() else "disconnected",
        "ai_provider": settings.ai_provider,
        "ai_configured": bool(settings.ai_api_key)
    }
