"""
Table definitions (SQLAlchemy Core).

Only used to create the schema; queries are written as plain SQL with
sqlalchemy.text() and stick to what both PostgreSQL and SQLite accept.
"""

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Text, Float, Boolean,
    DateTime, ForeignKey, UniqueConstraint, func
)

metadata = MetaData()

users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True),
    Column("email", String(255), unique=True, nullable=False),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False),  # student | faculty
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

students = Table(
    "students", metadata,
    Column("student_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False),
    Column("student_number", String(9), unique=True, nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(30)),
    Column("emergency_contact_name", String(200)),
    Column("emergency_contact_phone", String(30)),
    Column("emergency_contact_relationship", String(50)),
    # Stored upload filenames (relative to UPLOADS_DIR)
    Column("id_document", String(255)),
    Column("proof_of_tax", String(255)),
    Column("proof_of_bank", String(255)),
    Column("resume", String(255)),
    Column("academic_transcript", String(255)),
    Column("profile_complete", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, server_default=func.current_timestamp()),
)

faculty_admins = Table(
    "faculty_admins", metadata,
    Column("faculty_admin_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False),
    Column("staff_number", String(20), unique=True, nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("faculty", String(200), nullable=False),
    Column("phone", String(30)),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
)

job_posts = Table(
    "job_posts", metadata,
    Column("job_id", Integer, primary_key=True),
    Column("faculty_admin_id", Integer, ForeignKey("faculty_admins.faculty_admin_id", ondelete="CASCADE"), nullable=False),
    Column("job_title", String(200), nullable=False),
    Column("faculty", String(200), nullable=False),
    Column("job_type", String(30), nullable=False, server_default="part-time"),
    Column("description", Text, nullable=False),
    Column("requirements", Text, nullable=False),
    Column("application_deadline", String(10), nullable=False),  # ISO date
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("date_posted", DateTime, server_default=func.current_timestamp()),
)

applications = Table(
    "applications", metadata,
    Column("application_id", Integer, primary_key=True),
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("job_posts.job_id", ondelete="CASCADE"), nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("applied_at", DateTime, server_default=func.current_timestamp()),
    # Transcript snapshot - written once at insert, never updated
    Column("overall_average", Float),
    Column("third_year_average", Float),
    Column("all_year_subjects", Text),
    Column("ai_summary", Text),
    Column("transcript_parsed", Boolean, nullable=False, server_default="0"),
    UniqueConstraint("student_id", "job_id", name="uq_application_student_job"),
)
