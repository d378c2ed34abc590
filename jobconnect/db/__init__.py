"""
Database module - SQLAlchemy engine, sessions and table definitions.
"""
from jobconnect.db.database import get_db_session, init_db, test_database_connection

__all__ = [
    "get_db_session",
    "init_db",
    "test_database_connection"
]
