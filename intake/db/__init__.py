"""Database package - all database-related code."""
from intake.db.connection import init_db, get_db_session, get_session_factory, close_db
from intake.db.execution_context import DatabaseExecutionContext
from intake.db.models import (
    Base,
    AccountModel,
    ApplicantModel,
    ProgramModel,
    ApplicationModel,
    ApplicationEventModel,
)

__all__ = [
    "init_db",
    "get_db_session",
    "get_session_factory",
    "close_db",
    "DatabaseExecutionContext",
    "Base",
    "AccountModel",
    "ApplicantModel",
    "ProgramModel",
    "ApplicationModel",
    "ApplicationEventModel",
]
