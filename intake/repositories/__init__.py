"""Repositories - SQLAlchemy persistence behind the core interfaces."""
from intake.repositories.applicant_repository import ApplicantRepository
from intake.repositories.application_repository import ApplicationRepository
from intake.repositories.program_repository import ProgramRepository

__all__ = [
    "ApplicantRepository",
    "ApplicationRepository",
    "ProgramRepository",
]
