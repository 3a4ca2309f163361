"""
SQLAlchemy ORM models for database tables.

Accounts, applicants and programs are written by other parts of the system;
the submission engine only reads them. Applications and their events are the
tables this package owns.
"""
from sqlalchemy import Column, String, Text, DateTime, Index, ForeignKey, Integer, JSON, Enum
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from intake.domain.value_objects import LifecycleStage

Base = declarative_base()


class AccountModel(Base):
    """Login accounts - one per person signing in"""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email_address = Column(String(255), nullable=True)  # Guest accounts have none
    created_at = Column(DateTime, nullable=False, default=func.now())

    applicants = relationship("ApplicantModel", back_populates="account")


class ApplicantModel(Base):
    """
    Applicants - the person applying and their in-progress answers.

    answer_data is the form engine's JSON document; it is copied onto an
    application when a draft is created or a submission is made.
    """
    __tablename__ = "applicants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey('accounts.id', ondelete='CASCADE'), nullable=True)
    answer_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=func.now())

    account = relationship("AccountModel", back_populates="applicants")
    applications = relationship("ApplicationModel", back_populates="applicant")

    __table_args__ = (
        Index('idx_applicants_account_id', 'account_id'),
    )


class ProgramModel(Base):
    """
    Programs - one row per published version.

    name is the admin name, stable across versions. Lifecycle rules group
    applications by it, never by program id.
    """
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)  # Admin name
    display_name = Column(String(500), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=func.now())

    applications = relationship("ApplicationModel", back_populates="program")

    __table_args__ = (
        Index('idx_programs_name', 'name'),
    )


class ApplicationModel(Base):
    """
    Applications - drafts, the active submission and obsolete history.

    Rows are never deleted. No unique constraint on (applicant, program name,
    stage): historical data can hold more than one ACTIVE row per lineage and
    the store must still be able to load and heal it.
    """
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    applicant_id = Column(Integer, ForeignKey('applicants.id'), nullable=False)
    program_id = Column(Integer, ForeignKey('programs.id'), nullable=False)
    lifecycle_stage = Column(
        Enum(LifecycleStage, values_callable=lambda stages: [s.value for s in stages]),
        nullable=False
    )
    answer_data = Column(JSON, nullable=False, default=dict)  # Snapshot, not a reference
    submit_time = Column(DateTime, nullable=True)  # Set on activation
    submitter_email = Column(String(255), nullable=True)  # Intermediary, if any
    create_time = Column(DateTime, nullable=False, default=func.now())

    applicant = relationship("ApplicantModel", back_populates="applications")
    program = relationship("ProgramModel", back_populates="applications")
    events = relationship(
        "ApplicationEventModel",
        back_populates="application",
        order_by="ApplicationEventModel.id"
    )

    __table_args__ = (
        Index('idx_applications_applicant_stage', 'applicant_id', 'lifecycle_stage'),
        Index('idx_applications_submit_time', 'submit_time'),
        Index('idx_applications_program_id', 'program_id'),
    )


class ApplicationEventModel(Base):
    """
    Application history - status changes and notes recorded against a
    submitted application.
    """
    __tablename__ = "application_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey('applications.id', ondelete='CASCADE'), nullable=False)
    event_type = Column(String(50), nullable=False)  # 'status_change', 'note_change'
    details = Column(JSON, nullable=False, default=dict)
    creator_email = Column(String(255), nullable=True)
    create_time = Column(DateTime, nullable=False, default=func.now())

    application = relationship("ApplicationModel", back_populates="events")

    __table_args__ = (
        Index('idx_application_events_application_id', 'application_id'),
    )
