"""
Applicant repository for data access.

The submission engine only reads applicants; the form engine owns their writes.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload
import logging

from intake.core.interfaces import IApplicantRepository
from intake.db.models import AccountModel, ApplicantModel
from intake.domain.entities import Account, Applicant
from intake.domain.value_objects import AnswerData, as_utc

logger = logging.getLogger(__name__)


class ApplicantRepository(IApplicantRepository):
    """Repository for Applicant entity"""

    def __init__(self, session: AsyncSession):
        self._db = session

    async def get_by_id(self, applicant_id: int) -> Optional[Applicant]:
        """Get applicant by database ID, with account attached"""
        result = await self._db.execute(
            select(ApplicantModel)
            .where(ApplicantModel.id == applicant_id)
            .options(joinedload(ApplicantModel.account))
        )
        db_applicant = result.scalar_one_or_none()
        if db_applicant is None:
            return None
        return applicant_from_orm(db_applicant, include_account=True)


def account_from_orm(db_account: Optional[AccountModel]) -> Optional[Account]:
    """Convert ORM AccountModel → domain Account"""
    if db_account is None:
        return None
    return Account(id=db_account.id, email_address=db_account.email_address)


def applicant_from_orm(db_applicant: ApplicantModel, include_account: bool = False) -> Applicant:
    """
    Convert ORM ApplicantModel → domain Applicant.

    include_account must only be set when the account was eagerly loaded;
    lazy loads are not allowed on async sessions.
    """
    return Applicant(
        id=db_applicant.id,
        account_id=db_applicant.account_id,
        answer_data=AnswerData(db_applicant.answer_data or {}),
        created_at=as_utc(db_applicant.created_at),
        account=account_from_orm(db_applicant.account) if include_account else None,
    )
