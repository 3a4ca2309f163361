"""
Integration tests for SQLAlchemyUnitOfWork transaction boundaries.
"""
import pytest

from intake.domain.entities import Application
from intake.domain.unit_of_work import unit_of_work_factory


async def count_lineage(new_uow, draft):
    async with new_uow() as uow:
        return len(await uow.applications.find_lineage(draft.lineage))


@pytest.mark.asyncio
async def test_commit_persists_changes(session_factory, seed):
    """Test that committed work is visible to a new unit of work."""
    applicant = await seed.applicant({"size": 1})
    program = await seed.program()
    new_uow = unit_of_work_factory(session_factory)

    async with new_uow() as uow:
        draft = await uow.applications.save(Application.new_draft(applicant, program))
        await uow.commit()

    assert await count_lineage(new_uow, draft) == 1


@pytest.mark.asyncio
async def test_block_without_commit_rolls_back(session_factory, seed):
    """Test that leaving the block without commit() discards the work."""
    applicant = await seed.applicant({"size": 1})
    program = await seed.program()
    new_uow = unit_of_work_factory(session_factory)

    async def save_and_return_early():
        async with new_uow() as uow:
            draft = await uow.applications.save(Application.new_draft(applicant, program))
            return draft

    draft = await save_and_return_early()

    assert draft.id is not None
    assert await count_lineage(new_uow, draft) == 0


@pytest.mark.asyncio
async def test_exception_rolls_back_and_propagates(session_factory, seed):
    """Test that an error inside the block rolls back and is re-raised."""
    applicant = await seed.applicant({"size": 1})
    program = await seed.program()
    new_uow = unit_of_work_factory(session_factory)
    draft = Application.new_draft(applicant, program)

    with pytest.raises(RuntimeError, match="after save"):
        async with new_uow() as uow:
            await uow.applications.save(draft)
            raise RuntimeError("after save")

    assert await count_lineage(new_uow, draft) == 0
