"""
Benefits intake - store bootstrap.

Wires logging, the database and the submission engine together for an
embedding application (web layer, worker, admin script):

    store = await create_application_store()
    result = await store.submit(applicant_id, program_id)
    ...
    await shutdown()
"""
from typing import Optional
import logging

from intake.application.application_store import ApplicationStore
from intake.application.entity_lookup import EntityLookupService
from intake.application.lineage_locks import LineageLocks
from intake.application.lookup_join import LookupJoin
from intake.config import settings
from intake.db import DatabaseExecutionContext, close_db, get_session_factory, init_db
from intake.domain.unit_of_work import unit_of_work_factory
from intake.logging_config import configure_logging
from intake.version import __version__

logger = logging.getLogger(__name__)


async def create_application_store(
    database_url: Optional[str] = None,
    max_concurrency: Optional[int] = None
) -> ApplicationStore:
    """
    Initialize the database and build an ApplicationStore.

    Args:
        database_url: Override settings.database_url
        max_concurrency: Override settings.db_max_concurrency

    Returns:
        Ready-to-use store
    """
    configure_logging(settings.log_level)

    logger.info("🚀 Starting benefits intake engine")
    logger.info(f"📦 Version: {__version__}")
    logger.info(f"📝 Environment: {settings.environment}")

    await init_db(database_url)

    session_factory = get_session_factory()
    execution_context = DatabaseExecutionContext(max_concurrency or settings.db_max_concurrency)
    lookup_join = LookupJoin(EntityLookupService(session_factory, execution_context))

    return ApplicationStore(
        uow_factory=unit_of_work_factory(session_factory),
        lookup_join=lookup_join,
        execution_context=execution_context,
        lineage_locks=LineageLocks(),
    )


async def shutdown() -> None:
    """Release database connections"""
    await close_db()
    logger.info("👋 Benefits intake engine stopped")
