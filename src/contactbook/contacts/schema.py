"""
Schema initialisation for the contacts store.

Creates the contacts table and its name index only when they are absent, so
it is safe to run on every startup.
"""

from sqlalchemy.ext.asyncio import AsyncEngine

# Importing the model registers the table on Base.metadata.
from contactbook.contacts.models import Contact
from contactbook.shared.database import Base
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)


async def init_schema(engine: AsyncEngine) -> None:
    """Ensure the contacts table and ``idx_contacts_name`` exist.

    Args:
        engine: Async engine bound to the store.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    logger.info(
        "Schema ready",
        extra={"table": Contact.__tablename__, "url": engine.url.render_as_string()},
    )
