"""Remove contact rows that point at deleted users.

Usage: python -m app.scripts.cleanup_contacts
"""

import asyncio

from app.core.logger import configure_logging
from app.db.session import async_session_factory, engine, ensure_schema_ready
from app.services.contact_management import cleanup_orphaned_contacts


async def main() -> int:
    logger = configure_logging()
    await ensure_schema_ready()
    async with async_session_factory() as session:
        removed = await cleanup_orphaned_contacts(session)
    await engine.dispose()
    logger.info("cleanup_contacts finished removed=%s", removed)
    return removed


if __name__ == "__main__":
    asyncio.run(main())
