from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal

logger = get_logger(__name__)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for the sales API.

    Handlers commit once on success; a request that raises has its pending
    changes rolled back here, so stock deductions never half-apply.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as exc:
            if session.in_transaction():
                logger.info(
                    "Rolling back open transaction after %s", type(exc).__name__
                )
            await session.rollback()
            raise
