"""
Request-scoped database session.

Routers depend on `get_session`; tests override it with their own engine.
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from api.db.database import async_session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


__all__ = ["get_session"]
