"""
Base model with production-grade query patterns.

Query Standards:
- Pagination is mandatory for list queries
- Soft deletion is an `is_active` flag (see ActiveFlagMixin), never a row removal
- Index usage must be explicit
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, TypeVar
from sqlalchemy import Boolean, DateTime, Select, select, func, desc, asc
from sqlalchemy.orm import Mapped, mapped_column, DeclarativeBase
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T", bound="BaseModel")

MAX_PAGE_SIZE = 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models"""

    pass


class BaseModel(Base):
    """
    Abstract base model: UUID key, audit timestamps and async query helpers.

    List queries are always paginated and default to newest first. Lookups by
    id accept strings straight from a URL; anything that is not a UUID simply
    finds nothing.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
    )

    @classmethod
    def _where(
        cls,
        query: Select,
        filters: Optional[Dict[str, Any]],
        kwargs: Dict[str, Any],
    ) -> Select:
        """Equality filters from an explicit dict and/or keyword arguments."""
        criteria = {**(filters or {}), **kwargs}
        return query.filter_by(**criteria) if criteria else query

    # CREATE

    @classmethod
    async def create(cls: type[T], db: AsyncSession, **kwargs) -> T:
        instance = cls(**kwargs)
        db.add(instance)
        await db.commit()
        await db.refresh(instance)

        return instance

    # READ

    @classmethod
    async def get_by_id(cls: type[T], db: AsyncSession, id: Any) -> Optional[T]:
        if not isinstance(id, uuid.UUID):
            try:
                id = uuid.UUID(str(id))
            except ValueError:
                return None
        return await db.get(cls, id)

    @classmethod
    async def find_one(
        cls: type[T],
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> Optional[T]:
        query = cls._where(select(cls), filters, kwargs).limit(1)
        result = await db.execute(query)
        return result.scalars().first()

    @classmethod
    async def find_many(
        cls: type[T],
        db: AsyncSession,
        limit: int = 100,
        offset: int = 0,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        order_desc: bool = False,
        **kwargs,
    ) -> List[T]:
        """
        One page of matching rows.

        `order_by` names a column; unknown names fall back to newest first.
        """
        query = cls._where(select(cls), filters, kwargs)

        if order_by and hasattr(cls, order_by):
            column = getattr(cls, order_by)
            query = query.order_by(desc(column) if order_desc else asc(column))
        else:
            query = query.order_by(desc(cls.created_at))

        query = query.offset(max(offset, 0)).limit(min(limit, MAX_PAGE_SIZE))
        result = await db.execute(query)
        return list(result.scalars().all())

    @classmethod
    async def count(
        cls: type[T],
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> int:
        query = cls._where(select(func.count()).select_from(cls), filters, kwargs)
        result = await db.execute(query)
        return result.scalar_one()

    @classmethod
    async def exists(
        cls: type[T],
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> bool:
        query = cls._where(select(cls.id), filters, kwargs)
        result = await db.execute(select(query.exists()))
        return bool(result.scalar())

    # UPDATE

    async def save(self: T, db: AsyncSession, commit: bool = True) -> T:
        """Persist pending attribute changes and bump `updated_at`."""
        self.updated_at = utc_now()
        db.add(self)

        if commit:
            await db.commit()
            await db.refresh(self)

        return self


class ActiveFlagMixin:
    """
    Soft deletion.

    Rows are deactivated, never removed, so `created_by` links and audit
    history stay intact. Reactivation is a plain update of the flag.
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    async def deactivate(self, db: AsyncSession, commit: bool = True):
        self.is_active = False
        return await self.save(db, commit=commit)  # type: ignore[attr-defined]
