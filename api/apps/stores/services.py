"""
Store business logic.

Ownership is strict: a store is visible to, and editable by, only the account
in its `created_by`.
"""

from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import User
from api.apps.stores.models import Store, ADDRESS_FIELDS, DEFAULT_COUNTRY
from api.apps.stores.schemas import StoreCreate, StoreUpdate, BulkStoreRow, serialize_store
from api.utils.exceptions import NotCreatorException, ResourceNotFoundException
from api.utils.logger import get_logger
from api.utils.metrics import bulk_store_rows

logger = get_logger(__name__)


def _store_columns(data: StoreCreate | StoreUpdate, partial: bool) -> dict[str, Any]:
    """Flatten a request body into Store column values."""
    values = data.model_dump(exclude_unset=partial, exclude_none=partial)
    address = values.pop("address", None)
    if address is not None:
        values.update({k: v for k, v in address.items() if k in ADDRESS_FIELDS})
    if data.opening_hours is not None:
        values["opening_hours"] = data.opening_hours.model_dump(exclude_none=True)
    return values


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "row"
    return f"{field}: {str(err.get('msg', 'Invalid value')).removeprefix('Value error, ')}"


class StoreService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_stores(self, actor: User, limit: int = 50, offset: int = 0) -> tuple[list[Store], int]:
        """Active stores owned by `actor`, newest first."""
        filters = {"created_by": actor.id, "is_active": True}
        stores = await Store.find_many(self.session, limit=limit, offset=offset, filters=filters)
        total = await Store.count(self.session, filters=filters)
        return stores, total

    async def get_store(self, actor: User, store_id: str) -> Store:
        store = await Store.get_by_id(self.session, store_id)
        if store is None or not store.is_active:
            raise ResourceNotFoundException("Store not found")
        if store.created_by != actor.id:
            raise NotCreatorException("You do not have permission to access this store")
        return store

    async def create_store(self, actor: User, data: StoreCreate) -> Store:
        values = _store_columns(data, partial=False)
        if not values.get("country"):
            values["country"] = DEFAULT_COUNTRY
        store = await Store.create(self.session, created_by=actor.id, **values)
        logger.info(f"{actor.email} created store {store.name!r}")
        return store

    async def update_store(self, actor: User, store_id: str, data: StoreUpdate) -> Store:
        store = await self.get_store(actor, store_id)
        for field, value in _store_columns(data, partial=True).items():
            setattr(store, field, value)
        await store.save(self.session)
        return store

    async def delete_store(self, actor: User, store_id: str) -> Store:
        """Soft delete."""
        store = await self.get_store(actor, store_id)
        await store.deactivate(self.session)
        logger.info(f"{actor.email} deactivated store {store.name!r}")
        return store

    async def bulk_create(self, actor: User, rows: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Create stores row by row. A bad row is reported and skipped; it never
        aborts the rows around it. Row numbers are 1-based.
        """
        successful: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []
        # A rollback expires every loaded instance, the actor included
        owner_id, owner_email = actor.id, actor.email

        for index, raw in enumerate(rows, start=1):
            try:
                row = BulkStoreRow.model_validate(raw)
            except ValidationError as e:
                failed.append({"row": index, "data": raw, "error": _first_error(e)})
                bulk_store_rows.labels("invalid").inc()
                continue

            values = row.model_dump()
            values["country"] = values.get("country") or DEFAULT_COUNTRY
            try:
                store = await Store.create(self.session, created_by=owner_id, **values)
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.warning(f"Bulk store row {index} rejected by the database: {e.__class__.__name__}")
                failed.append({"row": index, "data": raw, "error": "Could not save this store"})
                bulk_store_rows.labels("rejected").inc()
                continue
            successful.append({"row": index, "store": serialize_store(store)})
            bulk_store_rows.labels("created").inc()

        logger.info(f"{owner_email} bulk-created {len(successful)} store(s), {len(failed)} failed")
        return {
            "successful": successful,
            "failed": failed,
            "summary": {
                "total": len(rows),
                "successful": len(successful),
                "failed": len(failed),
            },
        }
