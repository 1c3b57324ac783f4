"""
Store router.

Entry/exit only, no logic here. Every route is owner-only; the service
enforces per-store ownership.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.dependencies import verify_user, require_role, require_same_tenant
from api.apps.auth.models import User
from api.apps.auth.permissions import Role
from api.apps.stores.schemas import StoreCreate, StoreUpdate, BulkStoreRequest, serialize_store
from api.apps.stores.services import StoreService
from api.config.settings import settings
from api.db.session import get_session
from api.utils.responses import success_response

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/stores",
    tags=["Stores"],
    dependencies=[Depends(require_role(Role.OWNER)), Depends(require_same_tenant)],
)


def get_store_service(session: AsyncSession = Depends(get_session)) -> StoreService:
    return StoreService(session)


@router.get("")
async def list_stores(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(verify_user),
    service: StoreService = Depends(get_store_service),
):
    stores, total = await service.list_stores(user, limit=limit, offset=offset)
    return success_response(
        status_code=200,
        message="Stores retrieved",
        data={"stores": [serialize_store(s) for s in stores], "count": total},
    )


@router.post("/bulk")
async def bulk_create_stores(
    data: BulkStoreRequest,
    user: User = Depends(verify_user),
    service: StoreService = Depends(get_store_service),
):
    """201 when every row is created, 207 when some rows failed."""
    result = await service.bulk_create(user, data.stores)
    summary = result["summary"]
    return success_response(
        status_code=201 if summary["failed"] == 0 else 207,
        message=f"Created {summary['successful']} store(s). {summary['failed']} failed.",
        data=result,
    )


@router.get("/{store_id}")
async def get_store(
    store_id: str,
    user: User = Depends(verify_user),
    service: StoreService = Depends(get_store_service),
):
    store = await service.get_store(user, store_id)
    return success_response(
        status_code=200,
        message="Store retrieved",
        data={"store": serialize_store(store)},
    )


@router.post("", status_code=201)
async def create_store(
    data: StoreCreate,
    user: User = Depends(verify_user),
    service: StoreService = Depends(get_store_service),
):
    store = await service.create_store(user, data)
    return success_response(
        status_code=201,
        message="Store created successfully",
        data={"store": serialize_store(store)},
    )


@router.put("/{store_id}")
async def update_store(
    store_id: str,
    data: StoreUpdate,
    user: User = Depends(verify_user),
    service: StoreService = Depends(get_store_service),
):
    store = await service.update_store(user, store_id, data)
    return success_response(
        status_code=200,
        message="Store updated successfully",
        data={"store": serialize_store(store)},
    )


@router.delete("/{store_id}")
async def delete_store(
    store_id: str,
    user: User = Depends(verify_user),
    service: StoreService = Depends(get_store_service),
):
    """Deactivate (never hard-delete) a store."""
    await service.delete_store(user, store_id)
    return success_response(status_code=200, message="Store deleted successfully")
