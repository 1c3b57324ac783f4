"""
Store Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Optional
import uuid

from pydantic import Field, field_validator

from api.apps.auth.schemas import CamelModel, Email
from api.apps.stores.models import Currency, DEFAULT_COUNTRY

MAX_BULK_STORES = 50
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class Address(CamelModel):
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(DEFAULT_COUNTRY, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)


class DayHours(CamelModel):
    open: Optional[str] = Field(None, pattern=TIME_PATTERN)
    close: Optional[str] = Field(None, pattern=TIME_PATTERN)


class OpeningHours(CamelModel):
    monday: Optional[DayHours] = None
    tuesday: Optional[DayHours] = None
    wednesday: Optional[DayHours] = None
    thursday: Optional[DayHours] = None
    friday: Optional[DayHours] = None
    saturday: Optional[DayHours] = None
    sunday: Optional[DayHours] = None


# ── Request Schemas ───────────────────────────────────────────────────────────

class StoreCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[Email] = None
    phone_number: str = Field(..., min_length=1, max_length=30)
    address: Optional[Address] = None
    currency: Currency = Currency.NGN
    tax_rate: float = Field(0, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    opening_hours: Optional[OpeningHours] = None
    logo: Optional[str] = Field(None, max_length=1024)

    @field_validator("name", "phone_number", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)


class StoreUpdate(CamelModel):
    """Partial update; omitted fields are left alone."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[Email] = None
    phone_number: Optional[str] = Field(None, min_length=1, max_length=30)
    address: Optional[Address] = None
    currency: Optional[Currency] = None
    tax_rate: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=500)
    opening_hours: Optional[OpeningHours] = None
    logo: Optional[str] = Field(None, max_length=1024)

    @field_validator("name", "phone_number", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)


class BulkStoreRow(CamelModel):
    """One spreadsheet row: address parts are flat columns."""
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[Email] = None
    phone_number: str = Field(..., min_length=1, max_length=30)
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    currency: Currency = Currency.NGN
    tax_rate: float = Field(0, ge=0)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("name", "phone_number", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("email", "street", "city", "state", "country", "postal_code", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        # Empty spreadsheet cells arrive as ""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class BulkStoreRequest(CamelModel):
    stores: list[dict[str, Any]] = Field(..., min_length=1, max_length=MAX_BULK_STORES)


# ── Response Schemas ──────────────────────────────────────────────────────────

class StoreResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone_number: str
    address: Address
    full_address: str
    currency: Currency
    tax_rate: float
    description: Optional[str] = None
    opening_hours: Optional[dict[str, Any]] = None
    logo: Optional[str] = None
    is_active: bool
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


def serialize_store(store) -> dict[str, Any]:
    return StoreResponse.model_validate(store).model_dump(mode="json", by_alias=True)
