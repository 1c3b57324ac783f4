"""
Store ORM model.

Physical store locations owned by the account that created them.
"""

import uuid
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    String,
    Numeric,
    JSON,
    Text,
    Enum as SAEnum,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from api.db.base_model import BaseModel, ActiveFlagMixin

DEFAULT_COUNTRY = "Nigeria"
ADDRESS_FIELDS = ("street", "city", "state", "country", "postal_code")


class Currency(str, Enum):
    NGN = "NGN"
    USD = "USD"
    GBP = "GBP"
    EUR = "EUR"


class Store(ActiveFlagMixin, BaseModel):
    """
    Store location.

    Address parts are flat columns; `address` / `full_address` present them
    as one unit. Deleting a store only clears `is_active`.
    """

    __tablename__ = "stores"
    __table_args__ = (
        CheckConstraint("tax_rate >= 0", name="ck_stores_tax_rate_non_negative"),
        Index("ix_stores_name_created_by", "name", "created_by"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)

    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default=DEFAULT_COUNTRY)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    currency: Mapped[Currency] = mapped_column(
        SAEnum(Currency, name="currency_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Currency.NGN,
    )
    tax_rate: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    opening_hours: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    @property
    def address(self) -> dict[str, Optional[str]]:
        return {field: getattr(self, field) for field in ADDRESS_FIELDS}

    @property
    def full_address(self) -> str:
        """Non-empty address parts joined by ", "."""
        return ", ".join(part for part in (getattr(self, f) for f in ADDRESS_FIELDS) if part)

    def __repr__(self) -> str:
        return f"<Store {self.name!r} owner={self.created_by}>"
