from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from affilify.db.base import Base
from affilify.db.enums import AccountPlanEnum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(length=36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(length=320), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Stored as plain text so unknown legacy plans still load (they are treated as basic).
    plan: Mapped[str] = mapped_column(
        String(length=32), nullable=False, default=AccountPlanEnum.basic.value
    )
    websites_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class Website(Base):
    __tablename__ = "websites"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_websites_slug"),
        sa.Index("idx_websites_account_created", "account_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(length=36), primary_key=True, default=_new_id)
    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    slug: Mapped[str] = mapped_column(String(length=128), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    product_url: Mapped[str] = mapped_column(Text, nullable=False)
    html: Mapped[str] = mapped_column(Text, nullable=False)
    product_info: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False)
    deployment: Mapped[Optional[dict[str, Any]]] = mapped_column(sa.JSON, nullable=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
