# /app/models/rfp.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Numeric,
    Uuid,
    CheckConstraint,
    Index,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType
from app.models.enums import RFPStatus


class RFP(Base):
    __tablename__ = "rfp_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    municipality_id: Mapped[str] = mapped_column(String(128), nullable=False)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)

    budget_min: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 2), nullable=True)
    budget_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'USD'"))
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    requirements_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    evaluation_criteria_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text(f"'{RFPStatus.draft.value}'")
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Award references; no FK so the award transaction can write them before the project row flushes
    selected_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    bids = relationship("Bid", back_populates="rfp", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "(status = 'closed' AND selected_bid_id IS NOT NULL AND project_id IS NOT NULL)"
            " OR (status <> 'closed' AND selected_bid_id IS NULL AND project_id IS NULL)",
            name="ck_rfp_award_refs",
        ),
        Index("ix_rfp_requests_municipality", "municipality_id"),
        Index("ix_rfp_requests_status", "status"),
        Index("ix_rfp_requests_category", "category"),
        Index("ix_rfp_requests_deadline", "deadline"),
    )
