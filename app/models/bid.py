#app/models/bid.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Numeric,
    Uuid,
    ForeignKey,
    CheckConstraint,
    Index,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import BidStatus


class Bid(Base):
    __tablename__ = "bids"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    rfp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("rfp_requests.id", ondelete="CASCADE"), nullable=False
    )
    developer_id: Mapped[str] = mapped_column(String(128), nullable=False)
    solution_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    proposal_text: Mapped[str] = mapped_column(Text, nullable=False)
    technical_approach: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'USD'"))
    timeline: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text(f"'{BidStatus.submitted.value}'")
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    rfp = relationship("RFP", back_populates="bids")

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_bids_price_positive"),
        # one live bid per developer per RFP
        Index(
            "uq_bids_one_submitted_per_developer",
            "rfp_id",
            "developer_id",
            unique=True,
            postgresql_where=text("status = 'submitted'"),
            sqlite_where=text("status = 'submitted'"),
        ),
        Index("ix_bids_rfp_status", "rfp_id", "status"),
        Index("ix_bids_developer", "developer_id"),
    )
