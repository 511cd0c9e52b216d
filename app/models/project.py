# /app/models/project.py
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Date, DateTime, Numeric, Uuid, ForeignKey, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.enums import ProjectPhase, ProjectStatus


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # unique: an RFP spawns at most one project
    rfp_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("rfp_requests.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    winning_bid_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bids.id", ondelete="RESTRICT"), nullable=False
    )

    solution_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    municipality_id: Mapped[str] = mapped_column(String(128), nullable=False)
    developer_id: Mapped[str] = mapped_column(String(128), nullable=False)

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    budget: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'USD'"))

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=text(f"'{ProjectStatus.planning.value}'")
    )
    phase: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=text(f"'{ProjectPhase.initiation.value}'")
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_projects_municipality", "municipality_id"),
        Index("ix_projects_developer", "developer_id"),
    )
