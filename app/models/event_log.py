#app/models/event_log.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import String, DateTime, Uuid, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


class EventLog(Base):
    """
    Durable record of domain events, written in the same transaction as the
    state change that produced them.
    """
    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    rfp_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_participant_id: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    payload_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_event_logs_rfp", "rfp_id"),
        Index("ix_event_logs_type", "event_type"),
    )
