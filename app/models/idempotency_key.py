from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import String, DateTime, Uuid, UniqueConstraint, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


class IdempotencyKeyRecord(Base):
    """
    Stores the outcome of a mutating request carrying an idempotency token,
    so a retry replays the first result instead of repeating the effect.

    Scope is strict:
      (rfp_id, participant_id, endpoint_key, idem_key) must be unique.
    """
    __tablename__ = "idempotency_key_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    rfp_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    participant_id: Mapped[str] = mapped_column(String(128), nullable=False)

    endpoint_key: Mapped[str] = mapped_column(String(64), nullable=False)  # e.g. "AWARD"
    idem_key: Mapped[str] = mapped_column(String(128), nullable=False)

    request_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    response_status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'200'"))
    response_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("rfp_id", "participant_id", "endpoint_key", "idem_key", name="uq_idem_scope"),
        Index("ix_idem_lookup", "rfp_id", "participant_id", "endpoint_key"),
    )
