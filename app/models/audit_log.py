from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import String, DateTime, Uuid, Index, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


class AuditLogRecord(Base):
    """
    Append-only audit trail of mutating API calls.
    Stores a payload hash and a safe summary; never competing bid amounts.
    """
    __tablename__ = "audit_log_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Request traceability
    request_id: Mapped[str] = mapped_column(String(128), nullable=False)
    route: Mapped[str] = mapped_column(String(256), nullable=False)
    method: Mapped[str] = mapped_column(String(16), nullable=False)

    # Actor
    actor_participant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(64), nullable=False)

    rfp_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    # What happened
    action: Mapped[str] = mapped_column(String(96), nullable=False)  # e.g., RFP_PUBLISHED
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default=text("'ok'"))

    # Payload traceability (hash + safe summary)
    payload_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    payload_summary_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # Optional result reference ids
    ref_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        Index("ix_audit_rfp", "rfp_id"),
        Index("ix_audit_action", "action"),
        Index("ix_audit_created", "created_at"),
    )
