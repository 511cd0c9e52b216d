from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
from starlette.requests import Request

from app.core.hashing import fingerprint
from app.models.audit_log import AuditLogRecord
from app.policies.rbac import Principal


class AuditAction:
    # RFP lifecycle
    RFP_CREATED = "RFP_CREATED"
    RFP_UPDATED = "RFP_UPDATED"
    RFP_DELETED = "RFP_DELETED"
    RFP_PUBLISHED = "RFP_PUBLISHED"

    # Bids
    BID_SUBMITTED = "BID_SUBMITTED"
    BID_REPLACED = "BID_REPLACED"

    # Award
    RFP_AWARDED = "RFP_AWARDED"


def audit_event(
    db: Session,
    *,
    request: Request,
    actor: Principal,
    rfp_id: Optional[uuid.UUID],
    action: str,
    payload_summary: Dict[str, Any],
    status: str = "ok",
    ref_id: Optional[str] = None,
) -> AuditLogRecord:
    """
    Append-only audit record insert.

    payload_summary MUST be safe: do not include other developers' bid amounts.
    Audit stores hash + safe summary only.
    """
    rid = getattr(request.state, "request_id", None) or "missing"

    row = AuditLogRecord(
        request_id=rid,
        route=str(request.url.path),
        method=request.method,
        actor_participant_id=actor.participant_id,
        actor_role=actor.role.value,
        rfp_id=rfp_id,
        action=action,
        status=status,
        payload_hash=fingerprint(payload_summary),
        payload_summary_json=payload_summary,
        ref_id=ref_id,
    )
    db.add(row)
    db.commit()
    return row
