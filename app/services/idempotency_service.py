from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.hashing import fingerprint
from app.models.idempotency_key import IdempotencyKeyRecord

logger = logging.getLogger(__name__)


class IdempotencyService:
    def get_existing(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        participant_id: str,
        endpoint_key: str,
        idem_key: str,
    ) -> Optional[IdempotencyKeyRecord]:
        return db.execute(
            select(IdempotencyKeyRecord).where(
                IdempotencyKeyRecord.rfp_id == rfp_id,
                IdempotencyKeyRecord.participant_id == participant_id,
                IdempotencyKeyRecord.endpoint_key == endpoint_key,
                IdempotencyKeyRecord.idem_key == idem_key,
            )
        ).scalar_one_or_none()

    def replay(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        participant_id: str,
        endpoint_key: str,
        idem_key: str,
        request_payload: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Returns the stored response JSON for a key seen before with the same
        payload, or None. A key reused with a different payload never replays.
        """
        existing = self.get_existing(
            db,
            rfp_id=rfp_id,
            participant_id=participant_id,
            endpoint_key=endpoint_key,
            idem_key=idem_key,
        )
        if not existing:
            return None

        if existing.request_hash != fingerprint(request_payload):
            logger.warning(
                "[idempotency] key reused with different payload rfp=%s endpoint=%s", rfp_id, endpoint_key
            )
            return None
        return existing.response_json

    def record(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        participant_id: str,
        endpoint_key: str,
        idem_key: str,
        request_payload: Dict[str, Any],
        response_json: Dict[str, Any],
        response_status: int = 200,
    ) -> None:
        """
        Stage the record in the caller's transaction; the caller commits.
        """
        existing = self.get_existing(
            db,
            rfp_id=rfp_id,
            participant_id=participant_id,
            endpoint_key=endpoint_key,
            idem_key=idem_key,
        )
        if existing:
            # already stored (or replayed). Do not overwrite.
            return

        db.add(
            IdempotencyKeyRecord(
                rfp_id=rfp_id,
                participant_id=participant_id,
                endpoint_key=endpoint_key,
                idem_key=idem_key,
                request_hash=fingerprint(request_payload),
                response_status=str(response_status),
                response_json=response_json,
            )
        )
