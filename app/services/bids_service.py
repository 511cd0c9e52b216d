#app/services/bids_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.errors import (
    AuthorizationError,
    DuplicateBidError,
    NotFoundError,
    ProcurementError,
    ValidationError,
    WindowClosedError,
)
from app.models.bid import Bid
from app.models.enums import ActorRole, BidStatus, RFPStatus
from app.models.rfp import RFP
from app.policies.rbac import ACTION_SUBMIT_BID, Principal, require_action
from app.policies.rfp_policies import is_rfp_owner
from app.services.rfp_service import RFPService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------


def _ensure_window_open(rfp: RFP, now: datetime) -> None:
    if rfp.status != RFPStatus.published.value:
        raise WindowClosedError(f"RFP is {rfp.status}; bid submissions are not allowed.")
    deadline = as_utc(rfp.deadline)
    if deadline is None or now >= deadline:
        raise WindowClosedError("RFP deadline has passed; bid submissions are not allowed.")


def _require_text(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {name}")
    return str(value).strip()


def _require_price(price) -> Decimal:
    try:
        value = Decimal(str(price))
    except Exception:
        raise ValidationError("price must be a number.")
    if value <= 0:
        raise ValidationError("price must be positive.")
    return value


# ---------------------------------------------------------------------
# service
# ---------------------------------------------------------------------


class BidService:
    def __init__(self, rfps: Optional[RFPService] = None):
        self.rfps = rfps or RFPService()

    def _live_bid(
        self, db: Session, rfp_id: uuid.UUID, developer_id: str
    ) -> Optional[Bid]:
        return db.execute(
            select(Bid).where(
                Bid.rfp_id == rfp_id,
                Bid.developer_id == developer_id,
                Bid.status == BidStatus.submitted.value,
            ).execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _recheck_still_published(self, db: Session, rfp_id: uuid.UUID) -> None:
        """
        Re-read the RFP status after our write is flushed. If an award closed
        the RFP in between, this bid must not join the awarded set.
        """
        db.expire_all()
        status = db.execute(select(RFP.status).where(RFP.id == rfp_id)).scalar_one()
        if status != RFPStatus.published.value:
            raise WindowClosedError(f"RFP is {status}; bid submissions are not allowed.")

    # -----------------------------------------------------------------
    # submit
    # -----------------------------------------------------------------

    def submit_bid(
        self,
        db: Session,
        rfp_id: uuid.UUID,
        actor: Principal,
        *,
        proposal_text: str,
        price,
        timeline: str,
        currency: str = "USD",
        solution_id: Optional[str] = None,
        technical_approach: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Bid:
        """
        Rules:
        - actor is a developer
        - RFP is published and now < deadline
        - at most one submitted bid per developer per RFP
        """
        now = as_utc(now) if now else utcnow()
        require_action(actor, ACTION_SUBMIT_BID)

        # serialize against an in-flight award on the same RFP
        rfp = self.rfps.get_for_update(db, rfp_id)
        try:
            _ensure_window_open(rfp, now)

            if self._live_bid(db, rfp_id, actor.participant_id):
                raise DuplicateBidError(
                    "A submitted bid already exists for this RFP; replace it explicitly."
                )

            row = Bid(
                rfp_id=rfp_id,
                developer_id=actor.participant_id,
                solution_id=solution_id,
                proposal_text=_require_text("proposal_text", proposal_text),
                technical_approach=technical_approach,
                price=_require_price(price),
                currency=currency,
                timeline=_require_text("timeline", timeline),
                status=BidStatus.submitted.value,
                submitted_at=now,
                updated_at=now,
            )
            db.add(row)
            try:
                db.flush()
            except IntegrityError:
                raise DuplicateBidError(
                    "A submitted bid already exists for this RFP; replace it explicitly."
                )

            self._recheck_still_published(db, rfp_id)
        except ProcurementError:
            db.rollback()
            raise

        db.commit()
        db.refresh(row)

        logger.info(
            "[bids] submitted bid=%s rfp=%s developer=%s", row.id, rfp_id, actor.participant_id
        )
        return row

    def replace_bid(
        self,
        db: Session,
        rfp_id: uuid.UUID,
        actor: Principal,
        *,
        proposal_text: str,
        price,
        timeline: str,
        currency: str = "USD",
        solution_id: Optional[str] = None,
        technical_approach: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Bid:
        """
        Explicit replacement of the developer's own submitted bid while the
        window is open. The bid keeps its id; terms and submitted_at change.
        """
        now = as_utc(now) if now else utcnow()
        require_action(actor, ACTION_SUBMIT_BID)

        rfp = self.rfps.get_for_update(db, rfp_id)
        try:
            _ensure_window_open(rfp, now)

            row = self._live_bid(db, rfp_id, actor.participant_id)
            if not row:
                raise NotFoundError("No submitted bid to replace for this RFP.")

            row.proposal_text = _require_text("proposal_text", proposal_text)
            row.price = _require_price(price)
            row.timeline = _require_text("timeline", timeline)
            row.currency = currency
            row.solution_id = solution_id
            row.technical_approach = technical_approach
            row.submitted_at = now
            row.updated_at = now
            db.flush()

            self._recheck_still_published(db, rfp_id)
        except ProcurementError:
            db.rollback()
            raise

        db.commit()
        db.refresh(row)

        logger.info("[bids] replaced bid=%s rfp=%s", row.id, rfp_id)
        return row

    # -----------------------------------------------------------------
    # reads
    # -----------------------------------------------------------------

    def list_bids(self, db: Session, rfp_id: uuid.UUID, actor: Principal) -> List[Bid]:
        """
        Owning municipality sees every bid; a developer sees only their own.
        """
        rfp = self.rfps.get_rfp(db, rfp_id, actor)

        stmt = select(Bid).where(Bid.rfp_id == rfp_id)
        if is_rfp_owner(actor, rfp):
            pass
        elif actor.role == ActorRole.DEVELOPER:
            stmt = stmt.where(Bid.developer_id == actor.participant_id)
        else:
            raise AuthorizationError("Not permitted to view bids for this RFP.")

        stmt = stmt.order_by(Bid.submitted_at.desc(), Bid.id).execution_options(populate_existing=True)
        return list(db.execute(stmt).scalars().all())
