# app/services/rfp_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.errors import (
    NotFoundError,
    ProcurementError,
    StateConflictError,
    ValidationError,
)
from app.models.bid import Bid
from app.models.enums import RFPStatus
from app.models.rfp import RFP
from app.policies.rbac import (
    ACTION_CREATE_RFP,
    ACTION_PUBLISH_RFP,
    Principal,
    require_action,
)
from app.policies.rfp_policies import can_view_rfp, enforce_rfp_owner, visible_rfps_clause
from app.schemas.rfps import EvaluationCriteria, Requirements

logger = logging.getLogger(__name__)

# terms a municipality may still edit while the RFP is a draft
EDITABLE_DRAFT_FIELDS = {
    "title",
    "description",
    "category",
    "budget_min",
    "budget_max",
    "currency",
    "deadline",
    "requirements",
    "evaluation_criteria",
}


def _require_text(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {name}")
    return str(value).strip()


def _parse_terms(model, name: str, value: Any) -> Dict[str, Any]:
    try:
        return model.model_validate(value).model_dump()
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {name}: {e.errors()[0]['msg']}")


def _validate_budget(budget_min: Optional[Decimal], budget_max: Optional[Decimal]) -> None:
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationError("budget_min must not exceed budget_max.")


class RFPService:
    """
    Owns RFP creation and the draft -> published transition.
    The published -> closed transition belongs to AwardService alone.
    """

    # ---------------------------
    # READS
    # ---------------------------

    def _get(self, db: Session, rfp_id: uuid.UUID) -> RFP:
        rfp = db.execute(
            select(RFP).where(RFP.id == rfp_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not rfp:
            raise NotFoundError("RFP not found.")
        return rfp

    def get_for_update(self, db: Session, rfp_id: uuid.UUID) -> RFP:
        """
        Lock the RFP row (FOR UPDATE) to serialize transitions on it.
        """
        rfp = (
            db.execute(
                select(RFP)
                .where(RFP.id == rfp_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )
        if not rfp:
            raise NotFoundError("RFP not found.")
        return rfp

    def get_rfp(self, db: Session, rfp_id: uuid.UUID, actor: Principal) -> RFP:
        rfp = self._get(db, rfp_id)
        # hidden drafts look exactly like missing ones
        if not can_view_rfp(actor, rfp):
            raise NotFoundError("RFP not found.")
        return rfp

    def list_rfps(
        self,
        db: Session,
        actor: Principal,
        *,
        status: Optional[RFPStatus] = None,
        category: Optional[str] = None,
        municipality_id: Optional[str] = None,
        limit: int = 200,
    ) -> List[Tuple[RFP, int]]:
        """
        Returns (rfp, bid_count) pairs, newest first.
        Drafts are only listed for their owning municipality.
        """
        bid_counts = (
            select(Bid.rfp_id, func.count(Bid.id).label("bid_count"))
            .group_by(Bid.rfp_id)
            .subquery()
        )
        stmt = (
            select(RFP, func.coalesce(bid_counts.c.bid_count, 0))
            .outerjoin(bid_counts, bid_counts.c.rfp_id == RFP.id)
            .where(visible_rfps_clause(actor))
            .order_by(RFP.created_at.desc(), RFP.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )

        if status is not None:
            stmt = stmt.where(RFP.status == RFPStatus(status).value)
        if category:
            stmt = stmt.where(RFP.category == category)
        if municipality_id:
            stmt = stmt.where(RFP.municipality_id == municipality_id)

        return [(rfp, int(n)) for rfp, n in db.execute(stmt).all()]

    def bid_count(self, db: Session, rfp_id: uuid.UUID) -> int:
        return int(
            db.execute(select(func.count(Bid.id)).where(Bid.rfp_id == rfp_id)).scalar_one()
        )

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create_draft(
        self,
        db: Session,
        actor: Principal,
        *,
        title: str,
        description: str,
        category: str,
        municipality_id: Optional[str] = None,
        budget_min: Optional[Decimal] = None,
        budget_max: Optional[Decimal] = None,
        currency: str = "USD",
        deadline: Optional[datetime] = None,
        requirements: Optional[Requirements] = None,
        evaluation_criteria: Optional[EvaluationCriteria] = None,
    ) -> RFP:
        require_action(actor, ACTION_CREATE_RFP)

        municipality_id = _require_text("municipality_id", municipality_id or actor.municipality_id)
        if actor.municipality_id and municipality_id != actor.municipality_id:
            raise ValidationError("municipality_id must match the acting municipality.")

        now = utcnow()
        rfp = RFP(
            municipality_id=municipality_id,
            created_by=actor.participant_id,
            title=_require_text("title", title),
            description=_require_text("description", description),
            category=_require_text("category", category),
            budget_min=budget_min,
            budget_max=budget_max,
            currency=currency,
            deadline=deadline,
            requirements_json=(requirements or Requirements()).model_dump(),
            evaluation_criteria_json=(evaluation_criteria or EvaluationCriteria()).model_dump(),
            status=RFPStatus.draft.value,
            created_at=now,
            updated_at=now,
        )
        db.add(rfp)
        db.commit()
        db.refresh(rfp)

        logger.info("[rfp] draft created rfp=%s municipality=%s", rfp.id, municipality_id)
        return rfp

    def update_draft(
        self,
        db: Session,
        rfp_id: uuid.UUID,
        actor: Principal,
        changes: Dict[str, Any],
    ) -> RFP:
        """
        Edit terms of a draft. Status and award references are never writable here.
        """
        unknown = set(changes) - EDITABLE_DRAFT_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {sorted(unknown)}")

        # structured terms are checked before the row lock is taken
        requirements = None
        if changes.get("requirements") is not None:
            requirements = _parse_terms(Requirements, "requirements", changes["requirements"])
        evaluation_criteria = None
        if changes.get("evaluation_criteria") is not None:
            evaluation_criteria = _parse_terms(
                EvaluationCriteria, "evaluation_criteria", changes["evaluation_criteria"]
            )

        rfp = self.get_for_update(db, rfp_id)
        try:
            enforce_rfp_owner(actor, rfp)
            if rfp.status != RFPStatus.draft.value:
                raise StateConflictError("Only draft RFPs can be edited.")
            for key in ("title", "description", "category"):
                if key in changes:
                    setattr(rfp, key, _require_text(key, changes[key]))
        except ProcurementError:
            db.rollback()
            raise

        # budget range is enforced at publish time
        if "budget_min" in changes:
            rfp.budget_min = changes["budget_min"]
        if "budget_max" in changes:
            rfp.budget_max = changes["budget_max"]

        if changes.get("currency") is not None:
            rfp.currency = changes["currency"]
        if "deadline" in changes:
            rfp.deadline = changes["deadline"]
        if requirements is not None:
            rfp.requirements_json = requirements
        if evaluation_criteria is not None:
            rfp.evaluation_criteria_json = evaluation_criteria

        rfp.updated_at = utcnow()
        db.commit()
        db.refresh(rfp)
        return rfp

    def delete_draft(self, db: Session, rfp_id: uuid.UUID, actor: Principal) -> None:
        rfp = self.get_for_update(db, rfp_id)
        try:
            enforce_rfp_owner(actor, rfp)
            if rfp.status != RFPStatus.draft.value:
                raise StateConflictError("Only draft RFPs can be deleted.")
        except ProcurementError:
            db.rollback()
            raise

        db.delete(rfp)
        db.commit()
        logger.info("[rfp] draft deleted rfp=%s", rfp_id)

    def publish(
        self,
        db: Session,
        rfp_id: uuid.UUID,
        actor: Principal,
        *,
        now: Optional[datetime] = None,
    ) -> RFP:
        """
        draft -> published.

        Rules:
        - actor is the owning municipality
        - status is draft
        - budget_min <= budget_max when both are set
        - deadline is set and strictly after now
        A failed publish leaves the RFP untouched.
        """
        now = as_utc(now) if now else utcnow()
        require_action(actor, ACTION_PUBLISH_RFP)

        rfp = self.get_for_update(db, rfp_id)
        try:
            enforce_rfp_owner(actor, rfp)
            if rfp.status != RFPStatus.draft.value:
                raise StateConflictError(f"Cannot publish an RFP in status {rfp.status}.")

            _validate_budget(rfp.budget_min, rfp.budget_max)
            deadline = as_utc(rfp.deadline)
            if deadline is None:
                raise ValidationError("deadline is required to publish.")
            if deadline <= now:
                raise ValidationError("deadline must be in the future.")
        except ProcurementError:
            db.rollback()
            raise

        # conditional write: a concurrent publish cannot both succeed
        res = db.execute(
            update(RFP)
            .where(RFP.id == rfp_id, RFP.status == RFPStatus.draft.value)
            .values(
                status=RFPStatus.published.value,
                published_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            db.rollback()
            raise StateConflictError("RFP is no longer a draft.")

        db.commit()
        db.refresh(rfp)

        logger.info("[rfp] published rfp=%s deadline=%s", rfp.id, deadline.isoformat())
        return rfp
