# app/services/award_service.py
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.clock import utcnow
from app.core.config import Settings, get_settings
from app.core.errors import (
    AlreadyAwardedError,
    OperationFailed,
    ProcurementError,
    StateConflictError,
    ValidationError,
)
from app.models.bid import Bid
from app.models.enums import BidStatus, RFPStatus
from app.models.project import Project
from app.models.rfp import RFP
from app.policies.rbac import ACTION_AWARD_RFP, Principal, require_action
from app.policies.rfp_policies import enforce_rfp_owner
from app.services.events_service import AwardCompleted, EventService, event_bus
from app.services.idempotency_service import IdempotencyService
from app.services.project_materializer import materialize
from app.services.rfp_service import RFPService

logger = logging.getLogger(__name__)

ENDPOINT_AWARD = "AWARD"


class StorageError(Exception):
    """
    Transient store failure inside one award attempt; the attempt was rolled back.
    """


class _LostRace(Exception):
    pass


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning("[award] attempt %s failed, retrying: %s", state.attempt_number, exc)


class AwardService:
    """
    Closes a published RFP on one winning bid.

    One transaction, serialized on the RFP row:
      1. conditional update RFP published -> closed (the serialization point)
      2. insert the project produced by the materializer
      3. winning bid -> accepted
      4. every other submitted bid -> rejected
    plus the idempotency record and the AWARD_COMPLETED event row.

    The RFP itself is the dedup key: once closed, a call for the same bid
    replays the existing project and a call for any other bid fails.
    """

    def __init__(
        self,
        rfps: Optional[RFPService] = None,
        events: Optional[EventService] = None,
        settings: Optional[Settings] = None,
    ):
        self.rfps = rfps or RFPService()
        self.events = events or event_bus
        self.idempotency = IdempotencyService()
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # ---------------------------
    # ENTRY POINT
    # ---------------------------

    def select_winner(
        self,
        db: Session,
        rfp_id: uuid.UUID,
        bid_id: uuid.UUID,
        actor: Principal,
        idempotency_token: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> Project:
        require_action(actor, ACTION_AWARD_RFP)

        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.settings.award_max_attempts)),
            wait=wait_exponential(multiplier=self.settings.award_retry_backoff_seconds, max=2),
            retry=retry_if_exception_type(StorageError),
            before_sleep=_log_retry,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    project, event = self._attempt(
                        db,
                        rfp_id=rfp_id,
                        bid_id=bid_id,
                        actor=actor,
                        token=idempotency_token,
                        today=today,
                    )
        except StorageError as exc:
            logger.error("[award] giving up rfp=%s bid=%s: %s", rfp_id, bid_id, exc)
            raise OperationFailed(
                "Award could not be committed; it is safe to retry.", retryable=True
            ) from exc

        if event is not None:
            logger.info(
                "[award] completed rfp=%s bid=%s project=%s", rfp_id, bid_id, project.id
            )
            self.events.dispatch(event)
        return project

    def _attempt(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        bid_id: uuid.UUID,
        actor: Principal,
        token: Optional[str],
        today: Optional[date],
    ) -> Tuple[Project, Optional[AwardCompleted]]:
        try:
            try:
                return self._award_once(
                    db, rfp_id=rfp_id, bid_id=bid_id, actor=actor, token=token, today=today
                )
            except _LostRace:
                db.rollback()
                db.expire_all()
                return self._after_lost_race(
                    db, rfp_id=rfp_id, bid_id=bid_id, actor=actor, token=token, today=today
                )
        except ProcurementError:
            db.rollback()
            raise
        except (OperationalError, IntegrityError) as exc:
            # IntegrityError here means a concurrent writer beat us to a unique row;
            # the next attempt re-reads and replays or reports the lost race.
            db.rollback()
            raise StorageError(str(exc)) from exc

    # ---------------------------
    # ONE ATTEMPT
    # ---------------------------

    def _award_once(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        bid_id: uuid.UUID,
        actor: Principal,
        token: Optional[str],
        today: Optional[date],
    ) -> Tuple[Project, Optional[AwardCompleted]]:
        if token:
            # same token, same bid: replay. A different bid falls through to the RFP checks.
            stored = self.idempotency.replay(
                db,
                rfp_id=rfp_id,
                participant_id=actor.participant_id,
                endpoint_key=ENDPOINT_AWARD,
                idem_key=token,
                request_payload={"bidId": str(bid_id)},
            )
            if stored:
                project = db.get(Project, uuid.UUID(stored["projectId"]))
                if project is not None:
                    return project, None

        rfp = self.rfps.get_for_update(db, rfp_id)
        enforce_rfp_owner(actor, rfp)

        if rfp.status == RFPStatus.closed.value:
            if rfp.selected_bid_id == bid_id:
                return self._resume(db, rfp, actor=actor, token=token, today=today), None
            raise AlreadyAwardedError("RFP has already been awarded to another bid.")
        if rfp.status != RFPStatus.published.value:
            raise StateConflictError(f"Cannot award an RFP in status {rfp.status}.")

        # a project left behind by an interrupted award is adopted, never duplicated
        orphan = db.execute(select(Project).where(Project.rfp_id == rfp_id)).scalar_one_or_none()
        if orphan is not None and orphan.winning_bid_id != bid_id:
            raise AlreadyAwardedError("Another bid is already being awarded for this RFP.")
        project_id = orphan.id if orphan is not None else uuid.uuid4()

        bid = self._get_candidate_bid(db, rfp_id=rfp_id, bid_id=bid_id, resuming=orphan is not None)

        now = utcnow()

        # 1. serialization point
        res = db.execute(
            update(RFP)
            .where(RFP.id == rfp_id, RFP.status == RFPStatus.published.value)
            .values(
                status=RFPStatus.closed.value,
                selected_bid_id=bid_id,
                project_id=project_id,
                closed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise _LostRace()

        # 2. project
        if orphan is None:
            db.add(self._new_project(project_id, rfp, bid, today=today, now=now))

        # 3. winner
        res = db.execute(
            update(Bid)
            .where(Bid.id == bid_id, Bid.status == BidStatus.submitted.value)
            .values(status=BidStatus.accepted.value, project_id=project_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1 and bid.status != BidStatus.accepted.value:
            raise StateConflictError("Winning bid is no longer in submitted state.")

        # 4. losers
        rejected = self._reject_losers(db, rfp_id=rfp_id, winner_id=bid_id, now=now)

        event = AwardCompleted(rfp_id=rfp_id, project_id=project_id, winning_bid_id=bid_id)
        self.events.stage(db, event=event, actor_participant_id=actor.participant_id)
        if token:
            self._record_token(db, rfp_id=rfp_id, bid_id=bid_id, actor=actor, token=token, project_id=project_id)

        db.commit()

        logger.info("[award] committed rfp=%s rejected=%d", rfp_id, rejected)
        db.expire_all()
        return db.get(Project, project_id), event

    def _after_lost_race(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        bid_id: uuid.UUID,
        actor: Principal,
        token: Optional[str],
        today: Optional[date],
    ) -> Tuple[Project, Optional[AwardCompleted]]:
        rfp = self.rfps.get_for_update(db, rfp_id)
        if rfp.status == RFPStatus.closed.value and rfp.selected_bid_id == bid_id:
            return self._resume(db, rfp, actor=actor, token=token, today=today), None
        if rfp.status == RFPStatus.closed.value:
            logger.info("[award] lost race rfp=%s bid=%s winner=%s", rfp_id, bid_id, rfp.selected_bid_id)
            raise AlreadyAwardedError("RFP has already been awarded to another bid.")
        raise StateConflictError(f"Cannot award an RFP in status {rfp.status}.")

    # ---------------------------
    # REPLAY / RESUME
    # ---------------------------

    def _resume(
        self,
        db: Session,
        rfp: RFP,
        *,
        actor: Principal,
        token: Optional[str],
        today: Optional[date],
    ) -> Project:
        """
        The RFP is closed on this bid. Complete any sub-effect that is missing
        and return the existing project; nothing already applied is redone.
        """
        now = utcnow()
        repaired = []

        project = db.get(Project, rfp.project_id)
        if project is None:
            bid = db.get(Bid, rfp.selected_bid_id)
            if bid is None:
                raise StateConflictError("Awarded bid no longer exists.")
            db.add(self._new_project(rfp.project_id, rfp, bid, today=today, now=now))
            repaired.append("project")

        res = db.execute(
            update(Bid)
            .where(Bid.id == rfp.selected_bid_id, Bid.status == BidStatus.submitted.value)
            .values(status=BidStatus.accepted.value, project_id=rfp.project_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount:
            repaired.append("winner")

        if self._reject_losers(db, rfp_id=rfp.id, winner_id=rfp.selected_bid_id, now=now):
            repaired.append("losers")

        if token:
            self._record_token(
                db,
                rfp_id=rfp.id,
                bid_id=rfp.selected_bid_id,
                actor=actor,
                token=token,
                project_id=rfp.project_id,
            )

        db.commit()

        if repaired:
            logger.warning("[award] repaired partial award rfp=%s steps=%s", rfp.id, ",".join(repaired))
        else:
            logger.info("[award] replay rfp=%s project=%s", rfp.id, rfp.project_id)

        db.expire_all()
        return db.get(Project, rfp.project_id)

    # ---------------------------
    # HELPERS
    # ---------------------------

    def _get_candidate_bid(
        self, db: Session, *, rfp_id: uuid.UUID, bid_id: uuid.UUID, resuming: bool = False
    ) -> Bid:
        bid = db.get(Bid, bid_id, populate_existing=True)
        if bid is None or bid.rfp_id != rfp_id:
            raise ValidationError("Bid does not belong to this RFP.")
        if resuming and bid.status == BidStatus.accepted.value:
            return bid
        if bid.status != BidStatus.submitted.value:
            # a concurrent award may have settled the bids after our RFP read
            current = db.execute(select(RFP.status).where(RFP.id == rfp_id)).scalar_one()
            if current == RFPStatus.closed.value:
                raise _LostRace()
            raise ValidationError(f"Bid is {bid.status}; only submitted bids can win.")
        return bid

    def _new_project(
        self, project_id: uuid.UUID, rfp: RFP, bid: Bid, *, today: Optional[date], now
    ) -> Project:
        fields = materialize(rfp, bid, today=today or now.date())
        return Project(
            id=project_id,
            rfp_id=fields.rfp_id,
            winning_bid_id=fields.winning_bid_id,
            solution_id=fields.solution_id,
            municipality_id=fields.municipality_id,
            developer_id=fields.developer_id,
            title=fields.title,
            budget=fields.budget,
            currency=fields.currency,
            status=fields.status.value,
            phase=fields.phase.value,
            start_date=fields.start_date,
            created_at=now,
        )

    def _reject_losers(self, db: Session, *, rfp_id: uuid.UUID, winner_id: uuid.UUID, now) -> int:
        res = db.execute(
            update(Bid)
            .where(
                Bid.rfp_id == rfp_id,
                Bid.id != winner_id,
                Bid.status == BidStatus.submitted.value,
            )
            .values(status=BidStatus.rejected.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount or 0

    def _record_token(
        self,
        db: Session,
        *,
        rfp_id: uuid.UUID,
        bid_id: uuid.UUID,
        actor: Principal,
        token: str,
        project_id: uuid.UUID,
    ) -> None:
        self.idempotency.record(
            db,
            rfp_id=rfp_id,
            participant_id=actor.participant_id,
            endpoint_key=ENDPOINT_AWARD,
            idem_key=token,
            request_payload={"bidId": str(bid_id)},
            response_json={"projectId": str(project_id), "rfpId": str(rfp_id), "bidId": str(bid_id)},
        )
