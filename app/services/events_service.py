# app/services/events_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, List

from sqlalchemy.orm import Session

from app.models.event_log import EventLog

logger = logging.getLogger(__name__)


EVENT_AWARD_COMPLETED = "AWARD_COMPLETED"


@dataclass(frozen=True)
class AwardCompleted:
    rfp_id: uuid.UUID
    project_id: uuid.UUID
    winning_bid_id: uuid.UUID

    def payload(self) -> dict:
        return {
            "rfpId": str(self.rfp_id),
            "projectId": str(self.project_id),
            "winningBidId": str(self.winning_bid_id),
        }


Subscriber = Callable[[AwardCompleted], None]


class EventService:
    """
    Award events go two ways:
    - an EventLog row staged inside the award transaction (durable)
    - in-process subscribers notified after commit (fire-and-forget)
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> None:
        self._subscribers.append(handler)

    def unsubscribe(self, handler: Subscriber) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def stage(self, db: Session, *, event: AwardCompleted, actor_participant_id: str) -> EventLog:
        row = EventLog(
            rfp_id=event.rfp_id,
            event_type=EVENT_AWARD_COMPLETED,
            actor_participant_id=actor_participant_id,
            payload_json=event.payload(),
        )
        db.add(row)
        return row

    def dispatch(self, event: AwardCompleted) -> None:
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception:
                # delivery is the notification layer's concern; never fail the award
                logger.exception("[events] subscriber failed for rfp=%s", event.rfp_id)


event_bus = EventService()
