# app/services/project_materializer.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

from app.models.bid import Bid
from app.models.enums import ProjectPhase, ProjectStatus
from app.models.rfp import RFP
from app.schemas.projects import ProjectFields


def materialize(rfp: RFP, winning_bid: Bid, today: date) -> ProjectFields:
    """
    Derive the initial project from an RFP and its winning bid.

    Pure: no I/O, no session access. The award coordinator persists the result.
    """
    if winning_bid.rfp_id != rfp.id:
        raise ValueError("Winning bid does not belong to this RFP.")

    return ProjectFields(
        rfp_id=rfp.id,
        winning_bid_id=winning_bid.id,
        solution_id=winning_bid.solution_id,
        municipality_id=rfp.municipality_id,
        developer_id=winning_bid.developer_id,
        title=rfp.title,
        budget=Decimal(winning_bid.price),
        currency=winning_bid.currency,
        status=ProjectStatus.planning,
        phase=ProjectPhase.initiation,
        start_date=today,
    )
