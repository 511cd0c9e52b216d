import uuid
from datetime import date
from decimal import Decimal

import pytest

from app.models.bid import Bid
from app.models.enums import ProjectPhase, ProjectStatus
from app.models.rfp import RFP
from app.services.project_materializer import materialize


def _rfp():
    return RFP(
        id=uuid.uuid4(),
        municipality_id="MUN-1",
        created_by="muni-user-1",
        title="Smart streetlights",
        description="LED retrofit",
        category="lighting",
        currency="USD",
    )


def _bid(rfp_id, price="3000"):
    return Bid(
        id=uuid.uuid4(),
        rfp_id=rfp_id,
        developer_id="dev-a",
        solution_id="SOL-7",
        proposal_text="Retrofit",
        price=Decimal(price),
        currency="EUR",
        timeline="6 months",
    )


def test_materialize_copies_terms():
    rfp = _rfp()
    bid = _bid(rfp.id)

    fields = materialize(rfp, bid, today=date(2026, 3, 1))

    assert fields.rfp_id == rfp.id
    assert fields.winning_bid_id == bid.id
    assert fields.solution_id == "SOL-7"
    assert fields.developer_id == "dev-a"
    assert fields.municipality_id == "MUN-1"
    assert fields.title == "Smart streetlights"
    assert fields.budget == Decimal("3000")
    assert fields.currency == "EUR"
    assert fields.status == ProjectStatus.planning
    assert fields.phase == ProjectPhase.initiation
    assert fields.start_date == date(2026, 3, 1)


def test_materialize_rejects_foreign_bid():
    with pytest.raises(ValueError):
        materialize(_rfp(), _bid(uuid.uuid4()), today=date(2026, 3, 1))


def test_materialize_is_deterministic():
    rfp = _rfp()
    bid = _bid(rfp.id, price="1250.50")

    first = materialize(rfp, bid, today=date(2026, 3, 1))
    second = materialize(rfp, bid, today=date(2026, 3, 1))

    assert first == second
    assert first.budget == Decimal("1250.50")
