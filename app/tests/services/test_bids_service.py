from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.clock import utcnow
from app.core.errors import (
    AuthorizationError,
    DuplicateBidError,
    NotFoundError,
    ValidationError,
    WindowClosedError,
)
from app.models.bid import Bid
from app.models.enums import BidStatus
from app.services.bids_service import BidService
from app.tests.helpers import make_draft, make_published, place_bid


def test_submit_bid_on_published_rfp(db, municipality, dev_a):
    rfp = make_published(db, municipality)

    bid = place_bid(db, rfp.id, dev_a, 3000)

    assert bid.status == BidStatus.submitted.value
    assert bid.developer_id == "dev-a"
    assert bid.price == Decimal("3000")
    assert bid.project_id is None


def test_submit_bid_on_draft_rejected(db, municipality, dev_a):
    rfp = make_draft(db, municipality)

    with pytest.raises(WindowClosedError):
        place_bid(db, rfp.id, dev_a, 3000)


def test_submit_bid_at_deadline_rejected(db, municipality, dev_a):
    rfp = make_published(db, municipality)
    deadline = rfp.deadline

    with pytest.raises(WindowClosedError):
        place_bid(db, rfp.id, dev_a, 3000, now=deadline)

    assert db.query(Bid).count() == 0


def test_submit_bid_just_before_deadline_accepted(db, municipality, dev_a):
    rfp = make_published(db, municipality)
    just_before = rfp.deadline - timedelta(seconds=1)

    bid = place_bid(db, rfp.id, dev_a, 3000, now=just_before)

    assert bid.status == BidStatus.submitted.value


def test_second_submission_is_a_duplicate(db, municipality, dev_a):
    rfp = make_published(db, municipality)
    place_bid(db, rfp.id, dev_a, 3000)

    with pytest.raises(DuplicateBidError):
        place_bid(db, rfp.id, dev_a, 2500)

    assert db.query(Bid).filter(Bid.rfp_id == rfp.id).count() == 1


def test_integrator_cannot_bid(db, municipality, integrator):
    rfp = make_published(db, municipality)

    with pytest.raises(AuthorizationError):
        place_bid(db, rfp.id, integrator, 3000)


def test_non_positive_price_rejected(db, municipality, dev_a):
    rfp = make_published(db, municipality)

    with pytest.raises(ValidationError):
        place_bid(db, rfp.id, dev_a, 0)


def test_replace_bid_keeps_one_submitted_bid(db, municipality, dev_a):
    rfp = make_published(db, municipality)
    first = place_bid(db, rfp.id, dev_a, 3000)

    replaced = BidService().replace_bid(
        db,
        rfp.id,
        dev_a,
        proposal_text="Cheaper proposal",
        price=Decimal("2800"),
        timeline="5 months",
    )

    assert replaced.id == first.id
    assert replaced.price == Decimal("2800")
    live = (
        db.query(Bid)
        .filter(Bid.rfp_id == rfp.id, Bid.developer_id == "dev-a", Bid.status == BidStatus.submitted.value)
        .count()
    )
    assert live == 1


def test_replace_without_existing_bid(db, municipality, dev_a):
    rfp = make_published(db, municipality)

    with pytest.raises(NotFoundError):
        BidService().replace_bid(
            db, rfp.id, dev_a, proposal_text="x", price=Decimal("10"), timeline="1 month"
        )


def test_owner_sees_all_bids_developer_sees_own(db, municipality, dev_a, dev_b):
    rfp = make_published(db, municipality)
    place_bid(db, rfp.id, dev_a, 3000)
    place_bid(db, rfp.id, dev_b, 4500)

    all_bids = BidService().list_bids(db, rfp.id, municipality)
    own = BidService().list_bids(db, rfp.id, dev_a)

    assert {b.developer_id for b in all_bids} == {"dev-a", "dev-b"}
    assert [b.developer_id for b in own] == ["dev-a"]


def test_other_municipality_cannot_list_bids(db, municipality, other_municipality, dev_a):
    rfp = make_published(db, municipality)
    place_bid(db, rfp.id, dev_a, 3000)

    with pytest.raises(AuthorizationError):
        BidService().list_bids(db, rfp.id, other_municipality)


def test_expired_window_after_publish(db, municipality, dev_a):
    rfp = make_published(db, municipality, deadline=utcnow() + timedelta(days=1))

    with pytest.raises(WindowClosedError):
        place_bid(db, rfp.id, dev_a, 3000, now=utcnow() + timedelta(days=2))
