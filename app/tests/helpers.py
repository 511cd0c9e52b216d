from datetime import timedelta
from decimal import Decimal

from app.core.clock import utcnow
from app.core.security import issue_access_token
from app.policies.rbac import Principal
from app.services.bids_service import BidService
from app.services.rfp_service import RFPService


def make_draft(db, actor, **overrides):
    fields = dict(
        title="Smart streetlights",
        description="Adaptive LED lighting for the old town.",
        category="lighting",
        budget_min=Decimal("1000"),
        budget_max=Decimal("5000"),
        currency="USD",
        deadline=utcnow() + timedelta(days=7),
    )
    fields.update(overrides)
    return RFPService().create_draft(db, actor, **fields)


def make_published(db, actor, **overrides):
    rfp = make_draft(db, actor, **overrides)
    return RFPService().publish(db, rfp.id, actor)


def place_bid(db, rfp_id, actor, price, **overrides):
    fields = dict(
        proposal_text=f"Proposal from {actor.participant_id}",
        price=Decimal(str(price)),
        timeline="6 months",
        currency="USD",
        solution_id=f"SOL-{actor.participant_id}",
    )
    fields.update(overrides)
    return BidService().submit_bid(db, rfp_id, actor, **fields)


def bearer_for(principal: Principal) -> dict:
    token = issue_access_token(
        principal.participant_id,
        principal.role.value,
        municipality_id=principal.municipality_id,
    )
    return {"Authorization": f"Bearer {token}"}
