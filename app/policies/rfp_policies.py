#/app/policies/rfp_policies.py
from __future__ import annotations

from sqlalchemy import or_

from app.core.errors import AuthorizationError
from app.models.enums import ActorRole, RFPStatus
from app.models.rfp import RFP
from app.policies.rbac import Principal


def is_rfp_owner(principal: Principal, rfp: RFP) -> bool:
    """
    The owning municipality: the actor that created the RFP, or any
    municipality actor acting for the RFP's municipality record.
    """
    if principal.role != ActorRole.MUNICIPALITY:
        return False
    if principal.participant_id == rfp.created_by:
        return True
    return principal.municipality_id is not None and principal.municipality_id == rfp.municipality_id


def enforce_rfp_owner(principal: Principal, rfp: RFP) -> None:
    if not is_rfp_owner(principal, rfp):
        raise AuthorizationError("Only the owning municipality may perform this action.")


def can_view_rfp(principal: Principal, rfp: RFP) -> bool:
    # drafts stay private to their municipality
    if rfp.status == RFPStatus.draft.value:
        return is_rfp_owner(principal, rfp)
    return True


def visible_rfps_clause(principal: Principal):
    """
    SQL form of can_view_rfp, for listing queries.
    """
    not_draft = RFP.status != RFPStatus.draft.value
    if principal.role != ActorRole.MUNICIPALITY:
        return not_draft
    owned = [RFP.created_by == principal.participant_id]
    if principal.municipality_id is not None:
        owned.append(RFP.municipality_id == principal.municipality_id)
    return or_(not_draft, *owned)
