#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Set

from app.core.errors import AuthorizationError
from app.models.enums import ActorRole


@dataclass(frozen=True)
class Principal:
    participant_id: str
    role: ActorRole
    municipality_id: Optional[str] = None
    display_name: str = "Unknown"


# --- Core action constants ---
ACTION_CREATE_RFP = "CREATE_RFP"
ACTION_PUBLISH_RFP = "PUBLISH_RFP"
ACTION_AWARD_RFP = "AWARD_RFP"
ACTION_SUBMIT_BID = "SUBMIT_BID"


def allowed_actions(role: ActorRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    Ownership of the specific RFP is checked separately.
    """

    if role == ActorRole.MUNICIPALITY:
        return {ACTION_CREATE_RFP, ACTION_PUBLISH_RFP, ACTION_AWARD_RFP}

    if role == ActorRole.DEVELOPER:
        return {ACTION_SUBMIT_BID}

    if role == ActorRole.INTEGRATOR:
        return set()

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise AuthorizationError(
            f"Role {principal.role.value} not permitted for action {action}."
        )
