#app/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_token
from app.models.enums import ActorRole
from app.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid
    - role and participant_id are present
    - role is a valid ActorRole
    - municipality actors carry the municipality they act for
    """

    try:
        payload = decode_token(creds.credentials)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    role = payload.get("role")
    participant_id = payload.get("participant_id") or payload.get("sub")
    municipality_id = payload.get("municipality_id")
    display_name = payload.get("display_name") or "Unknown"

    if not role or not participant_id:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        role_enum = ActorRole(role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    if role_enum == ActorRole.MUNICIPALITY and not municipality_id:
        raise HTTPException(status_code=401, detail="Token missing municipality_id claim.")

    principal = Principal(
        participant_id=str(participant_id),
        role=role_enum,
        municipality_id=str(municipality_id) if municipality_id else None,
        display_name=str(display_name),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal
