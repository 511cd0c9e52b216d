# app/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from app.core.config import get_settings


def issue_access_token(
    participant_id: str,
    role: str,
    *,
    municipality_id: Optional[str] = None,
    display_name: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Sign a bearer token carrying the claims get_current_principal expects.
    Login lives with the identity provider; this is used by tooling and tests.
    """
    settings = get_settings()
    exp_minutes = expires_minutes or settings.jwt_access_token_minutes
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": participant_id,
        "participant_id": participant_id,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    if municipality_id:
        payload["municipality_id"] = municipality_id
    if display_name:
        payload["display_name"] = display_name
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
