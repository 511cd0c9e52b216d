# app/api/v1/common.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import HTTPException

from app.core.errors import OperationFailed, ProcurementError
from app.models.bid import Bid
from app.models.project import Project
from app.models.rfp import RFP


def _iso(dt):
    return dt.isoformat() if dt else None


def _str(value) -> Optional[str]:
    return str(value) if value is not None else None


def parse_uuid(raw: str, name: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{name} must be UUID.")


def http_error(exc: ProcurementError) -> HTTPException:
    """
    Domain error -> HTTPException. Retryable storage failures carry Retry-After.
    """
    headers = None
    if isinstance(exc, OperationFailed) and exc.retryable:
        headers = {"Retry-After": "1"}
    return HTTPException(status_code=exc.status_code, detail=exc.message, headers=headers)


def rfp_resp(r: RFP, bid_count: Optional[int] = None) -> dict:
    return {
        "rfpId": str(r.id),
        "municipalityId": r.municipality_id,
        "createdBy": r.created_by,
        "title": r.title,
        "description": r.description,
        "category": r.category,
        "budget_min": _str(r.budget_min),
        "budget_max": _str(r.budget_max),
        "currency": r.currency,
        "deadlineIso": _iso(r.deadline),
        "requirements": r.requirements_json or {},
        "evaluation_criteria": r.evaluation_criteria_json or {},
        "status": r.status,
        "publishedAtIso": _iso(r.published_at),
        "closedAtIso": _iso(r.closed_at),
        "selectedBidId": _str(r.selected_bid_id),
        "projectId": _str(r.project_id),
        "bidCount": bid_count,
        "createdAtIso": _iso(r.created_at),
        "updatedAtIso": _iso(r.updated_at),
    }


def bid_resp(b: Bid) -> dict:
    return {
        "bidId": str(b.id),
        "rfpId": str(b.rfp_id),
        "developerId": b.developer_id,
        "solutionId": b.solution_id,
        "proposal_text": b.proposal_text,
        "technical_approach": b.technical_approach,
        "price": str(b.price),
        "currency": b.currency,
        "timeline": b.timeline,
        "status": b.status,
        "projectId": _str(b.project_id),
        "submittedAtIso": _iso(b.submitted_at),
    }


def project_resp(p: Project) -> dict:
    return {
        "projectId": str(p.id),
        "rfpId": str(p.rfp_id),
        "winningBidId": str(p.winning_bid_id),
        "solutionId": p.solution_id,
        "municipalityId": p.municipality_id,
        "developerId": p.developer_id,
        "title": p.title,
        "budget": str(p.budget),
        "currency": p.currency,
        "status": p.status,
        "phase": p.phase,
        "startDateIso": _iso(p.start_date),
        "createdAtIso": _iso(p.created_at),
    }
