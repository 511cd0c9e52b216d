# app/api/v1/rfps.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.common import http_error, parse_uuid, project_resp, rfp_resp
from app.core.auth_deps import get_current_principal
from app.core.errors import ProcurementError
from app.db.session import get_db
from app.models.enums import RFPStatus
from app.policies.rbac import Principal
from app.schemas.projects import ProjectResponse
from app.schemas.rfps import (
    AwardRequest,
    RFPCreateRequest,
    RFPListResponse,
    RFPPatchRequest,
    RFPResponse,
)
from app.services.audit_service import AuditAction, audit_event
from app.services.award_service import AwardService
from app.services.rfp_service import RFPService

router = APIRouter(prefix="/rfps")


# ─────────────────────────────────────────────────────────────
# READS
# ─────────────────────────────────────────────────────────────


@router.get("", response_model=RFPListResponse)
def list_rfps(
    status: Optional[RFPStatus] = Query(default=None),
    category: Optional[str] = Query(default=None),
    municipalityId: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = RFPService().list_rfps(
        db,
        principal,
        status=status,
        category=category,
        municipality_id=municipalityId,
        limit=limit,
    )
    return {"rfps": [rfp_resp(r, bid_count=n) for r, n in rows]}


@router.get("/{rfpId}", response_model=RFPResponse)
def get_rfp(
    rfpId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    svc = RFPService()
    try:
        rfp = svc.get_rfp(db, rid, principal)
    except ProcurementError as e:
        raise http_error(e)
    return rfp_resp(rfp, bid_count=svc.bid_count(db, rid))


# ─────────────────────────────────────────────────────────────
# LIFECYCLE
# ─────────────────────────────────────────────────────────────


@router.post("", response_model=RFPResponse)
def create_rfp(
    request: Request,
    body: RFPCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        rfp = RFPService().create_draft(
            db,
            principal,
            title=body.title,
            description=body.description,
            category=body.category,
            municipality_id=body.municipalityId,
            budget_min=body.budget_min,
            budget_max=body.budget_max,
            currency=body.currency,
            deadline=body.deadline,
            requirements=body.requirements,
            evaluation_criteria=body.evaluation_criteria,
        )
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rfp.id,
        action=AuditAction.RFP_CREATED,
        payload_summary={"event": "RFP_CREATED", "rfpId": str(rfp.id), "category": rfp.category},
        ref_id=str(rfp.id),
    )
    return rfp_resp(rfp, bid_count=0)


@router.patch("/{rfpId}", response_model=RFPResponse)
def patch_rfp(
    request: Request,
    rfpId: str,
    body: RFPPatchRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied.")

    try:
        rfp = RFPService().update_draft(db, rid, principal, changes)
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rid,
        action=AuditAction.RFP_UPDATED,
        payload_summary={"event": "RFP_UPDATED", "rfpId": str(rid), "fields": sorted(changes)},
        ref_id=str(rid),
    )
    return rfp_resp(rfp, bid_count=0)


@router.delete("/{rfpId}", status_code=204)
def delete_rfp(
    request: Request,
    rfpId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    try:
        RFPService().delete_draft(db, rid, principal)
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rid,
        action=AuditAction.RFP_DELETED,
        payload_summary={"event": "RFP_DELETED", "rfpId": str(rid)},
        ref_id=str(rid),
    )


@router.post("/{rfpId}/publish", response_model=RFPResponse)
def publish_rfp(
    request: Request,
    rfpId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    try:
        rfp = RFPService().publish(db, rid, principal)
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rid,
        action=AuditAction.RFP_PUBLISHED,
        payload_summary={
            "event": "RFP_PUBLISHED",
            "rfpId": str(rid),
            "deadlineIso": rfp.deadline.isoformat() if rfp.deadline else None,
        },
        ref_id=str(rid),
    )
    return rfp_resp(rfp, bid_count=0)


# ─────────────────────────────────────────────────────────────
# AWARD
# ─────────────────────────────────────────────────────────────


@router.post("/{rfpId}/award", response_model=ProjectResponse)
def select_winning_bid(
    request: Request,
    rfpId: str,
    body: AwardRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Close the RFP on the chosen bid and return the spawned project.
    Safe to retry: the same bid returns the same project.
    """
    rid = parse_uuid(rfpId, "rfpId")
    bid_id = parse_uuid(body.bidId, "bidId")
    if idempotency_key is not None and len(idempotency_key) > 128:
        raise HTTPException(status_code=400, detail="Idempotency-Key too long.")

    try:
        project = AwardService().select_winner(
            db, rid, bid_id, principal, idempotency_token=idempotency_key
        )
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rid,
        action=AuditAction.RFP_AWARDED,
        payload_summary={
            "event": "RFP_AWARDED",
            "rfpId": str(rid),
            "bidId": str(bid_id),
            "projectId": str(project.id),
        },
        ref_id=str(project.id),
    )
    return project_resp(project)
