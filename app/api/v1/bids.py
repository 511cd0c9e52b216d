# app/api/v1/bids.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.v1.common import bid_resp, http_error, parse_uuid
from app.core.auth_deps import get_current_principal
from app.core.errors import ProcurementError
from app.db.session import get_db
from app.policies.rbac import Principal
from app.schemas.bids import BidListResponse, BidPayload, BidResponse
from app.services.audit_service import AuditAction, audit_event
from app.services.bids_service import BidService

router = APIRouter(prefix="/rfps/{rfpId}/bids")


def _anti_leak_summary(payload: BidPayload) -> dict:
    # never put prices in the audit trail; the owning municipality reads them from bids
    return {"solutionId": payload.solution_id, "currency": payload.currency}


@router.post("", response_model=BidResponse)
def submit_bid(
    request: Request,
    rfpId: str,
    payload: BidPayload,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    try:
        row = BidService().submit_bid(db, rid, principal, **payload.model_dump())
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rid,
        action=AuditAction.BID_SUBMITTED,
        payload_summary={"event": "BID_SUBMITTED", "bidId": str(row.id), **_anti_leak_summary(payload)},
        ref_id=str(row.id),
    )
    return bid_resp(row)


@router.put("/mine", response_model=BidResponse)
def replace_my_bid(
    request: Request,
    rfpId: str,
    payload: BidPayload,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    try:
        row = BidService().replace_bid(db, rid, principal, **payload.model_dump())
    except ProcurementError as e:
        raise http_error(e)

    audit_event(
        db,
        request=request,
        actor=principal,
        rfp_id=rid,
        action=AuditAction.BID_REPLACED,
        payload_summary={"event": "BID_REPLACED", "bidId": str(row.id), **_anti_leak_summary(payload)},
        ref_id=str(row.id),
    )
    return bid_resp(row)


@router.get("", response_model=BidListResponse)
def list_bids(
    rfpId: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rid = parse_uuid(rfpId, "rfpId")
    try:
        rows = BidService().list_bids(db, rid, principal)
    except ProcurementError as e:
        raise http_error(e)
    return {"rfpId": str(rid), "bids": [bid_resp(b) for b in rows]}
