from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import BidStatus
from app.schemas.primitives import CurrencyCode, NonEmptyStr, PositiveMoney


class BidPayload(BaseModel):
    """
    Developer proposal against a published RFP.
    Used both for first submission and for explicit replacement.
    """

    solution_id: Optional[str] = Field(default=None, max_length=128)
    proposal_text: NonEmptyStr = Field(..., max_length=10000)
    technical_approach: Optional[str] = Field(default=None, max_length=10000)
    price: PositiveMoney
    currency: CurrencyCode = "USD"
    timeline: NonEmptyStr = Field(..., max_length=200)


class BidResponse(BaseModel):
    bidId: str
    rfpId: str
    developerId: str
    solutionId: Optional[str] = None

    proposal_text: str
    technical_approach: Optional[str] = None
    price: str
    currency: str
    timeline: str

    status: BidStatus
    projectId: Optional[str] = None
    submittedAtIso: Optional[str] = None


class BidListResponse(BaseModel):
    rfpId: str
    bids: List[BidResponse]
