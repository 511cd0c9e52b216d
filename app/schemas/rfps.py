#app/schemas/rfps.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import RFPStatus
from app.schemas.primitives import CurrencyCode, NonEmptyStr, NonNegMoney, Weight


# -----------------------
# Structured RFP terms
# -----------------------


class Requirements(BaseModel):
    """
    What the municipality asks for, grouped by kind.
    """
    model_config = ConfigDict(extra="forbid")

    technical: List[NonEmptyStr] = Field(default_factory=list)
    functional: List[NonEmptyStr] = Field(default_factory=list)
    compliance: List[NonEmptyStr] = Field(default_factory=list)
    timeline: Optional[str] = None
    budget: Optional[str] = None


class EvaluationCriteria(BaseModel):
    """
    Weighted criteria (percent). The four weights may not exceed 100 in total.
    """
    model_config = ConfigDict(extra="forbid")

    technical_score: Weight = 0
    price_score: Weight = 0
    experience_score: Weight = 0
    timeline_score: Weight = 0

    @property
    def total_weight(self) -> float:
        return self.technical_score + self.price_score + self.experience_score + self.timeline_score

    @model_validator(mode="after")
    def _total_within_100(self):
        if self.total_weight > 100:
            raise ValueError("Total evaluation criteria weights must not exceed 100.")
        return self


# -----------------------
# Request/Response models
# -----------------------


class RFPCreateRequest(BaseModel):
    title: NonEmptyStr = Field(..., max_length=256)
    description: NonEmptyStr = Field(..., max_length=10000)
    category: NonEmptyStr = Field(..., max_length=128)
    municipalityId: Optional[str] = Field(default=None, max_length=128)

    budget_min: Optional[NonNegMoney] = None
    budget_max: Optional[NonNegMoney] = None
    currency: CurrencyCode = "USD"
    deadline: Optional[datetime] = None

    requirements: Requirements = Field(default_factory=Requirements)
    evaluation_criteria: EvaluationCriteria = Field(default_factory=EvaluationCriteria)


class RFPPatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[NonEmptyStr] = Field(default=None, max_length=256)
    description: Optional[NonEmptyStr] = Field(default=None, max_length=10000)
    category: Optional[NonEmptyStr] = Field(default=None, max_length=128)

    budget_min: Optional[NonNegMoney] = None
    budget_max: Optional[NonNegMoney] = None
    currency: Optional[CurrencyCode] = None
    deadline: Optional[datetime] = None

    requirements: Optional[Requirements] = None
    evaluation_criteria: Optional[EvaluationCriteria] = None


class RFPResponse(BaseModel):
    rfpId: str
    municipalityId: str
    createdBy: str

    title: str
    description: str
    category: str
    budget_min: Optional[str] = None
    budget_max: Optional[str] = None
    currency: str
    deadlineIso: Optional[str] = None

    requirements: Requirements
    evaluation_criteria: EvaluationCriteria

    status: RFPStatus
    publishedAtIso: Optional[str] = None
    closedAtIso: Optional[str] = None
    selectedBidId: Optional[str] = None
    projectId: Optional[str] = None
    bidCount: Optional[int] = None

    createdAtIso: Optional[str] = None
    updatedAtIso: Optional[str] = None


class RFPListResponse(BaseModel):
    rfps: List[RFPResponse]


class AwardRequest(BaseModel):
    bidId: str = Field(..., min_length=1)
