#app/schemas/projects.py
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.enums import ProjectPhase, ProjectStatus


class ProjectFields(BaseModel):
    """
    Initial content of a project spawned by an award. Produced by the
    materializer, persisted by the award coordinator.
    """
    model_config = ConfigDict(frozen=True)

    rfp_id: uuid.UUID
    winning_bid_id: uuid.UUID
    solution_id: Optional[str] = None
    municipality_id: str
    developer_id: str
    title: str
    budget: Decimal
    currency: str
    status: ProjectStatus = ProjectStatus.planning
    phase: ProjectPhase = ProjectPhase.initiation
    start_date: Optional[date] = None


class ProjectResponse(BaseModel):
    projectId: str
    rfpId: str
    winningBidId: str
    solutionId: Optional[str] = None
    municipalityId: str
    developerId: str

    title: str
    budget: str
    currency: str
    status: str
    phase: str
    startDateIso: Optional[str] = None
    createdAtIso: Optional[str] = None
