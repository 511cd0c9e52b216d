from app.schemas.rfps import (
    Requirements,
    EvaluationCriteria,
    RFPCreateRequest,
    RFPPatchRequest,
    RFPResponse,
    RFPListResponse,
    AwardRequest,
)
from app.schemas.bids import BidPayload, BidResponse, BidListResponse
from app.schemas.projects import ProjectFields, ProjectResponse
