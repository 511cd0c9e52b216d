#app/models/enums.py
from __future__ import annotations
from enum import Enum


class ActorRole(str, Enum):
    MUNICIPALITY = "municipality"
    DEVELOPER = "developer"
    INTEGRATOR = "integrator"


class RFPStatus(str, Enum):
    # draft -> published -> closed, never backward
    draft = "draft"
    published = "published"
    closed = "closed"


class BidStatus(str, Enum):
    submitted = "submitted"
    accepted = "accepted"
    rejected = "rejected"


class ProjectStatus(str, Enum):
    planning = "planning"


class ProjectPhase(str, Enum):
    initiation = "initiation"
