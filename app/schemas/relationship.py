from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional
from app.models import RelationshipType


class RelationshipDirection(str, Enum):
    INCOMING = "INCOMING"
    OUTGOING = "OUTGOING"


class RelationshipCreate(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RelationshipResponse(BaseModel):
    from_id: str
    to_id: str
    type: RelationshipType
    reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RelationshipCounts(BaseModel):
    followers: int = 0
    following: int = 0
    blocked: int = 0    # Accounts this user blocks
    blockers: int = 0   # Accounts blocking this user
    muting: int = 0
    muters: int = 0
    requests: int = 0   # Pending follow requests received
    mutuals: int = 0


class RelationshipFlags(BaseModel):
    """Relationship state between the viewer and the subject.

    All flags are False for anonymous viewers.
    """

    is_following: bool = False
    is_follower: bool = False
    is_blocking: bool = False
    is_blocked: bool = False
    is_muting: bool = False
    is_requesting: bool = False
    is_requested: bool = False


class RelationshipStats(BaseModel):
    counts: RelationshipCounts
    flags: RelationshipFlags


class MutualsResponse(BaseModel):
    user_ids: List[str]
    count: int
