from app.schemas.user import (
    UserUpdate, UserResponse, UserProfile, UserProfileDetails
)
from app.schemas.relationship import (
    RelationshipCreate, RelationshipResponse, RelationshipDirection,
    RelationshipCounts, RelationshipFlags, RelationshipStats, MutualsResponse,
)

__all__ = [
    "UserUpdate", "UserResponse", "UserProfile", "UserProfileDetails",
    "RelationshipCreate", "RelationshipResponse", "RelationshipDirection",
    "RelationshipCounts", "RelationshipFlags", "RelationshipStats", "MutualsResponse",
]
