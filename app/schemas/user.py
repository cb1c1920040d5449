from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional
from app.models import Visibility
from app.schemas.relationship import RelationshipStats


class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None
    visibility: Optional[Visibility] = None


class UserResponse(BaseModel):
    id: str
    username: str
    display_name: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    is_verified: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class UserProfileDetails(BaseModel):
    """Owner-controlled profile content, subject to the privacy guardian."""

    bio: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfile(UserResponse):
    profile: Optional[UserProfileDetails] = None  # None when the viewer may not see it
    relationship_stats: RelationshipStats
