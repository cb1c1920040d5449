from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.config import settings
from app.database import get_db, get_session_factory
from app.core.redis import get_redis, RedisClient
from app.core.dependencies import get_principal, get_viewer
from app.core.principal import Principal, Viewer
from app.models import RelationshipType
from app.schemas.relationship import (
    MutualsResponse, RelationshipDirection, RelationshipResponse, RelationshipStats
)
from app.schemas.user import UserProfile, UserResponse, UserUpdate
from app.services.user import UserService

router = APIRouter()


def get_user_service(
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> UserService:
    return UserService(db, redis, session_factory)


@router.put("/me", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    service: UserService = Depends(get_user_service),
    principal: Principal = Depends(get_principal),
):
    """Update current user's profile, including visibility."""
    return await service.update_profile(principal.id, data)


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_profile(
    user_id: str,
    service: UserService = Depends(get_user_service),
    viewer: Viewer = Depends(get_viewer),
):
    """Get a user's profile.

    Profile content is null when the viewer is not allowed to see it.
    """
    return await service.get_profile(user_id, viewer)


@router.get("/{user_id}/stats", response_model=RelationshipStats)
async def get_relationship_stats(
    user_id: str,
    service: UserService = Depends(get_user_service),
    viewer: Viewer = Depends(get_viewer),
):
    """Relationship counts, plus flags relative to the caller."""
    return await service.get_stats(user_id, viewer)


@router.get("/{user_id}/relationships", response_model=List[RelationshipResponse])
async def get_relationships(
    user_id: str,
    type: Optional[RelationshipType] = Query(None),
    direction: RelationshipDirection = Query(RelationshipDirection.OUTGOING),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    service: UserService = Depends(get_user_service),
    viewer: Viewer = Depends(get_viewer),
):
    """List a user's relationships visible to the caller."""
    return await service.list_relationships(user_id, viewer, type, direction, limit, offset)


@router.get("/{user_id}/mutuals", response_model=MutualsResponse)
async def get_mutuals(
    user_id: str,
    limit: int = Query(20, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    service: UserService = Depends(get_user_service),
    viewer: Viewer = Depends(get_viewer),
):
    """Accounts that follow the user and are followed back."""
    user_ids = await service.get_mutuals(user_id, viewer, limit, offset)
    return MutualsResponse(user_ids=user_ids, count=len(user_ids))
