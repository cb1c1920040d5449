from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.core.dependencies import get_principal
from app.core.principal import Principal
from app.schemas.relationship import RelationshipCreate, RelationshipResponse
from app.services.relationship import RelationshipAction, RelationshipMutator

router = APIRouter()


def _reason(data: Optional[RelationshipCreate]) -> Optional[str]:
    return data.reason if data else None


async def _apply(
    action: RelationshipAction,
    user_id: str,
    db: AsyncSession,
    principal: Principal,
    data: Optional[RelationshipCreate] = None,
):
    return await RelationshipMutator(db).apply(action, principal.id, user_id, _reason(data))


@router.post("/{user_id}/follow", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED)
async def follow_user(
    user_id: str,
    data: Optional[RelationshipCreate] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Follow a user.

    Following a private account creates a pending REQUEST instead.
    """
    return await _apply(RelationshipAction.FOLLOW, user_id, db, principal, data)


@router.delete("/{user_id}/follow", response_model=RelationshipResponse)
async def unfollow_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Unfollow a user, or cancel a pending follow request."""
    return await _apply(RelationshipAction.UNFOLLOW, user_id, db, principal)


@router.post("/{user_id}/block", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED)
async def block_user(
    user_id: str,
    data: Optional[RelationshipCreate] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Block a user."""
    return await _apply(RelationshipAction.BLOCK, user_id, db, principal, data)


@router.delete("/{user_id}/block", response_model=RelationshipResponse)
async def unblock_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Unblock a user."""
    return await _apply(RelationshipAction.UNBLOCK, user_id, db, principal)


@router.post("/{user_id}/mute", response_model=RelationshipResponse, status_code=status.HTTP_201_CREATED)
async def mute_user(
    user_id: str,
    data: Optional[RelationshipCreate] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Mute a user."""
    return await _apply(RelationshipAction.MUTE, user_id, db, principal, data)


@router.delete("/{user_id}/mute", response_model=RelationshipResponse)
async def unmute_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Unmute a user."""
    return await _apply(RelationshipAction.UNMUTE, user_id, db, principal)


@router.post("/{user_id}/follow-request/accept", response_model=RelationshipResponse)
async def accept_follow_request(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Accept a pending follow request sent by the user."""
    return await RelationshipMutator(db).accept_follow_request(principal.id, user_id)


@router.post("/{user_id}/follow-request/deny")
async def deny_follow_request(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Deny a pending follow request sent by the user."""
    denied = await RelationshipMutator(db).deny_follow_request(principal.id, user_id)
    return {"success": denied}
