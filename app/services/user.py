from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import update
from app.core.cache import AccessCache
from app.core.exceptions import UserNotFoundError
from app.core.principal import Viewer, viewer_id
from app.models import Relationship, RelationshipType, User
from app.schemas.relationship import RelationshipDirection, RelationshipStats
from app.schemas.user import UserUpdate, UserProfile, UserProfileDetails
from app.services.guardian import PrivacyGuardian, Subject
from app.services.relationship_store import RelationshipStore
from app.services.stats import RelationshipStatsAggregator

# Only the account itself may list these, and only its own outgoing edges
OWNER_ONLY_OUTGOING = {RelationshipType.BLOCK, RelationshipType.MUTE}


def listable_types(
    rel_type: Optional[RelationshipType], incoming: bool, is_self: bool
) -> List[RelationshipType]:
    """Relationship types a viewer may list for an account in one direction."""
    candidates = [rel_type] if rel_type is not None else list(RelationshipType)
    visible = []
    for candidate in candidates:
        if candidate in OWNER_ONLY_OUTGOING and (incoming or not is_self):
            continue
        if candidate == RelationshipType.REQUEST and not is_self:
            continue
        visible.append(candidate)
    return visible


class UserService:
    """User profile reads and relationship listings, filtered by the privacy guardian."""

    def __init__(
        self,
        db: AsyncSession,
        cache: AccessCache,
        session_factory: async_sessionmaker,
    ):
        self.db = db
        self.store = RelationshipStore(db)
        self.guardian = PrivacyGuardian(db, cache)
        self.stats = RelationshipStatsAggregator(session_factory)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return await self.store.find_account(user_id)

    async def _require_user(self, user_id: str) -> User:
        user = await self.get_by_id(user_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def get_profile(self, user_id: str, viewer: Viewer) -> UserProfile:
        """Get user profile; profile content is withheld when the guardian denies."""
        user = await self._require_user(user_id)

        details = None
        if await self.guardian.can_access(Subject.of(user), viewer):
            details = UserProfileDetails.model_validate(user)

        return UserProfile(
            id=user.id,
            username=user.username,
            display_name=user.display_name,
            visibility=user.visibility,
            is_verified=user.is_verified,
            created_at=user.created_at,
            profile=details,
            relationship_stats=await self.stats.get_stats(user.id, viewer),
        )

    async def get_stats(self, user_id: str, viewer: Viewer) -> RelationshipStats:
        """Relationship counts and viewer flags for an existing account."""
        user = await self._require_user(user_id)
        return await self.stats.get_stats(user.id, viewer)

    async def update_profile(self, user_id: str, data: UserUpdate) -> User:
        """Update user profile."""
        user = await self._require_user(user_id)

        update_data = data.model_dump(exclude_unset=True)
        if update_data:
            await self.db.execute(
                update(User).where(User.id == user_id).values(**update_data)
            )
            await self.db.flush()
            await self.db.refresh(user)

        return user

    async def list_relationships(
        self,
        user_id: str,
        viewer: Viewer,
        rel_type: Optional[RelationshipType] = None,
        direction: RelationshipDirection = RelationshipDirection.OUTGOING,
        limit: int = 10,
        offset: int = 0,
    ) -> List[Relationship]:
        """List a user's relationships.

        Returns an empty list when the viewer may not see the user. Block and
        mute lists are private to their owner and never exposed as incoming;
        pending requests are visible to their owner only.
        """
        user = await self._require_user(user_id)
        if not await self.guardian.can_access(Subject.of(user), viewer):
            return []

        incoming = direction == RelationshipDirection.INCOMING
        types = listable_types(rel_type, incoming, viewer_id(viewer) == user.id)
        if not types:
            return []

        return await self.store.list_edges(
            user.id, rel_types=types, incoming=incoming, limit=limit, offset=offset
        )

    async def get_mutuals(self, user_id: str, viewer: Viewer, limit: int = 20, offset: int = 0) -> List[str]:
        user = await self._require_user(user_id)
        if not await self.guardian.can_access(Subject.of(user), viewer):
            return []
        return await self.stats.get_mutuals(user.id, limit, offset)
