from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.core.cache import AccessCache
from app.core.exceptions import AccessDeniedError
from app.core.logging import get_logger
from app.core.principal import Viewer, viewer_id
from app.models import RelationshipType, Visibility
from app.services.relationship_store import RelationshipStore

logger = get_logger(__name__)

ANONYMOUS_KEY = "anonymous"


@dataclass(frozen=True)
class Subject:
    """The account whose data is being read.

    ``visibility`` may be left out; the guardian then loads it.
    """

    id: Optional[str]
    visibility: Optional[Visibility] = None

    @classmethod
    def of(cls, user) -> "Subject":
        return cls(id=user.id, visibility=user.visibility)


def cache_key(subject_id: str, viewer: Optional[str]) -> str:
    return f"{settings.guardian_cache_prefix}:{subject_id}:{viewer or ANONYMOUS_KEY}"


class PrivacyGuardian:
    """Decides whether a viewer may see data owned by a subject account.

    Rules, in order:
      1. unknown subject -> deny
      2. viewer is the subject -> allow (never cached)
      3. cached decision -> returned as is
      4. PRIVATE -> allow only with a FOLLOW edge viewer -> subject
      5. PUBLIC -> allow unless a BLOCK edge subject -> viewer exists

    Decisions are cached for ``settings.guardian_cache_ttl`` seconds and are
    never invalidated explicitly. Storage or cache failures propagate; they
    are not turned into a decision.
    """

    def __init__(self, db: AsyncSession, cache: AccessCache, ttl: Optional[int] = None):
        self.store = RelationshipStore(db)
        self.cache = cache
        self.ttl = ttl if ttl is not None else settings.guardian_cache_ttl

    async def can_access(self, subject: Optional[Subject], viewer: Viewer) -> bool:
        subject_id = subject.id if subject else None
        if not subject_id:
            return False

        requester_id = viewer_id(viewer)
        if requester_id == subject_id:
            return True

        key = cache_key(subject_id, requester_id)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for subject %s and viewer %s", subject_id, requester_id)
            return cached == "true"

        visibility = subject.visibility
        if visibility is None:
            account = await self.store.find_account(subject_id)
            if account is None or account.visibility is None:
                return False
            visibility = account.visibility

        if visibility == Visibility.PRIVATE:
            allowed = await self._follows(requester_id, subject_id)
            if not allowed:
                logger.debug("Subject %s is PRIVATE and not followed by %s", subject_id, requester_id)
        else:
            allowed = not await self._blocks(subject_id, requester_id)
            if not allowed:
                logger.debug("Subject %s has blocked %s", subject_id, requester_id)

        logger.debug("Access for subject %s and viewer %s is %s", subject_id, requester_id, allowed)
        await self.cache.set(key, "true" if allowed else "false", self.ttl)
        return allowed

    async def require_access(self, subject: Optional[Subject], viewer: Viewer) -> None:
        """Raise AccessDeniedError unless the viewer may see the subject."""
        if not await self.can_access(subject, viewer):
            raise AccessDeniedError()

    async def _follows(self, follower_id: Optional[str], followed_id: str) -> bool:
        if follower_id is None:
            return False
        return await self.store.edge_exists(follower_id, followed_id, RelationshipType.FOLLOW)

    async def _blocks(self, blocker_id: str, blocked_id: Optional[str]) -> bool:
        if blocked_id is None:
            return False
        return await self.store.edge_exists(blocker_id, blocked_id, RelationshipType.BLOCK)
