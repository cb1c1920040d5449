import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional, Set
from sqlalchemy.ext.asyncio import async_sessionmaker
from app.config import settings
from app.core.principal import Viewer, viewer_id
from app.models import RelationshipType
from app.schemas.relationship import RelationshipCounts, RelationshipFlags, RelationshipStats
from app.services.relationship_store import RelationshipStore


class RelationshipStatsAggregator:
    """Read-only relationship counts and viewer flags for an account.

    An AsyncSession cannot run two statements at once, so each independent
    query gets its own short-lived session and they are gathered together.
    A semaphore caps how many of those sessions one aggregator holds open.
    """

    def __init__(self, session_factory: async_sessionmaker, max_concurrency: Optional[int] = None):
        self.session_factory = session_factory
        self._slots = asyncio.Semaphore(max_concurrency or settings.stats_max_concurrency)

    @asynccontextmanager
    async def _session(self):
        async with self._slots:
            async with self.session_factory() as session:
                yield session

    async def _count(self, account_id: str, rel_type: RelationshipType, incoming: bool) -> int:
        async with self._session() as session:
            return await RelationshipStore(session).count(account_id, rel_type, incoming)

    async def _count_mutuals(self, account_id: str) -> int:
        async with self._session() as session:
            return await RelationshipStore(session).count_mutuals(account_id)

    async def get_counts(self, subject_id: str) -> RelationshipCounts:
        (
            followers,
            following,
            blocked,
            blockers,
            muting,
            muters,
            requests,
            mutuals,
        ) = await asyncio.gather(
            self._count(subject_id, RelationshipType.FOLLOW, incoming=True),
            self._count(subject_id, RelationshipType.FOLLOW, incoming=False),
            self._count(subject_id, RelationshipType.BLOCK, incoming=False),
            self._count(subject_id, RelationshipType.BLOCK, incoming=True),
            self._count(subject_id, RelationshipType.MUTE, incoming=False),
            self._count(subject_id, RelationshipType.MUTE, incoming=True),
            self._count(subject_id, RelationshipType.REQUEST, incoming=True),
            self._count_mutuals(subject_id),
        )
        return RelationshipCounts(
            followers=followers,
            following=following,
            blocked=blocked,
            blockers=blockers,
            muting=muting,
            muters=muters,
            requests=requests,
            mutuals=mutuals,
        )

    async def get_flags(self, subject_id: str, viewer: Viewer) -> RelationshipFlags:
        current_id = viewer_id(viewer)
        if current_id is None:
            return RelationshipFlags()

        # Two small lookups; one session run sequentially
        async with self._session() as session:
            store = RelationshipStore(session)
            outgoing: Set[RelationshipType] = await store.edge_types(current_id, subject_id)
            incoming: Set[RelationshipType] = await store.edge_types(subject_id, current_id)

        return RelationshipFlags(
            is_following=RelationshipType.FOLLOW in outgoing,
            is_follower=RelationshipType.FOLLOW in incoming,
            is_blocking=RelationshipType.BLOCK in outgoing,
            is_blocked=RelationshipType.BLOCK in incoming,
            is_muting=RelationshipType.MUTE in outgoing,
            is_requesting=RelationshipType.REQUEST in outgoing,
            is_requested=RelationshipType.REQUEST in incoming,
        )

    async def get_stats(self, subject_id: str, viewer: Viewer) -> RelationshipStats:
        counts, flags = await asyncio.gather(
            self.get_counts(subject_id),
            self.get_flags(subject_id, viewer),
        )
        return RelationshipStats(counts=counts, flags=flags)

    async def get_mutuals(self, subject_id: str, limit: int = 20, offset: int = 0) -> List[str]:
        """Ids of accounts that follow the subject and are followed back."""
        async with self._session() as session:
            return await RelationshipStore(session).list_mutuals(subject_id, limit, offset)
