from typing import List, Optional, Sequence, Set
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from app.models import Relationship, RelationshipType, User
from app.models.user import utcnow


class RelationshipStore:
    """Queries and writes over the user_relationships edge table.

    Writes only add to the session and flush; committing (or rolling back)
    is owned by whoever owns the session, so several writes issued for one
    logical operation land in the same transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # Accounts

    async def find_account(self, account_id: str) -> Optional[User]:
        """Resolve an active account by id. Deactivated accounts resolve to None."""
        result = await self.db.execute(
            select(User).where(User.id == account_id, User.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    # Point lookups

    async def find_edge(
        self, from_id: str, to_id: str, rel_type: RelationshipType
    ) -> Optional[Relationship]:
        result = await self.db.execute(
            select(Relationship).where(
                Relationship.from_id == from_id,
                Relationship.to_id == to_id,
                Relationship.type == rel_type,
            )
        )
        return result.scalar_one_or_none()

    async def edge_exists(self, from_id: str, to_id: str, rel_type: RelationshipType) -> bool:
        result = await self.db.execute(
            select(Relationship.from_id)
            .where(
                Relationship.from_id == from_id,
                Relationship.to_id == to_id,
                Relationship.type == rel_type,
            )
            .limit(1)
        )
        return result.first() is not None

    async def edge_types(self, from_id: str, to_id: str) -> Set[RelationshipType]:
        """All edge types pointing from one account to another."""
        result = await self.db.execute(
            select(Relationship.type).where(
                Relationship.from_id == from_id,
                Relationship.to_id == to_id,
            )
        )
        return {row[0] for row in result.fetchall()}

    # Aggregates

    async def count(self, account_id: str, rel_type: RelationshipType, incoming: bool) -> int:
        """Count edges of a type arriving at (incoming) or leaving the account."""
        column = Relationship.to_id if incoming else Relationship.from_id
        result = await self.db.execute(
            select(func.count())
            .select_from(Relationship)
            .where(column == account_id, Relationship.type == rel_type)
        )
        return result.scalar_one()

    def _mutuals_query(self, account_id: str):
        # outgoing: account -> X, incoming: X -> account
        outgoing = aliased(Relationship, name="following")
        incoming = aliased(Relationship, name="follower")
        return (
            select(outgoing.to_id)
            .select_from(outgoing)
            .join(
                incoming,
                and_(
                    incoming.from_id == outgoing.to_id,
                    incoming.to_id == account_id,
                    incoming.type == RelationshipType.FOLLOW,
                ),
            )
            .where(
                outgoing.from_id == account_id,
                outgoing.type == RelationshipType.FOLLOW,
            )
        )

    async def count_mutuals(self, account_id: str) -> int:
        """Number of accounts that both follow and are followed by the account."""
        subquery = self._mutuals_query(account_id).subquery()
        result = await self.db.execute(select(func.count()).select_from(subquery))
        return result.scalar_one()

    async def list_mutuals(self, account_id: str, limit: int = 20, offset: int = 0) -> List[str]:
        query = self._mutuals_query(account_id)
        result = await self.db.execute(
            query.order_by(query.selected_columns[0]).limit(limit).offset(offset)
        )
        return [row[0] for row in result.fetchall()]

    async def list_edges(
        self,
        account_id: str,
        rel_types: Optional[Sequence[RelationshipType]] = None,
        incoming: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> List[Relationship]:
        """Edges touching the account in one direction, newest first."""
        column = Relationship.to_id if incoming else Relationship.from_id
        query = select(Relationship).where(column == account_id)
        if rel_types is not None:
            query = query.where(Relationship.type.in_(list(rel_types)))
        result = await self.db.execute(
            query.order_by(Relationship.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    # Writes

    async def add_edge(
        self,
        from_id: str,
        to_id: str,
        rel_type: RelationshipType,
        reason: Optional[str] = None,
    ) -> Relationship:
        """Insert an edge. Raises IntegrityError if the triple already exists."""
        edge = Relationship(from_id=from_id, to_id=to_id, type=rel_type, reason=reason)
        self.db.add(edge)
        await self.db.flush()
        await self.db.refresh(edge)
        return edge

    async def delete_edge(self, edge: Relationship) -> Relationship:
        await self.db.delete(edge)
        await self.db.flush()
        return edge

    async def clear_follow_state(self, first_id: str, second_id: str) -> None:
        """Remove FOLLOW and REQUEST edges between two accounts in both directions."""
        await self.db.execute(
            delete(Relationship)
            .where(
                or_(
                    and_(Relationship.from_id == first_id, Relationship.to_id == second_id),
                    and_(Relationship.from_id == second_id, Relationship.to_id == first_id),
                ),
                Relationship.type.in_([RelationshipType.FOLLOW, RelationshipType.REQUEST]),
            )
            .execution_options(synchronize_session="fetch")
        )

    async def promote_request(self, edge: Relationship) -> Relationship:
        """Turn a pending REQUEST edge into a FOLLOW edge in place."""
        edge.type = RelationshipType.FOLLOW
        edge.updated_at = utcnow()
        await self.db.flush()
        await self.db.refresh(edge)
        return edge
