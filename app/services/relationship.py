import enum
from typing import Dict, NamedTuple, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import (
    FollowRequestNotFoundError,
    RelationshipExistsError,
    RelationshipMissingError,
    SelfTargetError,
    UserNotFoundError,
)
from app.core.logging import get_logger
from app.models import Relationship, RelationshipType, User, Visibility
from app.services.relationship_store import RelationshipStore

logger = get_logger(__name__)


class RelationshipAction(str, enum.Enum):
    FOLLOW = "FOLLOW"
    UNFOLLOW = "UNFOLLOW"
    BLOCK = "BLOCK"
    UNBLOCK = "UNBLOCK"
    MUTE = "MUTE"
    UNMUTE = "UNMUTE"


class ActionRule(NamedTuple):
    edge_type: RelationshipType
    positive: bool
    message: str


ACTION_RULES: Dict[RelationshipAction, ActionRule] = {
    RelationshipAction.FOLLOW: ActionRule(
        RelationshipType.FOLLOW, True,
        "You have already followed this user or a request has already been sent.",
    ),
    RelationshipAction.UNFOLLOW: ActionRule(
        RelationshipType.FOLLOW, False,
        "You are not currently following this user or have not sent a follow request.",
    ),
    RelationshipAction.BLOCK: ActionRule(
        RelationshipType.BLOCK, True, "You have already blocked this user."
    ),
    RelationshipAction.UNBLOCK: ActionRule(
        RelationshipType.BLOCK, False, "You are not currently blocking this user."
    ),
    RelationshipAction.MUTE: ActionRule(
        RelationshipType.MUTE, True, "You have already muted this user."
    ),
    RelationshipAction.UNMUTE: ActionRule(
        RelationshipType.MUTE, False, "You are not currently muting this user."
    ),
}

_unmapped = set(RelationshipAction) - set(ACTION_RULES)
if _unmapped:
    raise RuntimeError(f"Relationship actions without a rule: {sorted(a.value for a in _unmapped)}")

ACCEPT_FOLLOW_REQUEST = "ACCEPT_FOLLOW_REQUEST"
DENY_FOLLOW_REQUEST = "DENY_FOLLOW_REQUEST"


def past_tense(action: RelationshipAction) -> str:
    return action.value + ("D" if action.value.endswith("E") else "ED")


def already_error(action: RelationshipAction) -> RelationshipExistsError:
    return RelationshipExistsError(ACTION_RULES[action].message, f"USER_ALREADY_{past_tense(action)}")


def missing_error(action: RelationshipAction) -> RelationshipMissingError:
    return RelationshipMissingError(ACTION_RULES[action].message, f"USER_NOT_{past_tense(action)}")


async def resolve_target(
    store: RelationshipStore,
    op_name: str,
    actor_id: str,
    target_id: str,
    verb: Optional[str] = None,
) -> User:
    """Shared preconditions: no self-targeting, and the target must exist.

    Both run before anything touches the relationship table.
    """
    if actor_id == target_id:
        logger.debug("Rejected %s: %s targeted themselves", op_name, actor_id)
        raise SelfTargetError(verb or op_name.lower(), f"CANNOT_{op_name}_SELF")

    target = await store.find_account(target_id)
    if target is None:
        logger.debug("Rejected %s by %s: account %s not found", op_name, actor_id, target_id)
        raise UserNotFoundError()
    return target


async def add_relationship(
    store: RelationshipStore,
    action: RelationshipAction,
    actor_id: str,
    target: User,
    reason: Optional[str] = None,
) -> Relationship:
    """Apply a positive transition (follow, block, mute)."""
    edge_type = ACTION_RULES[action].edge_type

    if await store.edge_exists(actor_id, target.id, edge_type):
        raise already_error(action)

    if action is RelationshipAction.FOLLOW:
        # A pending request counts as already following
        if await store.edge_exists(actor_id, target.id, RelationshipType.REQUEST):
            raise already_error(action)
        if target.visibility == Visibility.PRIVATE:
            edge_type = RelationshipType.REQUEST

    try:
        if action is RelationshipAction.BLOCK:
            await store.clear_follow_state(actor_id, target.id)
        edge = await store.add_edge(actor_id, target.id, edge_type, reason)
    except IntegrityError:
        await store.db.rollback()
        # Only a concurrent identical insert is a domain conflict
        if await store.edge_exists(actor_id, target.id, edge_type):
            raise already_error(action)
        raise

    logger.info("%s: %s -> %s (%s)", action.value, actor_id, target.id, edge.type.value)
    return edge


async def remove_relationship(
    store: RelationshipStore,
    action: RelationshipAction,
    actor_id: str,
    target_id: str,
) -> Relationship:
    """Apply a negative transition (unfollow, unblock, unmute)."""
    edge = await store.find_edge(actor_id, target_id, ACTION_RULES[action].edge_type)

    # Only follow has a pending intermediate state to cancel
    if edge is None and action is RelationshipAction.UNFOLLOW:
        edge = await store.find_edge(actor_id, target_id, RelationshipType.REQUEST)

    if edge is None:
        raise missing_error(action)

    await store.delete_edge(edge)
    logger.info("%s: %s -> %s (%s)", action.value, actor_id, target_id, edge.type.value)
    return edge


async def find_pending_request(
    store: RelationshipStore, op_name: str, actor_id: str, requester_id: str
) -> Relationship:
    verb = "accept a follow request from" if op_name == ACCEPT_FOLLOW_REQUEST else "deny a follow request from"
    await resolve_target(store, op_name, actor_id, requester_id, verb)
    request = await store.find_edge(requester_id, actor_id, RelationshipType.REQUEST)
    if request is None:
        raise FollowRequestNotFoundError()
    return request


class RelationshipMutator:
    """State transitions over the relationship graph.

    Every operation takes the acting account and the target account. Rule
    violations raise a RelationshipError subclass before any write happens;
    the writes of one operation share the session's transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = RelationshipStore(db)

    async def apply(
        self,
        action: RelationshipAction,
        actor_id: str,
        target_id: str,
        reason: Optional[str] = None,
    ) -> Relationship:
        target = await resolve_target(self.store, action.value, actor_id, target_id)
        if ACTION_RULES[action].positive:
            return await add_relationship(self.store, action, actor_id, target, reason)
        return await remove_relationship(self.store, action, actor_id, target_id)

    async def follow(self, actor_id: str, target_id: str, reason: Optional[str] = None) -> Relationship:
        """Follow the target, or send a follow request if the target is private."""
        return await self.apply(RelationshipAction.FOLLOW, actor_id, target_id, reason)

    async def unfollow(self, actor_id: str, target_id: str, reason: Optional[str] = None) -> Relationship:
        """Stop following the target, or cancel a pending follow request."""
        return await self.apply(RelationshipAction.UNFOLLOW, actor_id, target_id, reason)

    async def block(self, actor_id: str, target_id: str, reason: Optional[str] = None) -> Relationship:
        """Block the target, dropping follows and requests in both directions."""
        return await self.apply(RelationshipAction.BLOCK, actor_id, target_id, reason)

    async def unblock(self, actor_id: str, target_id: str, reason: Optional[str] = None) -> Relationship:
        return await self.apply(RelationshipAction.UNBLOCK, actor_id, target_id, reason)

    async def mute(self, actor_id: str, target_id: str, reason: Optional[str] = None) -> Relationship:
        return await self.apply(RelationshipAction.MUTE, actor_id, target_id, reason)

    async def unmute(self, actor_id: str, target_id: str, reason: Optional[str] = None) -> Relationship:
        return await self.apply(RelationshipAction.UNMUTE, actor_id, target_id, reason)

    async def accept_follow_request(
        self, actor_id: str, requester_id: str, reason: Optional[str] = None
    ) -> Relationship:
        """Promote the requester's pending REQUEST edge to a FOLLOW edge."""
        request = await find_pending_request(self.store, ACCEPT_FOLLOW_REQUEST, actor_id, requester_id)
        try:
            edge = await self.store.promote_request(request)
        except IntegrityError:
            await self.db.rollback()
            if await self.store.edge_exists(requester_id, actor_id, RelationshipType.FOLLOW):
                raise RelationshipExistsError("This user already follows you.", "USER_ALREADY_FOLLOWED")
            raise

        logger.info("%s: %s -> %s", ACCEPT_FOLLOW_REQUEST, requester_id, actor_id)
        return edge

    async def deny_follow_request(
        self, actor_id: str, requester_id: str, reason: Optional[str] = None
    ) -> bool:
        """Delete the requester's pending REQUEST edge."""
        request = await find_pending_request(self.store, DENY_FOLLOW_REQUEST, actor_id, requester_id)
        await self.store.delete_edge(request)
        logger.info("%s: %s -> %s", DENY_FOLLOW_REQUEST, requester_id, actor_id)
        return True
