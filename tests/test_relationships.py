import pytest

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    FollowRequestNotFoundError,
    RelationshipExistsError,
    RelationshipMissingError,
    SelfTargetError,
    UserNotFoundError,
)
from app.core.principal import Principal
from app.models import RelationshipType, Visibility
from app.services.guardian import PrivacyGuardian, Subject
from app.services.relationship import ACTION_RULES, RelationshipAction, RelationshipMutator
from app.services.relationship_store import RelationshipStore


async def edge_types_between(store: RelationshipStore, first, second):
    return await store.edge_types(first.id, second.id), await store.edge_types(second.id, first.id)


class TestRelationshipMutator:
    """Relationship state transition tests."""

    def test_every_action_has_a_rule(self):
        assert set(ACTION_RULES) == set(RelationshipAction)
        assert {rule.positive for rule in ACTION_RULES.values()} == {True, False}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation, code", [
        ("follow", "CANNOT_FOLLOW_SELF"),
        ("unfollow", "CANNOT_UNFOLLOW_SELF"),
        ("block", "CANNOT_BLOCK_SELF"),
        ("unblock", "CANNOT_UNBLOCK_SELF"),
        ("mute", "CANNOT_MUTE_SELF"),
        ("unmute", "CANNOT_UNMUTE_SELF"),
        ("accept_follow_request", "CANNOT_ACCEPT_FOLLOW_REQUEST_SELF"),
        ("deny_follow_request", "CANNOT_DENY_FOLLOW_REQUEST_SELF"),
    ])
    async def test_self_target_rejected(self, db_session, make_user, operation, code):
        alice = await make_user("alice")
        mutator = RelationshipMutator(db_session)

        with pytest.raises(SelfTargetError) as exc_info:
            await getattr(mutator, operation)(alice.id, alice.id)

        assert exc_info.value.code == code
        assert "yourself" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["follow", "unblock", "mute", "accept_follow_request"])
    async def test_unknown_target_rejected(self, db_session, make_user, operation):
        alice = await make_user("alice")
        mutator = RelationshipMutator(db_session)

        with pytest.raises(UserNotFoundError) as exc_info:
            await getattr(mutator, operation)(alice.id, "no-such-user")

        assert exc_info.value.code == "USER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_follow_public_creates_follow(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")

        edge = await RelationshipMutator(db_session).follow(bob.id, alice.id, reason="hello")

        assert edge.type == RelationshipType.FOLLOW
        assert (edge.from_id, edge.to_id, edge.reason) == (bob.id, alice.id, "hello")

    @pytest.mark.asyncio
    async def test_follow_private_creates_request(self, db_session, make_user):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")

        edge = await RelationshipMutator(db_session).follow(bob.id, alice.id)

        assert edge.type == RelationshipType.REQUEST
        store = RelationshipStore(db_session)
        assert not await store.edge_exists(bob.id, alice.id, RelationshipType.FOLLOW)

    @pytest.mark.asyncio
    async def test_follow_twice_rejected(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        await mutator.follow(bob.id, alice.id)
        with pytest.raises(RelationshipExistsError) as exc_info:
            await mutator.follow(bob.id, alice.id)

        assert exc_info.value.code == "USER_ALREADY_FOLLOWED"

    @pytest.mark.asyncio
    async def test_follow_with_pending_request_rejected(self, db_session, make_user):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        await mutator.follow(bob.id, alice.id)
        with pytest.raises(RelationshipExistsError) as exc_info:
            await mutator.follow(bob.id, alice.id)

        assert exc_info.value.code == "USER_ALREADY_FOLLOWED"

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_insert_translated(self, db_session, make_user, add_edge, monkeypatch):
        alice = await make_user("alice")
        bob = await make_user("bob")
        # A competing writer inserted the same edge after our existence check
        await add_edge(bob, alice, RelationshipType.FOLLOW)
        mutator = RelationshipMutator(db_session)
        real_edge_exists = mutator.store.edge_exists
        checks = []

        # The FOLLOW and REQUEST pre-checks miss the edge; later lookups see it
        async def stale_edge_exists(*args, **kwargs):
            checks.append(args)
            if len(checks) <= 2:
                return False
            return await real_edge_exists(*args, **kwargs)

        monkeypatch.setattr(mutator.store, "edge_exists", stale_edge_exists)

        with pytest.raises(RelationshipExistsError) as exc_info:
            await mutator.follow(bob.id, alice.id)

        assert exc_info.value.code == "USER_ALREADY_FOLLOWED"

    @pytest.mark.asyncio
    async def test_foreign_key_violation_propagates(self, db_session, make_user):
        alice = await make_user("alice")
        await db_session.execute(text("PRAGMA foreign_keys=ON"))

        # The actor has no account row, so the insert breaks the foreign key
        with pytest.raises(IntegrityError):
            await RelationshipMutator(db_session).follow("ghost-account", alice.id)

        assert await RelationshipStore(db_session).edge_types("ghost-account", alice.id) == set()

    @pytest.mark.asyncio
    async def test_deactivated_target_not_found(self, db_session, make_user):
        alice = await make_user("alice", is_active=False)
        bob = await make_user("bob")

        with pytest.raises(UserNotFoundError):
            await RelationshipMutator(db_session).follow(bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_follow_then_unfollow_leaves_no_edges(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        await mutator.follow(bob.id, alice.id)
        removed = await mutator.unfollow(bob.id, alice.id)

        assert removed.type == RelationshipType.FOLLOW
        assert await RelationshipStore(db_session).edge_types(bob.id, alice.id) == set()

    @pytest.mark.asyncio
    async def test_unfollow_cancels_pending_request(self, db_session, make_user):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        await mutator.follow(bob.id, alice.id)
        removed = await mutator.unfollow(bob.id, alice.id)

        assert removed.type == RelationshipType.REQUEST
        assert await RelationshipStore(db_session).edge_types(bob.id, alice.id) == set()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation, code", [
        ("unfollow", "USER_NOT_UNFOLLOWED"),
        ("unblock", "USER_NOT_UNBLOCKED"),
        ("unmute", "USER_NOT_UNMUTED"),
    ])
    async def test_negative_transition_without_edge(self, db_session, make_user, operation, code):
        alice = await make_user("alice")
        bob = await make_user("bob")

        with pytest.raises(RelationshipMissingError) as exc_info:
            await getattr(RelationshipMutator(db_session), operation)(bob.id, alice.id)

        assert exc_info.value.code == code

    @pytest.mark.asyncio
    async def test_unblock_does_not_cancel_requests(self, db_session, make_user, add_edge):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")
        await add_edge(bob, alice, RelationshipType.REQUEST)

        with pytest.raises(RelationshipMissingError):
            await RelationshipMutator(db_session).unblock(bob.id, alice.id)

        assert await RelationshipStore(db_session).edge_exists(bob.id, alice.id, RelationshipType.REQUEST)

    @pytest.mark.asyncio
    async def test_unmute_removes_only_mute(self, db_session, make_user, add_edge):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await add_edge(bob, alice, RelationshipType.FOLLOW)
        await add_edge(bob, alice, RelationshipType.MUTE)

        removed = await RelationshipMutator(db_session).unmute(bob.id, alice.id)

        assert removed.type == RelationshipType.MUTE
        assert await RelationshipStore(db_session).edge_types(bob.id, alice.id) == {RelationshipType.FOLLOW}

    @pytest.mark.asyncio
    async def test_block_clears_follow_state_both_ways(self, db_session, make_user, add_edge):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await add_edge(alice, bob, RelationshipType.FOLLOW)
        await add_edge(bob, alice, RelationshipType.REQUEST)
        await add_edge(bob, alice, RelationshipType.MUTE)

        edge = await RelationshipMutator(db_session).block(alice.id, bob.id, reason="spam")

        assert edge.type == RelationshipType.BLOCK
        outgoing, incoming = await edge_types_between(RelationshipStore(db_session), alice, bob)
        assert outgoing == {RelationshipType.BLOCK}
        # Mutes are not follow state
        assert incoming == {RelationshipType.MUTE}

    @pytest.mark.asyncio
    async def test_block_twice_rejected(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        await mutator.block(alice.id, bob.id)
        with pytest.raises(RelationshipExistsError) as exc_info:
            await mutator.block(alice.id, bob.id)

        assert exc_info.value.code == "USER_ALREADY_BLOCKED"

    @pytest.mark.asyncio
    async def test_mute_has_no_side_effects(self, db_session, make_user, add_edge):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await add_edge(alice, bob, RelationshipType.FOLLOW)
        mutator = RelationshipMutator(db_session)

        await mutator.mute(alice.id, bob.id)
        with pytest.raises(RelationshipExistsError) as exc_info:
            await mutator.mute(alice.id, bob.id)

        assert exc_info.value.code == "USER_ALREADY_MUTED"
        assert await RelationshipStore(db_session).edge_types(alice.id, bob.id) == {
            RelationshipType.FOLLOW, RelationshipType.MUTE
        }

    @pytest.mark.asyncio
    async def test_accept_without_request_rejected(self, db_session, make_user):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")

        with pytest.raises(FollowRequestNotFoundError) as exc_info:
            await RelationshipMutator(db_session).accept_follow_request(alice.id, bob.id)

        assert exc_info.value.code == "FOLLOW_REQUEST_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_accept_when_already_following_rejected(self, db_session, make_user, add_edge):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")
        await add_edge(bob, alice, RelationshipType.REQUEST)
        await add_edge(bob, alice, RelationshipType.FOLLOW)

        with pytest.raises(RelationshipExistsError) as exc_info:
            await RelationshipMutator(db_session).accept_follow_request(alice.id, bob.id)

        assert exc_info.value.code == "USER_ALREADY_FOLLOWED"
        # The rollback keeps the pending request in place
        assert await RelationshipStore(db_session).edge_types(bob.id, alice.id) == {
            RelationshipType.FOLLOW, RelationshipType.REQUEST
        }

    @pytest.mark.asyncio
    async def test_deny_without_request_rejected(self, db_session, make_user):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")

        with pytest.raises(FollowRequestNotFoundError):
            await RelationshipMutator(db_session).deny_follow_request(alice.id, bob.id)

    @pytest.mark.asyncio
    async def test_request_accept_grants_access(self, db_session, mock_redis, make_user):
        """A private account accepts a request and the follower can then see it."""
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        request = await mutator.follow(bob.id, alice.id, reason="let me in")
        assert request.type == RelationshipType.REQUEST

        accepted = await mutator.accept_follow_request(alice.id, bob.id)

        assert accepted.type == RelationshipType.FOLLOW
        assert (accepted.from_id, accepted.to_id) == (bob.id, alice.id)
        assert accepted.reason == "let me in"
        store = RelationshipStore(db_session)
        assert await store.edge_types(bob.id, alice.id) == {RelationshipType.FOLLOW}

        guardian = PrivacyGuardian(db_session, mock_redis)
        assert await guardian.can_access(
            Subject(id=alice.id, visibility=Visibility.PRIVATE), Principal(bob.id)
        ) is True

    @pytest.mark.asyncio
    async def test_deny_removes_request(self, db_session, make_user):
        alice = await make_user("alice", Visibility.PRIVATE)
        bob = await make_user("bob")
        mutator = RelationshipMutator(db_session)

        await mutator.follow(bob.id, alice.id)
        assert await mutator.deny_follow_request(alice.id, bob.id) is True

        assert await RelationshipStore(db_session).edge_types(bob.id, alice.id) == set()
        with pytest.raises(FollowRequestNotFoundError):
            await mutator.accept_follow_request(alice.id, bob.id)

    @pytest.mark.asyncio
    async def test_block_flips_public_access(self, db_session, mock_redis, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        guardian = PrivacyGuardian(db_session, mock_redis)

        assert await guardian.can_access(Subject.of(alice), Principal(bob.id)) is True

        await RelationshipMutator(db_session).block(alice.id, bob.id)
        mock_redis.expire_all()

        assert await guardian.can_access(Subject.of(alice), Principal(bob.id)) is False
