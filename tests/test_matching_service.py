"""Unit tests for the match state machine."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import (
    AuthorizationError,
    InvalidAction,
    InvalidInput,
    NotFoundError,
    ServerError,
    ValidationError,
)
from app.models.match import Match, MatchStatus
from app.services.matching_service import (
    MatchingService,
    apply_status,
    coerce_action,
    derive_status,
)


class TestDeriveStatus:
    """All nine action combinations map onto the derivation table."""

    @pytest.mark.parametrize(
        "low, high, expected",
        [
            ("none", "none", MatchStatus.NONE),
            ("liked", "none", MatchStatus.PENDING),
            ("none", "liked", MatchStatus.PENDING),
            ("liked", "liked", MatchStatus.MATCHED),
            ("disliked", "none", MatchStatus.DECLINED_BY_ONE),
            ("none", "disliked", MatchStatus.DECLINED_BY_ONE),
            ("liked", "disliked", MatchStatus.DECLINED_BY_ONE),
            ("disliked", "liked", MatchStatus.DECLINED_BY_ONE),
            ("disliked", "disliked", MatchStatus.MUTUALLY_DECLINED),
        ],
    )
    def test_table(self, low, high, expected):
        assert derive_status(low, high) is expected

    def test_rejects_unknown_action(self):
        with pytest.raises(ValueError):
            derive_status("maybe", "liked")


class TestApplyStatus:

    def _record(self, low, high, status="none", matched_at=None):
        return Match(action_low=low, action_high=high, status=status, matched_at=matched_at)

    def test_stamps_on_transition_into_matched(self):
        now = datetime(2025, 3, 1, tzinfo=timezone.utc)
        record = self._record("liked", "liked", status="pending")
        assert apply_status(record, "pending", now) is MatchStatus.MATCHED
        assert record.status == "matched"
        assert record.matched_at == now

    def test_preserves_matched_at_while_matched(self):
        first = datetime(2025, 3, 1, tzinfo=timezone.utc)
        record = self._record("liked", "liked", status="matched", matched_at=first)
        apply_status(record, "matched", first + timedelta(days=2))
        assert record.matched_at == first

    def test_clears_matched_at_when_leaving_matched(self):
        first = datetime(2025, 3, 1, tzinfo=timezone.utc)
        record = self._record("liked", "disliked", status="matched", matched_at=first)
        assert apply_status(record, "matched", first) is MatchStatus.DECLINED_BY_ONE
        assert record.matched_at is None


class TestCoerceAction:

    def test_accepts_liked_and_disliked(self):
        assert coerce_action("liked").value == "liked"
        assert coerce_action("disliked").value == "disliked"

    @pytest.mark.parametrize("bad", ["none", "superlike", ""])
    def test_rejects_everything_else(self, bad):
        with pytest.raises(ValidationError):
            coerce_action(bad)


class TestRecordAction:

    @pytest.mark.asyncio
    async def test_first_like_creates_pending_record(self, repos, store, make_developer):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        outcome = await MatchingService(repos.matches).record_action(alice.id, bob.id, "liked")

        assert outcome.is_new_match is False
        assert outcome.record.status == "pending"
        assert outcome.record.matched_at is None
        assert outcome.record.action_of(alice.id) == "liked"
        assert outcome.record.action_of(bob.id) == "none"
        assert len(store.matches) == 1

    @pytest.mark.asyncio
    async def test_mutual_like_signals_new_match_once(self, repos, store, make_developer):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        service = MatchingService(repos.matches)

        first = await service.record_action(alice.id, bob.id, "liked")
        second = await service.record_action(bob.id, alice.id, "liked")
        third = await service.record_action(alice.id, bob.id, "liked")

        assert first.is_new_match is False
        assert second.is_new_match is True
        assert second.record.status == "matched"
        assert second.record.matched_at is not None
        assert third.is_new_match is False
        assert third.record.matched_at == second.record.matched_at
        assert second.record.id == first.record.id == third.record.id
        assert len(store.matches) == 1

    @pytest.mark.asyncio
    async def test_only_callers_slot_changes(self, repos, make_developer):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        service = MatchingService(repos.matches)

        await service.record_action(bob.id, alice.id, "disliked")
        outcome = await service.record_action(alice.id, bob.id, "liked")

        assert outcome.record.action_of(bob.id) == "disliked"
        assert outcome.record.action_of(alice.id) == "liked"
        assert outcome.record.status == "declined_by_one"

    @pytest.mark.asyncio
    async def test_dislike_after_match_unmatches(self, repos, make_developer):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        service = MatchingService(repos.matches)
        await service.record_action(alice.id, bob.id, "liked")
        await service.record_action(bob.id, alice.id, "liked")

        outcome = await service.record_action(bob.id, alice.id, "disliked")

        assert outcome.is_new_match is False
        assert outcome.record.status == "declined_by_one"
        assert outcome.record.matched_at is None

    @pytest.mark.asyncio
    async def test_self_action_rejected(self, repos, store, make_developer):
        alice = make_developer("Alice")
        with pytest.raises(InvalidAction):
            await MatchingService(repos.matches).record_action(alice.id, alice.id, "liked")
        assert store.save_calls == 0

    @pytest.mark.asyncio
    async def test_invalid_action_rejected_before_write(self, repos, store, make_developer):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        with pytest.raises(ValidationError):
            await MatchingService(repos.matches).record_action(alice.id, bob.id, "superlike")
        assert store.save_calls == 0

    @pytest.mark.asyncio
    async def test_malformed_target_rejected(self, repos, make_developer):
        alice = make_developer("Alice")
        with pytest.raises(InvalidInput):
            await MatchingService(repos.matches).record_action(alice.id, "not-a-uuid", "liked")


class TestRecordActionRaces:
    """A lost race is retried once; a second loss becomes ServerError."""

    @pytest.mark.asyncio
    async def test_concurrent_creation_retries_onto_existing_record(
        self, repos, store, make_developer
    ):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        service = MatchingService(repos.matches)

        async def bob_likes_first():
            await service.record_action(bob.id, alice.id, "liked")

        store.save_hooks.append(bob_likes_first)
        outcome = await service.record_action(alice.id, bob.id, "liked")

        assert len(store.matches) == 1
        assert outcome.is_new_match is True
        assert outcome.record.status == "matched"
        assert outcome.record.action_of(alice.id) == "liked"
        assert outcome.record.action_of(bob.id) == "liked"

    @pytest.mark.asyncio
    async def test_stale_update_retries_with_fresh_read(self, repos, store, make_developer, seed_match):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        seed_match(alice, bob, action_a="liked", action_b="none")
        service = MatchingService(repos.matches)

        async def bob_dislikes_meanwhile():
            await service.record_action(bob.id, alice.id, "disliked")

        store.save_hooks.append(bob_dislikes_meanwhile)
        outcome = await service.record_action(alice.id, bob.id, "liked")

        assert outcome.record.action_of(bob.id) == "disliked"
        assert outcome.record.status == "declined_by_one"
        assert store.match_for(alice.id, bob.id).version == 3

    @pytest.mark.asyncio
    async def test_second_conflict_surfaces_server_error(self, repos, store, make_developer):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        service = MatchingService(repos.matches)

        async def bob_likes():
            await service.record_action(bob.id, alice.id, "liked")

        async def bob_dislikes():
            await service.record_action(bob.id, alice.id, "disliked")

        store.save_hooks.extend([bob_likes, bob_dislikes])
        with pytest.raises(ServerError):
            await service.record_action(alice.id, bob.id, "liked")

        record = store.match_for(alice.id, bob.id)
        assert len(store.matches) == 1
        assert record.action_of(alice.id) == "none"


class TestParticipantQueries:

    @pytest.mark.asyncio
    async def test_list_matches_newest_first(self, repos, make_developer, seed_match):
        me, a, b, c = (make_developer(n) for n in ("Me", "A", "B", "C"))
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        older = seed_match(me, a, matched_at=base)
        newer = seed_match(me, b, matched_at=base + timedelta(hours=1))
        seed_match(me, c, action_a="liked", action_b="none")

        records = await MatchingService(repos.matches).list_matches(me.id)
        assert [r.id for r in records] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_get_for_participant(self, repos, make_developer, seed_match):
        alice, bob, eve = make_developer("Alice"), make_developer("Bob"), make_developer("Eve")
        record = seed_match(alice, bob)
        service = MatchingService(repos.matches)

        assert (await service.get_for_participant(str(record.id), bob.id)).id == record.id
        with pytest.raises(AuthorizationError):
            await service.get_for_participant(record.id, eve.id)
        with pytest.raises(NotFoundError):
            await service.get_for_participant(uuid.uuid4(), alice.id)
        with pytest.raises(InvalidInput):
            await service.get_for_participant("abc", alice.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action_b", ["none", "disliked"])
    async def test_authorize_room_requires_matched(self, repos, make_developer, seed_match, action_b):
        alice, bob = make_developer("Alice"), make_developer("Bob")
        record = seed_match(alice, bob, action_a="liked", action_b=action_b)
        with pytest.raises(AuthorizationError):
            await MatchingService(repos.matches).authorize_room(record.id, alice.id)
