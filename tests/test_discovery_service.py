"""Unit tests for the discovery filter."""
import pytest

from app.services.discovery_service import DiscoveryService


@pytest.fixture
def discovery(repos):
    return DiscoveryService(repos.developers, repos.matches)


class TestExclusionSet:

    @pytest.mark.asyncio
    async def test_fresh_user_sees_everyone_else(self, discovery, make_developer):
        me = make_developer("Me")
        others = [make_developer(f"Dev {i}") for i in range(3)]

        candidates = await discovery.list_candidates(me.id)

        assert {c.id for c in candidates} == {o.id for o in others}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "my_action, their_action",
        [("liked", "none"), ("disliked", "none"), ("liked", "liked"), ("disliked", "liked")],
    )
    async def test_own_actions_and_matches_exclude(
        self, discovery, make_developer, seed_match, my_action, their_action
    ):
        me, x, y = make_developer("Me"), make_developer("X"), make_developer("Y")
        seed_match(me, x, action_a=my_action, action_b=their_action)

        ids = {c.id for c in await discovery.list_candidates(me.id)}

        assert x.id not in ids
        assert y.id in ids

    @pytest.mark.asyncio
    async def test_counterparts_dislike_does_not_hide_them(self, discovery, make_developer, seed_match):
        me, x = make_developer("Me"), make_developer("X")
        seed_match(me, x, action_a="none", action_b="disliked")

        ids = {c.id for c in await discovery.list_candidates(me.id)}

        assert x.id in ids

    @pytest.mark.asyncio
    async def test_counterparts_pending_like_keeps_them_visible(self, discovery, make_developer, seed_match):
        me, x = make_developer("Me"), make_developer("X")
        seed_match(me, x, action_a="none", action_b="liked")

        assert x.id in {c.id for c in await discovery.list_candidates(me.id)}

    @pytest.mark.asyncio
    async def test_inactive_profiles_hidden(self, discovery, make_developer):
        me = make_developer("Me")
        make_developer("Gone", is_active=False)

        assert await discovery.list_candidates(me.id) == []

    @pytest.mark.asyncio
    async def test_recomputed_on_every_call(self, discovery, repos, make_developer):
        from app.services.matching_service import MatchingService

        me, x = make_developer("Me"), make_developer("X")
        assert x.id in {c.id for c in await discovery.list_candidates(me.id)}

        await MatchingService(repos.matches).record_action(me.id, x.id, "liked")

        assert x.id not in {c.id for c in await discovery.list_candidates(me.id)}

    @pytest.mark.asyncio
    async def test_newest_profiles_first(self, discovery, make_developer):
        me = make_developer("Me")
        first, second = make_developer("First"), make_developer("Second")

        candidates = await discovery.list_candidates(me.id)

        assert [c.id for c in candidates] == [second.id, first.id]
