"""Tests for the discovery feed and distance math."""

from __future__ import annotations

import numpy as np
import pytest

from kindred.discovery import Candidate, DiscoveryFeed, haversine_km


@pytest.fixture
def feed(profile_store, admission) -> DiscoveryFeed:
    return DiscoveryFeed(profile_store, admission)


class TestHaversine:
    def test_zero_distance(self):
        km = haversine_km(47.6062, -122.3321, np.array([47.6062]), np.array([-122.3321]))
        assert km[0] == pytest.approx(0.0, abs=1e-9)

    def test_seattle_to_portland(self):
        km = haversine_km(47.6062, -122.3321, np.array([45.5152]), np.array([-122.6784]))
        assert km[0] == pytest.approx(233, rel=0.02)

    def test_vectorized(self):
        km = haversine_km(0.0, 0.0, np.array([0.0, 0.0]), np.array([1.0, -1.0]))
        assert km.shape == (2,)
        assert km[0] == pytest.approx(km[1])
        assert km[0] == pytest.approx(111.2, rel=0.01)


class TestDiscover:
    @pytest.mark.asyncio
    async def test_ranks_by_shared_interests_then_distance(self, feed):
        candidates = await feed.discover("bob")

        assert [c.profile.user_id for c in candidates] == ["alice", "carol", "dave"]
        assert candidates[0].shared_interests == ["coffee", "jazz"]
        assert candidates[2].distance_km is None

    @pytest.mark.asyncio
    async def test_age_range_applies(self, feed):
        candidates = await feed.discover("alice")

        # dave (45) is outside alice's 25-40 range
        assert [c.profile.user_id for c in candidates] == ["bob", "carol"]

    @pytest.mark.asyncio
    async def test_max_distance_and_sex_preference(self, feed, profile_store):
        alice = await profile_store.get_profile("alice")
        alice.preferences.max_distance_km = 50
        await profile_store.update_profile("alice", {"preferences": alice.preferences})
        assert [c.profile.user_id for c in await feed.discover("alice")] == ["bob"]

        alice.preferences.max_distance_km = None
        alice.preferences.sex_preference = "female"
        await profile_store.update_profile("alice", {"preferences": alice.preferences})
        assert [c.profile.user_id for c in await feed.discover("alice")] == ["carol"]

    @pytest.mark.asyncio
    async def test_excludes_decided_and_banned(self, feed, admission, profile_store):
        await admission.attempt_swipe("bob", "alice", "unsure")
        await profile_store.update_profile("carol", {"banned": True})

        assert [c.profile.user_id for c in await feed.discover("bob")] == ["dave"]

    @pytest.mark.asyncio
    async def test_limit(self, feed):
        assert len(await feed.discover("bob", limit=1)) == 1
        assert await feed.discover("bob", limit=0) == []


class TestCandidate:
    @pytest.mark.asyncio
    async def test_to_dict_hides_moderation_state(self, feed):
        candidate: Candidate = (await feed.discover("bob"))[0]
        data = candidate.to_dict()

        assert "strikes" not in data
        assert "banned" not in data
        assert data["shared_interests"] == ["coffee", "jazz"]
        assert data["distance_km"] == round(candidate.distance_km, 1)
