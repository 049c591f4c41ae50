"""Tests for InMemoryProfileStore."""

from __future__ import annotations

import pytest

from kindred.core.errors import ConflictError, NotFoundError, ValidationError
from kindred.core.models import UserProfile
from kindred.core.protocols import ProfileStore
from kindred.infra.profile_store import InMemoryProfileStore


class TestProfileStore:
    def test_satisfies_protocol(self, profile_store):
        assert isinstance(profile_store, ProfileStore)
        assert len(profile_store) == 4

    @pytest.mark.asyncio
    async def test_returned_profiles_are_copies(self, profile_store):
        profile = await profile_store.get_profile("alice")
        profile.interests.append("sailing")
        profile.banned = True

        fresh = await profile_store.get_profile("alice")
        assert "sailing" not in fresh.interests
        assert not fresh.banned

    @pytest.mark.asyncio
    async def test_create_and_duplicate(self):
        store = InMemoryProfileStore()
        await store.create_profile(UserProfile(user_id="erin", name="Erin", age=22))

        with pytest.raises(ConflictError):
            await store.create_profile(UserProfile(user_id="erin", name="Erin", age=22))
        assert [p.user_id for p in await store.list_profiles()] == ["erin"]

    @pytest.mark.asyncio
    async def test_unknown_user(self, profile_store):
        with pytest.raises(NotFoundError):
            await profile_store.get_profile("zed")
        with pytest.raises(NotFoundError):
            await profile_store.update_profile("zed", {"bio": "hi"})

    @pytest.mark.asyncio
    async def test_update_validation(self, profile_store):
        with pytest.raises(ValidationError):
            await profile_store.update_profile("alice", {"favorite_color": "blue"})
        with pytest.raises(ValidationError):
            await profile_store.update_profile("alice", {"user_id": "mallory"})
        with pytest.raises(ValidationError):
            await profile_store.update_profile("alice", {"name": " "})
        with pytest.raises(ValidationError):
            await profile_store.update_profile("alice", {"age": 16})

        updated = await profile_store.update_profile("alice", {"bio": "New bio", "age": 29})
        assert updated.bio == "New bio"
        assert updated.age == 29

    @pytest.mark.asyncio
    async def test_ban_cannot_be_lifted(self, profile_store):
        await profile_store.update_profile("bob", {"banned": True})

        with pytest.raises(ValidationError):
            await profile_store.update_profile("bob", {"banned": False})
        assert (await profile_store.get_profile("bob")).banned
