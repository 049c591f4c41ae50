"""
In-memory ProfileStore: the default profile backend.

Authoritative for ban flags. Profiles are never deleted; a ban is a flag.
Returned profiles are copies, so callers cannot mutate stored state
behind the store's back.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import fields as dataclass_fields
from typing import Any, Iterable, Optional

from kindred.core.errors import ConflictError, NotFoundError, ValidationError
from kindred.core.models import MIN_AGE, UserProfile

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(f.name for f in dataclass_fields(UserProfile)) - {"user_id", "created_at"}


class InMemoryProfileStore:
    """ProfileStore backed by a dict, guarded by one asyncio.Lock."""

    def __init__(self, profiles: Optional[Iterable[UserProfile]] = None):
        self._profiles: dict[str, UserProfile] = {}
        self._lock = asyncio.Lock()
        for profile in profiles or ():
            self._profiles[profile.user_id] = copy.deepcopy(profile)

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFoundError(f"User {user_id} not found")
        return copy.deepcopy(profile)

    async def create_profile(self, profile: UserProfile) -> UserProfile:
        async with self._lock:
            if profile.user_id in self._profiles:
                raise ConflictError(f"User {profile.user_id} already exists")
            self._profiles[profile.user_id] = copy.deepcopy(profile)
        return copy.deepcopy(profile)

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        async with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                raise NotFoundError(f"User {user_id} not found")
            if "name" in fields and not str(fields["name"] or "").strip():
                raise ValidationError("name is required")
            if "age" in fields and (not isinstance(fields["age"], int) or fields["age"] < MIN_AGE):
                raise ValidationError(f"age must be an integer >= {MIN_AGE}")
            if profile.banned and fields.get("banned") is False:
                raise ValidationError("Bans cannot be lifted")

            for name, value in fields.items():
                setattr(profile, name, copy.deepcopy(value))

        logger.debug("Profile %s updated: %s", user_id, sorted(fields))
        return copy.deepcopy(profile)

    async def list_profiles(self) -> list[UserProfile]:
        return [copy.deepcopy(p) for p in self._profiles.values()]

    def __len__(self) -> int:
        return len(self._profiles)
