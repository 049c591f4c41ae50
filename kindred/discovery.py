"""
Discovery feed: profiles a user can swipe on next.

Excludes the viewer, banned users and everyone the viewer already decided
on (unsure included; those come back through the unsure list). Filters by
the viewer's age range, sex preference and maximum distance, then ranks by
shared interests (descending) and distance (ascending).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from .core.admission import SwipeAdmissionController
from .core.models import UserProfile
from .core.protocols import ProfileStore
from .suggestions.chat import shared_interests

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088
DEFAULT_FEED_SIZE = 10


def haversine_km(
    latitude: float, longitude: float, latitudes: np.ndarray, longitudes: np.ndarray,
) -> np.ndarray:
    """Great-circle distance from one point to many, in kilometres."""
    lat1 = np.radians(latitude)
    lon1 = np.radians(longitude)
    lat2 = np.radians(latitudes)
    lon2 = np.radians(longitudes)

    a = (
        np.sin((lat2 - lat1) / 2.0) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


@dataclass
class Candidate:
    profile: UserProfile
    distance_km: Optional[float] = None
    shared_interests: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.profile.to_dict()
        # Moderation state is not shown to other users
        data.pop("strikes", None)
        data.pop("banned", None)
        data["distance_km"] = (
            round(self.distance_km, 1) if self.distance_km is not None else None
        )
        data["shared_interests"] = list(self.shared_interests)
        return data


def _matches_preferences(viewer: UserProfile, other: UserProfile) -> bool:
    prefs = viewer.preferences
    if not prefs.min_age <= other.age <= prefs.max_age:
        return False
    if prefs.sex_preference and other.sex and other.sex.lower() != prefs.sex_preference.lower():
        return False
    return True


class DiscoveryFeed:
    """Builds a viewer's swipe queue from the profile store."""

    def __init__(self, profile_store: ProfileStore, admission: SwipeAdmissionController):
        self._profiles = profile_store
        self._admission = admission

    async def discover(self, viewer_id: str, limit: int = DEFAULT_FEED_SIZE) -> list[Candidate]:
        viewer = await self._profiles.get_profile(viewer_id)
        decided = self._admission.decided_targets(viewer_id)

        pool = [
            p for p in await self._profiles.list_profiles()
            if p.user_id != viewer_id
            and not p.banned
            and p.user_id not in decided
            and _matches_preferences(viewer, p)
        ]
        if not pool:
            return []

        distances = self._distances(viewer, pool)
        max_km = viewer.preferences.max_distance_km

        candidates = []
        for profile, distance in zip(pool, distances):
            if max_km is not None and distance is not None and distance > max_km:
                continue
            candidates.append(
                Candidate(
                    profile=profile,
                    distance_km=distance,
                    shared_interests=shared_interests(viewer, profile),
                )
            )

        candidates.sort(
            key=lambda c: (
                -len(c.shared_interests),
                c.distance_km if c.distance_km is not None else math.inf,
                c.profile.user_id,
            )
        )
        logger.debug(
            "Discovery for %s: %d candidates from %d profiles",
            viewer_id, len(candidates), len(pool),
        )
        return candidates[:limit] if limit > 0 else []

    @staticmethod
    def _distances(viewer: UserProfile, pool: list[UserProfile]) -> list[Optional[float]]:
        """Distance from the viewer to each profile; None where coordinates are missing."""
        result: list[Optional[float]] = [None] * len(pool)
        if viewer.location is None or not viewer.location.has_coordinates:
            return result

        located = [
            i for i, p in enumerate(pool) if p.location is not None and p.location.has_coordinates
        ]
        if not located:
            return result

        lats = np.array([pool[i].location.latitude for i in located], dtype=float)
        lons = np.array([pool[i].location.longitude for i in located], dtype=float)
        km = haversine_km(viewer.location.latitude, viewer.location.longitude, lats, lons)
        for i, d in zip(located, km):
            result[i] = float(d)
        return result
