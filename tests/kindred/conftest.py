"""
Shared test fixtures for all Kindred tests.

Provides a controllable clock, mock collaborators (event pusher,
moderator, text generator, geocoder), sample profiles and a fully
wired service.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from kindred.builder import ServiceBuilder
from kindred.core.conversations import ConversationStore
from kindred.core.events import EventType, KindredEvent
from kindred.core.matching import MatchFormationEngine
from kindred.core.models import Location, ModerationVerdict, Preferences, UserProfile
from kindred.core.strikes import StrikeLedger
from kindred.core.admission import SwipeAdmissionController
from kindred.core.moderation import ModerationGate
from kindred.infra.profile_store import InMemoryProfileStore


T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============ Clock ============

class FakeClock:
    """Server clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


# ============ Mock Event Pusher ============

class MockEventPusher:
    """Collects pushed events for test assertions."""

    def __init__(self):
        self.events: list[KindredEvent] = []

    async def push(self, event: KindredEvent) -> None:
        self.events.append(event)

    async def push_many(self, events: list[KindredEvent]) -> None:
        self.events.extend(events)

    def get_events_by_type(self, event_type: EventType) -> list[KindredEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def events_for(self, user_id: str) -> list[KindredEvent]:
        return [e for e in self.events if user_id in e.recipients]

    def reset(self) -> None:
        self.events.clear()


# ============ Mock Moderator ============

class MockModerator:
    """
    ContentModerator with scripted behavior.

    Texts containing a blocked word are rejected; ``delay`` simulates a
    slow service; ``error`` makes every call raise.
    """

    def __init__(self, blocked: tuple[str, ...] = ("badword",), delay: float = 0.0):
        self.blocked = blocked
        self.delay = delay
        self.error: Optional[Exception] = None
        self.calls: list[str] = []

    async def moderate(self, text: str) -> ModerationVerdict:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if any(word in text.lower() for word in self.blocked):
            return ModerationVerdict(allowed=False, reason="blocked_word")
        return ModerationVerdict(allowed=True)


# ============ Mock Text Generator ============

class MockTextGenerator:
    def __init__(self, response: str = "1. Hi!\n2. How are you?\n3. Coffee?"):
        self.response = response
        self.error: Optional[Exception] = None
        self.calls: list[tuple[str, Optional[str]]] = []

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.calls.append((prompt, system_prompt))
        if self.error is not None:
            raise self.error
        return self.response


# ============ Mock Geocoder ============

class MockGeocoder:
    def __init__(self, places: Optional[dict[str, Location]] = None):
        self.places = places or {}
        self.queries: list[str] = []

    async def geocode(self, query: str) -> Optional[Location]:
        self.queries.append(query)
        return self.places.get(query)


# ============ Sample Data ============

def make_profile(user_id: str, **overrides) -> UserProfile:
    data = {
        "user_id": user_id,
        "name": user_id.capitalize(),
        "age": 28,
        "interests": ["hiking", "coffee"],
    }
    data.update(overrides)
    return UserProfile(**data)


def sample_profiles() -> list[UserProfile]:
    return [
        make_profile(
            "alice", sex="female", interests=["hiking", "coffee", "jazz"],
            location=Location("Seattle, Washington", 47.6062, -122.3321),
            preferences=Preferences(min_age=25, max_age=40),
        ),
        make_profile(
            "bob", sex="male", interests=["coffee", "jazz"],
            location=Location("Seattle, Washington", 47.6205, -122.3493),
        ),
        make_profile(
            "carol", sex="female", age=33, interests=["chess"],
            location=Location("Portland, Oregon", 45.5152, -122.6784),
        ),
        make_profile("dave", sex="male", age=45, interests=["hiking"]),
    ]


# ============ Fixtures ============

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def event_pusher() -> MockEventPusher:
    return MockEventPusher()


@pytest.fixture
def moderator() -> MockModerator:
    return MockModerator()


@pytest.fixture
def generator() -> MockTextGenerator:
    return MockTextGenerator()


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore(sample_profiles())


@pytest.fixture
def conversation_store(event_pusher, clock) -> ConversationStore:
    return ConversationStore(event_pusher, clock=clock)


@pytest.fixture
def strike_ledger(profile_store, event_pusher, conversation_store) -> StrikeLedger:
    return StrikeLedger(profile_store, event_pusher, conversation_store=conversation_store)


@pytest.fixture
def match_engine(conversation_store, strike_ledger, event_pusher, clock) -> MatchFormationEngine:
    return MatchFormationEngine(
        conversation_store, strike_ledger, event_pusher,
        clock=clock, match_window_seconds=0.05,
    )


@pytest.fixture
def admission(profile_store, match_engine, strike_ledger, clock) -> SwipeAdmissionController:
    return SwipeAdmissionController(
        profile_store, match_engine, strike_ledger, clock=clock, cooldown_seconds=30,
    )


@pytest.fixture
def moderation_gate(
    conversation_store, strike_ledger, moderator, event_pusher, clock,
) -> ModerationGate:
    return ModerationGate(
        conversation_store, strike_ledger, moderator, event_pusher,
        clock=clock, timeout_s=0.2,
    )


@pytest.fixture
def service(profile_store, event_pusher, moderator, generator, clock):
    return (
        ServiceBuilder()
        .with_profile_store(profile_store)
        .with_event_pusher(event_pusher)
        .with_moderator(moderator)
        .with_generator(generator)
        .with_geocoder(MockGeocoder({
            "Austin, TX": Location("Austin, Texas", 30.2672, -97.7431),
        }))
        .with_clock(clock)
        .cooldown(30)
        .match_window(0.05)
        .moderation_timeout(0.2)
        .build()
    )
