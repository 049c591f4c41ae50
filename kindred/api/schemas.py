"""
Pydantic request/response models for the Kindred API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ============ Users ============

class LocationModel(BaseModel):
    label: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PreferencesModel(BaseModel):
    min_age: int = 18
    max_age: int = 99
    max_distance_km: Optional[float] = None
    sex_preference: Optional[str] = None


class RegisterUserRequest(BaseModel):
    user_id: str
    name: str
    age: int
    sex: Optional[str] = None
    bio: str = ""
    interests: list[str] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)
    residence: Optional[str] = None
    location: Optional[LocationModel] = None
    preferences: Optional[PreferencesModel] = None


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = None
    sex: Optional[str] = None
    bio: Optional[str] = None
    interests: Optional[list[str]] = None
    photos: Optional[list[str]] = None
    residence: Optional[str] = None
    location: Optional[LocationModel] = None
    preferences: Optional[PreferencesModel] = None


class UserResponse(BaseModel):
    user_id: str
    name: str
    age: int
    sex: Optional[str] = None
    bio: str = ""
    interests: list[str] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)
    location: Optional[LocationModel] = None
    preferences: PreferencesModel
    strikes: int = 0
    banned: bool = False
    created_at: str


class StrikeResponse(BaseModel):
    user_id: str
    strikes: int
    banned: bool
    strikes_remaining: int


class CooldownResponse(BaseModel):
    user_id: str
    cooling_down: bool
    next_eligible_at: Optional[str] = None
    retry_after_seconds: float = 0.0


# ============ Swipes / Matches ============

class SwipeRequest(BaseModel):
    actor_id: str
    target_id: str
    direction: str


class MatchResponse(BaseModel):
    match_id: str
    user_a: str
    user_b: str
    conversation_id: str
    created_at: str


class SwipeResponse(BaseModel):
    accepted: bool
    actor_id: str
    target_id: str
    direction: str
    duplicate: bool = False
    redecided: bool = False
    matched: bool = False
    match: Optional[MatchResponse] = None
    next_eligible_at: Optional[str] = None


class UnsureDecisionResponse(BaseModel):
    target_id: str
    decided_at: str


# ============ Messages ============

class SendMessageRequest(BaseModel):
    conversation_id: str
    sender_id: str
    text: str
    defer: bool = False


class MarkReadRequest(BaseModel):
    user_id: str
    up_to_message_id: Optional[str] = None


class MarkReadResponse(BaseModel):
    conversation_id: str
    user_id: str
    unread_count: int


class MessageListResponse(BaseModel):
    conversation_id: str
    messages: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None


# ============ Suggestions ============

class SuggestionRequest(BaseModel):
    user_id: str
    category: str = "general"


class SuggestionResponse(BaseModel):
    conversation_id: str
    category: str
    suggestions: list[str]
    fallback: bool = False
    categories: list[str] = Field(default_factory=list)
