"""
API endpoints for the Kindred matching-and-chat service.

Every call carries explicit user ids; there is no session. Domain errors
propagate as KindredError and are mapped to HTTP by the app's handler.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, Request, Response, WebSocket, WebSocketDisconnect

from kindred.core.errors import NotFoundError
from kindred.core.models import SwipeResult, UserProfile
from kindred.core.service import MatchChatService

from .schemas import (
    CooldownResponse,
    MarkReadRequest,
    MarkReadResponse,
    MatchResponse,
    MessageListResponse,
    RegisterUserRequest,
    SendMessageRequest,
    StrikeResponse,
    SuggestionRequest,
    SuggestionResponse,
    SwipeRequest,
    SwipeResponse,
    UnsureDecisionResponse,
    UpdateUserRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()

MAX_PAGE_SIZE = 500


def _service(request: Request) -> MatchChatService:
    return request.app.state.service


def _user_response(profile: UserProfile) -> UserResponse:
    return UserResponse(**profile.to_dict())


def _swipe_response(result: SwipeResult) -> SwipeResponse:
    return SwipeResponse(
        accepted=result.accepted,
        actor_id=result.actor_id,
        target_id=result.target_id,
        direction=result.direction.value,
        duplicate=result.duplicate,
        redecided=result.redecided,
        matched=result.matched,
        match=MatchResponse(**result.match.to_dict()) if result.match else None,
        next_eligible_at=result.next_eligible_at.isoformat() if result.next_eligible_at else None,
    )


# ============ Users ============

@router.post("/users", response_model=UserResponse, status_code=201)
async def register_user(req: RegisterUserRequest, request: Request):
    profile = await _service(request).register_user(req.model_dump(exclude_none=True))
    return _user_response(profile)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, request: Request):
    return _user_response(await _service(request).get_user(user_id))


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, req: UpdateUserRequest, request: Request):
    fields = req.model_dump(exclude_unset=True)
    profile = await _service(request).update_user(user_id, fields)
    return _user_response(profile)


@router.get("/users/{user_id}/strikes", response_model=StrikeResponse)
async def get_strikes(user_id: str, request: Request):
    status = await _service(request).strike_status(user_id)
    return StrikeResponse(**status.to_dict())


@router.get("/users/{user_id}/cooldown", response_model=CooldownResponse)
async def get_cooldown(user_id: str, request: Request):
    service = _service(request)
    await service.get_user(user_id)
    state = service.get_cooldown(user_id)
    now = service.admission.clock()
    return CooldownResponse(
        user_id=user_id,
        cooling_down=state.is_cooling_down(now),
        next_eligible_at=state.next_eligible_at.isoformat() if state.next_eligible_at else None,
        retry_after_seconds=state.remaining_seconds(now),
    )


@router.get("/users/{user_id}/discover")
async def discover(
    user_id: str, request: Request, limit: int = Query(10, ge=1, le=100),
) -> list[dict[str, Any]]:
    candidates = await _service(request).discover(user_id, limit)
    return [c.to_dict() for c in candidates]


@router.get("/users/{user_id}/unsure", response_model=list[UnsureDecisionResponse])
async def list_unsure(user_id: str, request: Request):
    service = _service(request)
    await service.get_user(user_id)
    return [
        UnsureDecisionResponse(target_id=d.target_id, decided_at=d.decided_at.isoformat())
        for d in service.list_unsure(user_id)
    ]


@router.get("/users/{user_id}/likes", response_model=list[UserResponse])
async def received_likes(user_id: str, request: Request):
    likers = await _service(request).received_likes(user_id)
    return [_user_response(p) for p in likers]


@router.get("/users/{user_id}/matches", response_model=list[MatchResponse])
async def list_matches(user_id: str, request: Request):
    service = _service(request)
    await service.get_user(user_id)
    return [MatchResponse(**m.to_dict()) for m in service.matches_for(user_id)]


@router.get("/users/{user_id}/conversations")
async def list_conversations(user_id: str, request: Request) -> list[dict[str, Any]]:
    service = _service(request)
    await service.get_user(user_id)
    return service.conversations_for(user_id)


# ============ Swipes ============

@router.post("/swipe", response_model=SwipeResponse)
async def swipe(req: SwipeRequest, request: Request):
    result = await _service(request).swipe(req.actor_id, req.target_id, req.direction)
    return _swipe_response(result)


@router.post("/swipe/redecide", response_model=SwipeResponse)
async def redecide(req: SwipeRequest, request: Request):
    result = await _service(request).redecide(req.actor_id, req.target_id, req.direction)
    return _swipe_response(result)


# ============ Messages ============

@router.post("/messages", status_code=201)
async def send_message(req: SendMessageRequest, request: Request, response: Response) -> dict[str, Any]:
    """Moderated send. ``defer=true`` returns 202 with the pending submission."""
    service = _service(request)
    if req.defer:
        submission = await service.stage_message(req.conversation_id, req.sender_id, req.text)
        response.status_code = 202
        return submission.to_dict()

    message = await service.send_message(req.conversation_id, req.sender_id, req.text)
    return message.to_dict()


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: str, request: Request, user_id: str = Query(...),
) -> dict[str, Any]:
    return _service(request).get_submission(submission_id, user_id).to_dict()


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    request: Request,
    user_id: str = Query(...),
    since: Optional[str] = None,
    limit: int = Query(100, ge=1, le=MAX_PAGE_SIZE),
):
    messages = list(
        itertools.islice(_service(request).list_messages(conversation_id, user_id, since), limit)
    )
    return MessageListResponse(
        conversation_id=conversation_id,
        messages=[m.to_dict() for m in messages],
        next_cursor=messages[-1].message_id if messages else since,
    )


@router.post("/conversations/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(conversation_id: str, req: MarkReadRequest, request: Request):
    remaining = await _service(request).mark_read(
        conversation_id, req.user_id, req.up_to_message_id,
    )
    return MarkReadResponse(
        conversation_id=conversation_id, user_id=req.user_id, unread_count=remaining,
    )


@router.delete("/conversations/{conversation_id}/messages/{message_id}")
async def delete_message(
    conversation_id: str, message_id: str, request: Request, user_id: str = Query(...),
) -> dict[str, Any]:
    message = await _service(request).delete_message(conversation_id, message_id, user_id)
    return message.to_dict()


@router.post("/conversations/{conversation_id}/suggestions", response_model=SuggestionResponse)
async def suggest(conversation_id: str, req: SuggestionRequest, request: Request):
    service = _service(request)
    result = await service.suggest(conversation_id, req.user_id, req.category)
    categories = await service.suggestion_categories(conversation_id, req.user_id)
    return SuggestionResponse(**result.to_dict(), categories=categories)


# ============ WebSocket ============

@ws_router.websocket("/ws/{user_id}")
async def user_events_ws(websocket: WebSocket, user_id: str):
    state = websocket.app.state

    try:
        await state.service.get_user(user_id)
    except NotFoundError:
        await websocket.close(code=4004, reason="User not found")
        return

    ws_manager = state.ws_manager
    connection_id = await ws_manager.connect(websocket, user_id)
    if connection_id is None:
        return

    try:
        while True:
            # Inbound frames are ignored; the socket is push-only
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await ws_manager.disconnect(user_id, connection_id)
