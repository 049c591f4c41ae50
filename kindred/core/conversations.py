"""
Conversation store: the ordered message log of every conversation.

Ordering contract: within a conversation messages are totally ordered by
(created_at, message_id). created_at is clamped so it never goes backwards
inside a conversation, and message ids embed a zero-padded per-conversation
sequence number, so the order equals append order and a cursor (the last
seen message id) never skips a message that was appended later.

Only per-conversation ordering is guaranteed; there is no global order.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterator, Optional

from .errors import NotFoundError, ValidationError
from .events import message_created, message_deleted, messages_read
from .locks import KeyedLock
from .models import Conversation, Message, ModerationStatus, generate_id, utc_now
from .protocols import Clock, EventPusher

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 1000


def validate_message_text(text: str, max_length: int = DEFAULT_MAX_MESSAGE_LENGTH) -> None:
    """Raise ValidationError for empty or over-long text."""
    if text is None or not text.strip():
        raise ValidationError("Message text must not be empty")
    if len(text) > max_length:
        raise ValidationError(
            f"Message text is {len(text)} characters; the limit is {max_length}"
        )


def _message_id(seq: int) -> str:
    # Zero-padded so lexical order == sequence order within a conversation
    return f"msg_{seq:010d}_{uuid.uuid4().hex[:6]}"


class ConversationStore:
    """In-process conversation store with per-conversation append serialization."""

    def __init__(
        self,
        event_pusher: EventPusher,
        clock: Clock = utc_now,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ):
        self._event_pusher = event_pusher
        self._clock = clock
        self._max_message_length = max_message_length
        self._conversations: dict[str, Conversation] = {}
        self._by_user: dict[str, list[str]] = {}
        # conversation_id -> message_id -> position in the log
        self._positions: dict[str, dict[str, int]] = {}
        self._locks = KeyedLock()

    @property
    def max_message_length(self) -> int:
        return self._max_message_length

    # ============ Conversations ============

    def create_conversation(
        self,
        match_id: str,
        participants: tuple[str, str],
        now: Optional[datetime] = None,
        conversation_id: Optional[str] = None,
    ) -> Conversation:
        """
        Create the conversation for a match.

        Synchronous on purpose: the Match Formation Engine calls this
        inside its pair lock so Match and Conversation appear together.
        """
        conversation_id = conversation_id or generate_id("conv")
        if conversation_id in self._conversations:
            return self._conversations[conversation_id]

        conv = Conversation(
            conversation_id=conversation_id,
            match_id=match_id,
            participants=participants,
            created_at=now or self._clock(),
        )
        self._conversations[conversation_id] = conv
        self._positions[conversation_id] = {}
        for user_id in participants:
            self._by_user.setdefault(user_id, []).append(conversation_id)

        logger.info(
            "Conversation %s created for match %s (%s, %s)",
            conversation_id, match_id, participants[0], participants[1],
        )
        return conv

    def get_conversation(self, conversation_id: str) -> Conversation:
        conv = self._conversations.get(conversation_id)
        if conv is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return conv

    def get_participant_conversation(self, conversation_id: str, user_id: str) -> Conversation:
        """Like get_conversation, but non-participants see NotFound."""
        conv = self.get_conversation(conversation_id)
        if not conv.has_participant(user_id):
            raise NotFoundError(
                f"Conversation {conversation_id} not found for user {user_id}"
            )
        return conv

    def conversations_for(self, user_id: str) -> list[Conversation]:
        """A user's conversations, most recent activity first."""
        convs = [self._conversations[cid] for cid in self._by_user.get(user_id, [])]
        convs.sort(key=lambda c: c.last_message_at or c.created_at, reverse=True)
        return convs

    # ============ Append ============

    async def append_message(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        now: Optional[datetime] = None,
    ) -> Message:
        """Append an approved message and bump the recipient's unread counter."""
        conv = self.get_participant_conversation(conversation_id, sender_id)
        validate_message_text(text, self._max_message_length)

        async with self._locks.hold(conversation_id):
            created_at = now or self._clock()
            last = conv.last_message
            if last is not None and created_at < last.created_at:
                created_at = last.created_at

            seq = len(conv.messages) + 1
            message = Message(
                message_id=_message_id(seq),
                conversation_id=conversation_id,
                sender_id=sender_id,
                text=text,
                created_at=created_at,
                seq=seq,
                status=ModerationStatus.APPROVED,
            )
            self._positions[conversation_id][message.message_id] = len(conv.messages)
            conv.messages.append(message)
            conv.last_message_at = created_at
            recipient = conv.other_participant(sender_id)
            conv.unread[recipient] = conv.unread.get(recipient, 0) + 1

        logger.debug(
            "Message %s appended to %s by %s", message.message_id, conversation_id, sender_id,
        )
        await self._event_pusher.push(
            message_created(message, recipients=list(conv.participants))
        )
        return message

    # ============ Listing ============

    def list_messages(
        self, conversation_id: str, since: Optional[str] = None,
    ) -> Iterator[Message]:
        """
        Lazy ascending iterator over a conversation.

        ``since`` is the last message id the caller has seen; iteration
        starts right after it. Calling again restarts from the cursor.
        Tombstoned messages are included so cursors stay stable.
        """
        conv = self.get_conversation(conversation_id)
        start = 0
        if since is not None:
            start = self._position(conversation_id, since) + 1
        return self._iter_from(conv, start)

    @staticmethod
    def _iter_from(conv: Conversation, start: int) -> Iterator[Message]:
        index = start
        # The log is append-only, so walking it by index is safe while it grows
        while index < len(conv.messages):
            yield conv.messages[index]
            index += 1

    def get_message(self, conversation_id: str, message_id: str) -> Message:
        conv = self.get_conversation(conversation_id)
        return conv.messages[self._position(conversation_id, message_id)]

    def recent_messages(self, conversation_id: str, limit: int = 5) -> list[Message]:
        """Last ``limit`` visible (non-deleted) messages, oldest first."""
        conv = self.get_conversation(conversation_id)
        visible = [m for m in conv.messages if not m.deleted]
        return visible[-limit:] if limit > 0 else []

    def _position(self, conversation_id: str, message_id: str) -> int:
        position = self._positions.get(conversation_id, {}).get(message_id)
        if position is None:
            raise NotFoundError(
                f"Message {message_id} not found in conversation {conversation_id}"
            )
        return position

    # ============ Read State ============

    async def mark_read(
        self,
        conversation_id: str,
        user_id: str,
        up_to_message_id: Optional[str] = None,
    ) -> int:
        """
        Move the reader's cursor and recompute their unread counter.

        Without ``up_to_message_id`` everything is read. Returns the
        number of messages still unread (0 when reading up to the latest).
        """
        conv = self.get_participant_conversation(conversation_id, user_id)

        async with self._locks.hold(conversation_id):
            if up_to_message_id is None:
                position = len(conv.messages) - 1
            else:
                position = self._position(conversation_id, up_to_message_id)

            current = conv.read_cursors.get(user_id)
            if current is not None:
                # Cursors only move forward
                position = max(position, self._position(conversation_id, current))

            if position >= 0:
                conv.read_cursors[user_id] = conv.messages[position].message_id
            other = conv.other_participant(user_id)
            remaining = sum(
                1 for m in conv.messages[position + 1:]
                if m.sender_id == other and not m.deleted
            )
            conv.unread[user_id] = remaining
            cursor = conv.read_cursors.get(user_id)

        await self._event_pusher.push(
            messages_read(
                conversation_id,
                reader_id=user_id,
                up_to_message_id=cursor,
                recipients=[conv.other_participant(user_id)],
            )
        )
        return remaining

    def unread_count(self, conversation_id: str, user_id: str) -> int:
        conv = self.get_participant_conversation(conversation_id, user_id)
        return conv.unread.get(user_id, 0)

    # ============ Tombstones ============

    async def delete_message(
        self, conversation_id: str, message_id: str, requester_id: str,
    ) -> Message:
        """Tombstone a message. Only its sender may delete it; repeats are no-ops."""
        conv = self.get_participant_conversation(conversation_id, requester_id)
        message = self.get_message(conversation_id, message_id)
        if message.sender_id != requester_id:
            raise ValidationError("Only the sender can delete a message")
        if message.deleted:
            return message

        message.deleted = True
        recipient = conv.other_participant(requester_id)
        if self._is_unread_by(conv, message, recipient):
            conv.unread[recipient] = max(conv.unread.get(recipient, 0) - 1, 0)
        logger.info("Message %s in %s tombstoned", message_id, conversation_id)
        await self._event_pusher.push(
            message_deleted(message, recipients=list(conv.participants))
        )
        return message

    def _is_unread_by(self, conv: Conversation, message: Message, user_id: str) -> bool:
        cursor = conv.read_cursors.get(user_id)
        if cursor is None:
            return True
        position = self._position(conv.conversation_id, message.message_id)
        return position > self._position(conv.conversation_id, cursor)
