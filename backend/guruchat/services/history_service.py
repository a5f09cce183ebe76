"""
Read side of conversations: grouped summaries for the sidebar and full
transcripts for the chat view.
"""
from sqlalchemy.orm import Session, joinedload, selectinload
from typing import Dict, List, Optional
from uuid import UUID
import logging

from guruchat.exceptions import NotFoundError
from guruchat.models import Chat, MessageRole
from guruchat.schemas import (
    ConversationResponse,
    ConversationSummary,
    GuruHistory,
    GuruRef,
    TurnResponse,
)
from guruchat.utils.identifiers import parse_id

logger = logging.getLogger(__name__)

SUMMARY_LENGTH = 50
EMPTY_SUMMARY = "Chat started"
UNKNOWN_GURU_NAME = "Unknown Guru"


def summarize(chat: Chat) -> str:
    first_user_turn = next((m for m in chat.messages if m.role == MessageRole.USER), None)
    if first_user_turn is None:
        logger.warning(
            "Conversation has no user message for summary",
            extra={"conversation_id": str(chat.id)},
        )
        return EMPTY_SUMMARY
    content = first_user_turn.content
    if len(content) > SUMMARY_LENGTH:
        return content[:SUMMARY_LENGTH] + "..."
    return content


def to_conversation_response(chat: Chat) -> ConversationResponse:
    return ConversationResponse(
        id=chat.id,
        user_id=chat.user_id,
        guru_id=chat.guru_id,
        guru=GuruRef(id=chat.guru.id, name=chat.guru.name) if chat.guru else None,
        messages=[TurnResponse(role=m.role.value, content=m.content) for m in chat.messages],
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )


def _user_chats(db: Session, user_id: UUID):
    return (
        db.query(Chat)
        .options(joinedload(Chat.guru), selectinload(Chat.messages))
        .filter(Chat.user_id == user_id)
    )


def list_summaries(db: Session, user_id: UUID) -> List[GuruHistory]:
    """Group the user's conversations by guru, most recently updated first."""
    chats = _user_chats(db, user_id).order_by(Chat.updated_at.desc(), Chat.id).all()

    grouped: Dict[UUID, GuruHistory] = {}
    for chat in chats:
        if chat.guru_id is None:
            logger.warning(
                "Skipping conversation without a guru",
                extra={"conversation_id": str(chat.id)},
            )
            continue
        history = grouped.get(chat.guru_id)
        if history is None:
            history = GuruHistory(
                guru_id=chat.guru_id,
                guru_name=chat.guru.name if chat.guru else UNKNOWN_GURU_NAME,
            )
            grouped[chat.guru_id] = history
        history.conversations.append(
            ConversationSummary(
                conversation_id=chat.id,
                summary=summarize(chat),
                last_updated=chat.updated_at,
            )
        )

    return list(grouped.values())


def get_conversation(db: Session, user_id: UUID, conversation_id: str) -> ConversationResponse:
    chat = _user_chats(db, user_id).filter(Chat.id == parse_id(conversation_id, "Conversation")).first()
    if not chat:
        # Someone else's conversation looks exactly like a missing one
        raise NotFoundError("Conversation", conversation_id)
    return to_conversation_response(chat)


def get_conversation_for_guru(db: Session, user_id: UUID, guru_id: str) -> Optional[ConversationResponse]:
    chat = _user_chats(db, user_id).filter(Chat.guru_id == parse_id(guru_id, "Guru")).first()
    if not chat:
        logger.info("No existing conversation for guru", extra={"guru_id": guru_id})
        return None
    return to_conversation_response(chat)
