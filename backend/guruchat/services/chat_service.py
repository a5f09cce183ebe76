"""
Chat gateway: stream a reply from the provider, then record the exchange.

The stream is handed to the client first. Persistence runs afterwards as a
background task and only for a reply the provider finished; a failed write
is logged and never reaches the client, who already has the text.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from guruchat.models import Chat, ChatMessage, MessageRole
from guruchat.utils.llm import chunk_text, to_langchain_messages
from guruchat.utils.retry import retry_on_conflict
from guruchat.validation import Turn

logger = logging.getLogger(__name__)


@dataclass
class ChatOutcome:
    """What one /api/chat request produced, filled in while streaming."""
    user_id: UUID
    guru_id: Optional[UUID]
    user_turn: Optional[str]
    chunks: List[str] = field(default_factory=list)
    completed: bool = False

    @property
    def text(self) -> str:
        return "".join(self.chunks)


def last_user_turn(turns: Sequence[Turn]) -> Optional[str]:
    if turns and turns[-1].role == MessageRole.USER:
        return turns[-1].content
    return None


class ChatGateway:
    def __init__(self, model):
        self.model = model

    async def stream_reply(self, system_prompt: str, turns: Sequence[Turn], outcome: ChatOutcome) -> AsyncIterator[str]:
        messages = to_langchain_messages(system_prompt, turns)
        upstream = self.model.astream(messages)
        try:
            async for chunk in upstream:
                text = chunk_text(chunk)
                if text:
                    outcome.chunks.append(text)
                    yield text
            outcome.completed = True
        except Exception:
            # Headers are already sent; all we can do is stop and not persist.
            logger.error(
                "Error during provider stream",
                exc_info=True,
                extra={"user_id": str(outcome.user_id)},
            )
        finally:
            # Runs on client disconnect too, so the provider stops being read.
            aclose = getattr(upstream, "aclose", None)
            if aclose is not None:
                await aclose()


@retry_on_conflict
def append_turns(db: Session, user_id: UUID, guru_id: UUID, turns: Sequence[Tuple[MessageRole, str]]) -> Chat:
    """Append turns to the (user, guru) conversation in one transaction, creating it if needed."""
    try:
        chat = (
            db.query(Chat)
            .filter(Chat.user_id == user_id, Chat.guru_id == guru_id)
            .with_for_update()
            .first()
        )
        if chat is None:
            chat = Chat(user_id=user_id, guru_id=guru_id)
            db.add(chat)
            db.flush()

        last_position = (
            db.query(func.max(ChatMessage.position))
            .filter(ChatMessage.chat_id == chat.id)
            .scalar()
        )
        next_position = 0 if last_position is None else last_position + 1
        for offset, (role, content) in enumerate(turns):
            db.add(ChatMessage(chat_id=chat.id, position=next_position + offset, role=role, content=content))

        chat.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(chat)
    return chat


def persist_outcome(session_factory: sessionmaker, outcome: ChatOutcome) -> None:
    """Background task run after the response has been streamed."""
    log_extra = {
        "user_id": str(outcome.user_id),
        "guru_id": str(outcome.guru_id) if outcome.guru_id else None,
    }
    if not outcome.completed:
        logger.warning("Reply incomplete, not saving chat history", extra=log_extra)
        return
    if outcome.user_turn is None:
        logger.error("Could not find last user message, not saving chat history", extra=log_extra)
        return
    if outcome.guru_id is None:
        logger.warning("Cannot save chat without a valid guru", extra=log_extra)
        return

    db = session_factory()
    try:
        chat = append_turns(
            db,
            outcome.user_id,
            outcome.guru_id,
            [(MessageRole.USER, outcome.user_turn), (MessageRole.ASSISTANT, outcome.text)],
        )
        logger.info("Chat history updated", extra={**log_extra, "conversation_id": str(chat.id)})
    except Exception:
        logger.error("Failed to save chat history", exc_info=True, extra=log_extra)
    finally:
        db.close()
