from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.background import BackgroundTask
from uuid import UUID
import logging

from guruchat.db import get_db, get_session_factory
from guruchat.deps import get_chat_model, get_current_user_id
from guruchat.schemas import ChatRequest
from guruchat.services.chat_service import ChatGateway, ChatOutcome, last_user_turn, persist_outcome
from guruchat.services.guru_service import resolve_system_prompt
from guruchat.validation import raise_for_invalid, validate_chat_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def post_chat(
    body: ChatRequest,
    user_id: UUID = Depends(get_current_user_id),
    chat_model=Depends(get_chat_model),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Stream the guru's reply as plain text chunks.

    The user turn and the finished reply are appended to the (user, guru)
    conversation after the stream completes.
    """
    chat_input = raise_for_invalid(
        validate_chat_request(body.messages, body.guru_id),
        "Bad Request: Missing or invalid messages array",
    )
    resolved = await run_in_threadpool(resolve_system_prompt, db, chat_input.guru_id)

    outcome = ChatOutcome(
        user_id=user_id,
        guru_id=resolved.guru.id if resolved.guru else None,
        user_turn=last_user_turn(chat_input.messages),
    )
    logger.info(
        f"Streaming reply for {len(chat_input.messages)} messages",
        extra={"user_id": str(user_id), "guru_id": str(outcome.guru_id) if outcome.guru_id else None},
    )

    gateway = ChatGateway(chat_model)
    return StreamingResponse(
        gateway.stream_reply(resolved.system_prompt, chat_input.messages, outcome),
        media_type="text/plain; charset=utf-8",
        background=BackgroundTask(persist_outcome, session_factory, outcome),
    )
