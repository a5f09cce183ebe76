from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, Union
from uuid import UUID

from guruchat.db import get_db
from guruchat.deps import get_current_user_id
from guruchat.schemas import ConversationEnvelope, HistorySummaryResponse
from guruchat.services.history_service import (
    get_conversation,
    get_conversation_for_guru,
    list_summaries,
)

router = APIRouter(prefix="/api", tags=["chats"])


@router.get("/chats", response_model=Union[ConversationEnvelope, HistorySummaryResponse])
def read_chats(
    conversation_id: Optional[str] = Query(None, alias="conversationId"),
    guru_id: Optional[str] = Query(None, alias="guruId"),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    History for the signed-in user.

    - ``conversationId``: one conversation with all its messages (404 if not owned)
    - ``guruId``: the conversation with that guru, or ``data: null`` if none yet
    - neither: summaries grouped by guru
    """
    if conversation_id:
        return ConversationEnvelope(data=get_conversation(db, user_id, conversation_id))

    if guru_id:
        conversation = get_conversation_for_guru(db, user_id, guru_id)
        if conversation is None:
            return ConversationEnvelope(data=None, message="No existing conversation")
        return ConversationEnvelope(data=conversation)

    return HistorySummaryResponse(data=list_summaries(db, user_id))
