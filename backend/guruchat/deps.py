from fastapi import Request
from functools import lru_cache
from uuid import UUID
import logging

from guruchat.auth import verify_session_token
from guruchat.config import settings
from guruchat.exceptions import ServerConfigurationError
from guruchat.utils.cookie_auth import get_token_from_cookie
from guruchat.utils.llm import build_chat_model

logger = logging.getLogger(__name__)


def get_current_user_id(request: Request) -> UUID:
    """Authenticate from the session cookie; raises AuthenticationError (401)."""
    claims = verify_session_token(get_token_from_cookie(request))
    request.state.user_id = str(claims.user_id)
    return claims.user_id


@lru_cache()
def _cached_chat_model(api_key: str, model: str, temperature: float, timeout: float, max_retries: int):
    logger.info(f"Initializing chat model {model}")
    return build_chat_model(api_key, model, temperature, timeout, max_retries)


def get_chat_model():
    """The streaming chat model; the chat route is unavailable without a provider key."""
    if not settings.OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY is not configured")
        raise ServerConfigurationError("Server configuration error: Missing AI API key")
    return _cached_chat_model(
        settings.OPENAI_API_KEY,
        settings.OPENAI_MODEL,
        settings.LLM_TEMPERATURE,
        settings.LLM_TIMEOUT_SECONDS,
        settings.LLM_MAX_RETRIES,
    )
