from typing import Any, Iterable, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from guruchat.models import MessageRole

_MESSAGE_TYPES = {
    MessageRole.USER: HumanMessage,
    MessageRole.ASSISTANT: AIMessage,
    MessageRole.SYSTEM: SystemMessage,
}


def build_chat_model(api_key: str, model: str, temperature: float, timeout: float, max_retries: int) -> ChatOpenAI:
    return ChatOpenAI(
        api_key=api_key,
        model=model,
        temperature=temperature,
        timeout=timeout,
        max_retries=max_retries,
        streaming=True,
    )


def to_langchain_messages(system_prompt: str, turns: Iterable[Any]) -> List[BaseMessage]:
    """System prompt first, then the conversation in order."""
    messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]
    for turn in turns:
        messages.append(_MESSAGE_TYPES[turn.role](content=turn.content))
    return messages


def chunk_text(chunk: Any) -> str:
    """Text of a streamed chunk; content may be a string or a list of parts."""
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else part.get("text", "")
            for part in content
            if isinstance(part, (str, dict))
        )
    return ""
