"""
LangChain-based LLM Client

LangChain wrapper around Google's Gemini model, used to generate quiz
content. The rest of the application only sees plain dicts: messages go in
as {"role", "content"} and a completion comes back as
{"content", "tokens_used", "model", "finish_reason"}.
"""

import asyncio
import logging
from typing import List, Dict, Any, Optional

from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.messages import (
    BaseMessage,
    HumanMessage,
    AIMessage,
    SystemMessage,
)

from app.core.config import settings

logger = logging.getLogger(__name__)


class LLMConfigurationError(Exception):
    pass


# ============================================================
# 1: MODEL INITIALIZATION
# ============================================================

def get_llm(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    model: Optional[str] = None,
) -> ChatGoogleGenerativeAI:
    """
    Create a configured Gemini chat model.

    Args:
        temperature: Override default temperature
        max_tokens: Override default max tokens
        model: Override the configured model name

    Returns:
        Configured ChatGoogleGenerativeAI instance
    """
    if not settings.GEMINI_API_KEY:
        raise LLMConfigurationError(
            "GEMINI_API_KEY not set. "
            "Get your key at https://aistudio.google.com/apikey"
        )

    return ChatGoogleGenerativeAI(
        model=model or settings.GEMINI_MODEL,
        google_api_key=settings.GEMINI_API_KEY,
        temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or settings.LLM_MAX_TOKENS,
    )


# ============================================================
# 2: MESSAGE CONVERSION
# ============================================================

def convert_to_langchain_messages(
    messages: List[Dict[str, str]]
) -> List[BaseMessage]:
    """Convert {"role", "content"} dicts to LangChain message objects."""
    langchain_messages = []

    for msg in messages:
        role = msg["role"]
        content = msg["content"]

        if role == "system":
            langchain_messages.append(SystemMessage(content=content))
        elif role == "user":
            langchain_messages.append(HumanMessage(content=content))
        elif role in ("assistant", "model"):
            langchain_messages.append(AIMessage(content=content))
        else:
            logger.warning(f"Unknown message role: {role}")
            langchain_messages.append(HumanMessage(content=content))

    return langchain_messages


def _token_usage(response) -> int:
    if getattr(response, "usage_metadata", None):
        return response.usage_metadata.get("total_tokens", 0)
    usage = getattr(response, "response_metadata", {}).get("usage_metadata", {})
    return usage.get("prompt_token_count", 0) + usage.get("candidates_token_count", 0)


# ============================================================
# 3: ASYNC CHAT COMPLETION
# ============================================================

async def chat_completion(
    messages: List[Dict[str, str]],
    system_prompt: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Get a chat completion (non-streaming).

    Args:
        messages: Conversation history as dicts
        system_prompt: System instructions
        temperature: Creativity level
        max_tokens: Max response length
        model: Model name override
        timeout: Seconds before the call is cancelled

    Returns:
        Dict with content, tokens_used, model, finish_reason
    """
    llm = get_llm(temperature=temperature, max_tokens=max_tokens, model=model)

    langchain_messages = []
    if system_prompt:
        langchain_messages.append(SystemMessage(content=system_prompt))
    langchain_messages.extend(convert_to_langchain_messages(messages))

    try:
        response = await asyncio.wait_for(
            llm.ainvoke(langchain_messages),
            timeout=timeout or settings.LLM_TIMEOUT_SECONDS,
        )
    except Exception as e:
        logger.error(f"LangChain chat completion error: {e}")
        raise

    content = response.content if isinstance(response.content, str) else str(response.content)
    return {
        "content": content,
        "tokens_used": _token_usage(response),
        "model": model or settings.GEMINI_MODEL,
        "finish_reason": "stop",
    }
