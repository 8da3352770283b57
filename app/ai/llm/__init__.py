"""
LLM Module

Language model integration used for quiz generation.

Currently using Google Gemini through LangChain.
"""

from app.ai.llm.langchain_client import (
    LLMConfigurationError,
    chat_completion,
    get_llm,
)

__all__ = [
    "LLMConfigurationError",
    "chat_completion",
    "get_llm",
]
