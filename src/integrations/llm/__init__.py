"""
LLM provider factory and initialization.
"""

from functools import lru_cache

from src.config import settings
from src.integrations.llm.base import BaseLLM, ChatMessage, LLMResponse


def get_llm_provider(provider: str | None = None) -> BaseLLM:
    """
    Get LLM provider instance.

    Args:
        provider: Provider name ('gigachat')
                  If None, uses settings.llm_provider

    Returns:
        LLM provider instance

    Raises:
        ValueError: unknown provider or missing credentials
    """
    provider = provider or settings.llm_provider

    if provider == "gigachat":
        from src.integrations.llm.gigachat import GigaChatLLM
        return GigaChatLLM()
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")


@lru_cache(maxsize=1)
def get_default_llm() -> BaseLLM:
    """Get cached default LLM provider."""
    return get_llm_provider()


__all__ = [
    "BaseLLM",
    "ChatMessage",
    "LLMResponse",
    "get_llm_provider",
    "get_default_llm",
]
