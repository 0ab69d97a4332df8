"""
Base interface for LLM providers.
Allows easy switching between providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    """One message of a chat completion request."""

    role: Role
    content: str


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    tokens_used: int | None = None
    model: str | None = None


class BaseLLM(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 300,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """
        Run a chat completion.

        Args:
            messages: Conversation, system message first
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0-1)

        Returns:
            LLMResponse with generated content
        """
        pass

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """Single-prompt convenience wrapper around complete()."""
        messages = []
        if system_prompt:
            messages.append(ChatMessage(role="system", content=system_prompt))
        messages.append(ChatMessage(role="user", content=prompt))
        return await self.complete(messages, max_tokens=max_tokens, temperature=temperature)

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        pass
