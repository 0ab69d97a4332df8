"""
GigaChat LLM provider implementation.
Uses Sber's GigaChat API (free tier available).
"""

from gigachat import GigaChat
from gigachat.models import Chat, Messages, MessagesRole

from src.config import settings
from src.integrations.llm.base import BaseLLM, ChatMessage, LLMResponse

ROLES = {
    "system": MessagesRole.SYSTEM,
    "user": MessagesRole.USER,
    "assistant": MessagesRole.ASSISTANT,
}


class GigaChatLLM(BaseLLM):
    """GigaChat LLM provider."""

    def __init__(
        self,
        credentials: str | None = None,
        scope: str | None = None,
        model: str | None = None,
    ):
        self.credentials = credentials or settings.gigachat_credentials
        self.scope = scope or settings.gigachat_scope
        self.model = model or settings.gigachat_model

        if not self.credentials:
            raise ValueError(
                "GigaChat credentials not provided. "
                "Set GIGACHAT_CREDENTIALS in .env file."
            )

    def _get_client(self) -> GigaChat:
        """Create GigaChat client."""
        return GigaChat(
            credentials=self.credentials,
            scope=self.scope,
            model=self.model,
            verify_ssl_certs=False,
        )

    async def complete(
        self,
        messages: list[ChatMessage],
        max_tokens: int = 300,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Run a chat completion using GigaChat."""
        payload = Chat(
            messages=[Messages(role=ROLES[m.role], content=m.content) for m in messages],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        async with self._get_client() as client:
            response = await client.achat(payload)

        return LLMResponse(
            content=response.choices[0].message.content if response.choices else "",
            tokens_used=response.usage.total_tokens if response.usage else None,
            model=response.model,
        )

    @property
    def name(self) -> str:
        return "gigachat"
