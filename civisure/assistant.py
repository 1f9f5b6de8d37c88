"""
CiviSure - Legal Assistant

Thin wrapper around the Anthropic Messages API. The assistant answers
general legal-information questions under a fixed system prompt.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import anthropic

from civisure.config import settings
from civisure.errors import ServiceUnavailable, InternalError

logger = logging.getLogger(__name__)


LEGAL_ASSISTANT_PROMPT = """You are a helpful legal assistant for CiviSure, a public safety platform. Your role is to:

1. Provide general information about human rights and legal procedures
2. Guide users on how to file complaints and cases
3. Explain legal terminology in simple terms
4. Offer information about legal aid and resources
5. Help users understand their rights in various situations

Important guidelines:
- Always clarify that you provide general information, not legal advice
- Encourage users to consult with licensed attorneys for specific legal matters
- Be empathetic and supportive, especially for victims of crime
- Provide accurate, helpful information based on general legal principles
- If asked about specific cases, remind users to seek professional legal counsel
- Focus on human rights, criminal law basics, and legal procedures

Be concise, clear, and helpful. Use simple language that everyone can understand."""

NOT_CONFIGURED_MESSAGE = (
    "Chatbot service is not configured. "
    "Please set ANTHROPIC_API_KEY in environment variables."
)
INVALID_KEY_MESSAGE = "Invalid API key. Please check your Anthropic API configuration."
PROVIDER_FAILURE_MESSAGE = "Failed to get response from legal assistant. Please try again."


@dataclass
class AssistantReply:
    text: str
    conversation_id: Optional[str] = None


class LegalAssistant:
    """Sends a conversation to Claude and returns the reply text."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ):
        self.api_key = api_key
        self.model = model or settings.CHATBOT_MODEL
        self.max_tokens = max_tokens or settings.CHATBOT_MAX_TOKENS
        self._client: Optional[anthropic.AsyncAnthropic] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def reply(self, messages: List[dict]) -> AssistantReply:
        """
        Get the assistant's answer to the last user message.

        Args:
            messages: Alternating {"role", "content"} turns ending with the
                user's new message.

        Raises:
            ServiceUnavailable: no API key, or the provider rejected it
            InternalError: any other provider failure
        """
        if not self.configured:
            raise ServiceUnavailable(NOT_CONFIGURED_MESSAGE)

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=LEGAL_ASSISTANT_PROMPT,
                messages=messages,
            )
        except anthropic.AuthenticationError as e:
            logger.error(f"Anthropic rejected the API key: {e}")
            raise ServiceUnavailable(INVALID_KEY_MESSAGE)
        except anthropic.APIError as e:
            logger.error(f"Error calling Claude: {e}")
            raise InternalError(PROVIDER_FAILURE_MESSAGE)

        text = "".join(block.text for block in message.content if block.type == "text")
        return AssistantReply(text=text, conversation_id=message.id)


# Process-wide assistant configured from settings
legal_assistant = LegalAssistant(api_key=settings.ANTHROPIC_API_KEY)


def get_assistant() -> LegalAssistant:
    """Dependency that provides the legal assistant."""
    return legal_assistant
