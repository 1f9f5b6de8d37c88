"""
CiviSure - Chatbot Conversations

Relays a user's message (plus the client-held conversation) to the legal
assistant and keeps a per-user log of exchanges.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.assistant import LegalAssistant, AssistantReply
from civisure.auth import AuthContext
from civisure.config import settings
from civisure.errors import InvalidInput
from civisure.models.chat import ChatConversation
from civisure.schemas import ChatTurn
from civisure.timestamps import now_utc

logger = logging.getLogger(__name__)

CHAT_ROLES = ("user", "assistant")

SUGGESTIONS = [
    "What are my basic human rights?",
    "How do I file an FIR (First Information Report)?",
    "What should I do if I'm a victim of theft?",
    "What is the process for filing a complaint against police misconduct?",
    "How can I get legal aid if I can't afford a lawyer?",
    "What are my rights during police questioning?",
    "How do I report domestic violence?",
    "What is the difference between bailable and non-bailable offenses?",
    "What are consumer rights and how do I file a complaint?",
    "How can I check the status of my case?",
]


def build_messages(history: List[ChatTurn], message: str, window: Optional[int] = None) -> List[dict]:
    """Conversation turns to forward, oldest first, ending with the new message."""
    for turn in history:
        if turn.role not in CHAT_ROLES:
            raise InvalidInput("Conversation history roles must be 'user' or 'assistant'")

    turns = [{"role": turn.role, "content": turn.content} for turn in history]
    if window is not None:
        turns = turns[-window:] if window > 0 else []
    turns.append({"role": "user", "content": message})
    return turns


async def send_message(
    db: AsyncSession,
    auth: AuthContext,
    assistant: LegalAssistant,
    message: Optional[str],
    history: Optional[List[ChatTurn]] = None,
) -> AssistantReply:
    """Ask the assistant and record the exchange. Nothing is stored on failure."""
    if not message or not message.strip():
        raise InvalidInput("Message is required")

    messages = build_messages(history or [], message, settings.CHAT_HISTORY_WINDOW)
    reply = await assistant.reply(messages)

    db.add(ChatConversation(
        user_id=auth.user_id,
        message=message,
        response=reply.text,
        created_at=now_utc(),
    ))
    await db.commit()

    logger.info(f"Legal assistant answered user {auth.user_id} ({len(messages)} turns)")
    return reply


async def get_history(db: AsyncSession, auth: AuthContext, limit: int = 50) -> List[dict]:
    result = await db.execute(
        select(ChatConversation)
        .where(ChatConversation.user_id == auth.user_id)
        .order_by(ChatConversation.created_at.desc(), ChatConversation.id.desc())
        .limit(limit)
    )
    return [
        {
            "id": c.id,
            "message": c.message,
            "response": c.response,
            "created_at": c.created_at,
        }
        for c in result.scalars().all()
    ]


async def clear_history(db: AsyncSession, auth: AuthContext) -> int:
    result = await db.execute(
        delete(ChatConversation).where(ChatConversation.user_id == auth.user_id)
    )
    await db.commit()
    logger.info(f"Cleared {result.rowcount} chat exchanges for user {auth.user_id}")
    return result.rowcount
