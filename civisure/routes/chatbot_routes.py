"""
CiviSure - Legal Assistant Chatbot Routes
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.database import get_db
from civisure.assistant import LegalAssistant, get_assistant
from civisure.auth import AuthContext, require_auth
from civisure.chatbot import send_message, get_history, clear_history, SUGGESTIONS
from civisure.schemas import ChatMessageRequest


router = APIRouter()


@router.post("/message")
async def message(
    body: ChatMessageRequest,
    auth: AuthContext = Depends(require_auth),
    assistant: LegalAssistant = Depends(get_assistant),
    db: AsyncSession = Depends(get_db),
):
    """Ask the legal assistant a question."""
    reply = await send_message(db, auth, assistant, body.message, body.conversation_history)
    return {
        "success": True,
        "response": reply.text,
        "conversation_id": reply.conversation_id,
    }


@router.get("/history")
async def history(
    limit: int = Query(50, ge=1),
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    conversations = await get_history(db, auth, limit=limit)
    return {"success": True, "conversations": conversations}


@router.delete("/history")
async def delete_history(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await clear_history(db, auth)
    return {"success": True, "message": "Chat history cleared"}


@router.get("/suggestions")
async def suggestions():
    return {"success": True, "suggestions": SUGGESTIONS}
