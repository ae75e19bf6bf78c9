"""FastAPI routes for Chat API."""

import re
import time

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from chatdesk.chat.escalation import ERROR_REPLY, EscalationRouter
from chatdesk.chat.models import ChatReply, ChatSendRequest, HistoryResponse, PollResponse
from chatdesk.logger import root_logger
from chatdesk.storage.messages import MessageLog
from chatdesk.storage.models import Role

log = root_logger.debug

router = APIRouter(prefix="/api/chat", tags=["Chat"])

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_cursor(value: str | None) -> int:
    """Ведущее целое из строки ("1.5" -> 1, "12abc" -> 12), иначе 0."""
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else 0

# Services are injected from app.state in route handlers


@router.post("/send", response_model=ChatReply)
async def send_chat_message(payload: ChatSendRequest, request: Request):
    """
    Send a message in a chat.

    Stores the user turn, answers it from the knowledge base, the language
    model or the default reply, and stores the answer.
    """
    escalation: EscalationRouter = request.app.state.escalation_router
    try:
        return await escalation.process(payload.clientId, payload.message)
    except Exception as e:
        root_logger.error(f"Chat processing error: {e}", exc_info=True)
        # виджет всегда должен получить текст для показа
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "reply": ERROR_REPLY,
                "role": Role.SYSTEM.value,
                "confidence": 0.0,
                "timestamp": int(time.time() * 1000),
            },
        )


@router.get("/history/{client_id}", response_model=HistoryResponse, response_model_exclude_none=True)
async def get_chat_history(client_id: str, request: Request):
    """Full transcript of a conversation."""
    messages: MessageLog = request.app.state.message_log
    try:
        history = await messages.by_client(client_id)
    except Exception as e:
        root_logger.error(f"History error for {client_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Could not fetch history"})
    return HistoryResponse(history=history)


@router.get("/poll/{client_id}", response_model=PollResponse, response_model_exclude_none=True)
async def poll_chat_messages(client_id: str, request: Request, after: str | None = None):
    """
    Messages newer than `after` (milliseconds).

    `lastTimestamp` is the newest returned timestamp, or `after` itself when
    nothing new arrived.
    """
    messages: MessageLog = request.app.state.message_log
    after_timestamp = parse_cursor(after)

    try:
        new_messages = await messages.after(client_id, after_timestamp)
    except Exception as e:
        root_logger.error(f"Poll error for {client_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Could not fetch new messages"})

    last_timestamp = max((m.timestamp for m in new_messages), default=after_timestamp)
    return PollResponse(newMessages=new_messages, lastTimestamp=last_timestamp)
