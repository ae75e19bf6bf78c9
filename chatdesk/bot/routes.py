"""
Telegram webhook endpoint.
"""

from fastapi import APIRouter, HTTPException, Request

from chatdesk.bot.handler import CommandProcessor
from chatdesk.bot.tg import parse_update
from chatdesk.logger import root_logger
from chatdesk.settings import WEBHOOK_PATH

router = APIRouter(tags=["bot"])


@router.post(WEBHOOK_PATH)
async def handle_webhook_update(request: Request):
    """
    Handle incoming webhook updates from Telegram.

    The transport is trusted; commands are only answered for the admin ID.
    """
    processor: CommandProcessor | None = request.app.state.command_processor
    if processor is None:
        raise HTTPException(status_code=404, detail="Telegram bot is not configured")

    try:
        update = parse_update(await request.json())
        await processor.process_update(update)
    except Exception as e:
        root_logger.error(f"Telegram webhook error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process webhook")

    return {"ok": True}
