"""FastAPI routes for the admin panel API."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from chatdesk.admin.auth import require_admin
from chatdesk.admin.codes import OneTimeCodeManager
from chatdesk.admin.models import (
    DashboardResponse,
    DashboardStats,
    RequestCodeRequest,
    RequestCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from chatdesk.bot.notifier import AdminNotifier
from chatdesk.logger import root_logger
from chatdesk.storage.analytics import AnalyticsCounters
from chatdesk.storage.clock import date_key, now_ms
from chatdesk.storage.messages import MessageLog
from chatdesk.storage.models import AdminSession
from chatdesk.storage.sessions import AdminSessionStore

log = root_logger.debug

router = APIRouter(prefix="/api/admin", tags=["Admin"])

DAY_MS = 24 * 60 * 60 * 1000


def _check_admin_identity(request: Request, telegram_id: str) -> AdminNotifier:
    """403 для чужого Telegram ID, 503 если бот не настроен."""
    if telegram_id != request.app.state.admin_telegram_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized Telegram ID")

    notifier: AdminNotifier | None = request.app.state.admin_notifier
    if notifier is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Telegram service unavailable")
    return notifier


@router.post("/request-code", response_model=RequestCodeResponse)
async def request_code(payload: RequestCodeRequest, request: Request):
    """
    Send a one-time login code to the admin through the Telegram bot.
    """
    notifier = _check_admin_identity(request, payload.telegramId)
    codes: OneTimeCodeManager = request.app.state.login_codes

    code = codes.issue(payload.telegramId)
    sent = await notifier.send_auth_code(payload.telegramId, code, ttl_minutes=codes.ttl_ms / 60000)
    return RequestCodeResponse(success=sent, message="Code sent" if sent else "Failed to send code")


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code(payload: VerifyCodeRequest, request: Request):
    """
    Exchange a valid login code for a bearer token.
    """
    _check_admin_identity(request, payload.telegramId)
    codes: OneTimeCodeManager = request.app.state.login_codes

    if not codes.verify(payload.telegramId, payload.code):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired code")

    sessions: AdminSessionStore = request.app.state.admin_sessions
    issued = await sessions.create(payload.telegramId, ttl_ms=request.app.state.session_ttl_ms)
    root_logger.info(f"Admin {payload.telegramId} logged in")
    return VerifyCodeResponse(success=True, token=issued.token, expiresAt=issued.expiresAt)


@router.post("/logout")
async def logout(request: Request, session: AdminSession = Depends(require_admin)):
    """Revoke the bearer token used for this request."""
    sessions: AdminSessionStore = request.app.state.admin_sessions
    revoked = await sessions.revoke(request.state.admin_token)
    log(f"👋 Admin {session.telegramId} logged out")
    return {"success": revoked}


@router.get("/dashboard", response_model=DashboardResponse, response_model_exclude_none=True)
async def get_dashboard(request: Request, session: AdminSession = Depends(require_admin)):
    """
    Today's counters, weekly total and the conversations active recently.
    """
    analytics: AnalyticsCounters = request.app.state.analytics
    messages: MessageLog = request.app.state.message_log

    now = now_ms()
    today = date_key(now)
    try:
        today_stats = await analytics.for_date(today)
        week_total = await analytics.weekly_total(date_key(now - 6 * DAY_MS), today)
        active_chats = await messages.active_conversations(now - request.app.state.active_window_ms)
        total_messages = await messages.count()
    except Exception as e:
        root_logger.error(f"Dashboard error: {e}")
        raise HTTPException(status_code=500, detail="Could not fetch dashboard data")

    return DashboardResponse(
        stats=DashboardStats(
            today=today_stats,
            week=week_total,
            activeConversations=len(active_chats),
            totalConversations=total_messages,
        ),
        activeChats=active_chats,
    )
