"""Bearer-аутентификация админских эндпоинтов."""

from typing import Optional

from fastapi import HTTPException, Request, status

from chatdesk.logger import root_logger
from chatdesk.storage.models import AdminSession
from chatdesk.storage.sessions import AdminSessionStore

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Токен из заголовка `Authorization: Bearer <token>`, None для пустого или чужого формата."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_admin(request: Request) -> AdminSession:
    """
    FastAPI dependency для защищенных эндпоинтов.

    Без заголовка хранилище сессий не трогается. Найденная сессия кладется
    в request.state.admin_session.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise _unauthorized("No token provided")

    sessions: AdminSessionStore = request.app.state.admin_sessions
    try:
        session = await sessions.lookup(token)
    except Exception as e:
        root_logger.error(f"Admin session lookup failed: {e}")
        raise _unauthorized("Authentication failed")

    if session is None:
        raise _unauthorized("Invalid or expired token")

    request.state.admin_session = session
    request.state.admin_token = token
    return session
