"""
Admin Module.

One-time code login over Telegram, bearer sessions and the dashboard API.
"""

from .auth import require_admin
from .codes import OneTimeCodeManager
from .routes import router as admin_router

__all__ = ["OneTimeCodeManager", "admin_router", "require_admin"]
