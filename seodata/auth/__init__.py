"""
Authentication and Authorization Module

Bearer-token authentication plus website ownership enforcement:
- JWTs are validated against JWT_SECRET (HS256)
- Users are synced to the local database on each access
- Every website-scoped request passes the ownership guard first

Usage:
    @router.post("/overview")
    async def overview(
        request: OverviewRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        website = require_owned_website(db, request.websiteId, current_user)
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import verify_token, extract_user_info, JWTError
from .models import User
from .sync import sync_user_from_token, get_user_by_id
from .ownership import (
    AuthorizationError,
    WebsiteNotFound,
    WebsiteAccessDenied,
    verify_website_owner,
)
from .dependencies import get_current_user, require_owned_website

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "verify_token",
    "extract_user_info",
    "JWTError",
    "User",
    "sync_user_from_token",
    "get_user_by_id",
    "AuthorizationError",
    "WebsiteNotFound",
    "WebsiteAccessDenied",
    "verify_website_owner",
    "get_current_user",
    "require_owned_website",
]
