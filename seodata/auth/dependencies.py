"""
FastAPI Authentication Dependencies

Provides dependency injection for authentication and website ownership.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from seodata.database.session import get_db
from seodata.database.models import Website
from seodata.auth.models import User
from seodata.auth.jwt import verify_token, JWTError
from seodata.auth.sync import sync_user_from_token
from seodata.auth.config import get_auth_config
from seodata.auth.ownership import verify_website_owner

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user.

    Validates JWT, syncs user to local DB, returns User object.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 403: If user is disabled
    """
    config = get_auth_config()

    # If auth is disabled (local dev), return a dev user
    if not config.auth_enabled:
        return _get_dev_user(db)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_token(credentials.credentials, config)
        user = sync_user_from_token(db, payload)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


def require_owned_website(db: Session, website_id, current_user: User) -> Website:
    """
    Ownership check for endpoints that take websiteId in the request body.

    Must run before any cache or provider work. Raises the AuthorizationError
    subclasses, which the app turns into 404/403 responses.
    """
    return verify_website_owner(db, website_id, current_user.id)


def _get_dev_user(db: Session) -> User:
    """
    Get or create a development user when auth is disabled.

    The dev user is an ordinary user: it only sees websites it owns.
    """
    dev_email = "dev@seodata.local"
    user = db.query(User).filter(User.email == dev_email).first()

    if not user:
        user = User(
            id=uuid4(),
            email=dev_email,
            full_name="Development User",
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    return user
