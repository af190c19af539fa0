"""
User Synchronization

Syncs user data from a verified JWT to the local database on each access.
"""

import logging
from typing import Dict, Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from seodata.auth.models import User
from seodata.auth.jwt import JWTError, extract_user_info
from seodata.utils.time import utcnow

logger = logging.getLogger(__name__)


def sync_user_from_token(db: Session, jwt_payload: Dict[str, Any]) -> User:
    """
    Sync user from a verified JWT payload to the local database.

    Creates the user on first access, updates it on subsequent accesses.

    Raises:
        JWTError: If the sub claim is not a UUID
    """
    user_info = extract_user_info(jwt_payload)
    try:
        user_id = UUID(str(user_info["id"]))
    except ValueError:
        raise JWTError("Token 'sub' claim is not a valid user ID")

    email = user_info["email"] or f"{user_id}@users.local"
    now = utcnow()

    user = get_user_by_id(db, user_id)

    if user is None:
        logger.info(f"Creating new user: {email}")
        user = User(
            id=user_id,
            email=email,
            full_name=user_info.get("full_name"),
            is_active=True,
            last_sign_in_at=now,
            synced_at=now,
        )
        db.add(user)
    else:
        user.email = email
        user.full_name = user_info.get("full_name") or user.full_name
        user.last_sign_in_at = now
        user.synced_at = now

    db.commit()
    db.refresh(user)
    return user


def get_user_by_id(db: Session, user_id: UUID) -> Optional[User]:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()
