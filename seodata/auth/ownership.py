"""
Website Ownership Guard

Every cache read or provider call is scoped to a website. Before either
happens the caller must prove the website exists and belongs to them.
There is no admin bypass: any doubt results in denial.
"""

import logging
from typing import Union
from uuid import UUID

from sqlalchemy.orm import Session

from seodata.database.models import Website

logger = logging.getLogger(__name__)


class AuthorizationError(Exception):
    """Base class for ownership failures. Never falls back to cached data."""

    status_code = 403

    def __init__(self, message: str, website_id=None):
        super().__init__(message)
        self.message = message
        self.website_id = website_id


class WebsiteNotFound(AuthorizationError):
    status_code = 404

    def __init__(self, website_id):
        super().__init__("Website not found", website_id)


class WebsiteAccessDenied(AuthorizationError):
    status_code = 403

    def __init__(self, website_id):
        super().__init__("Access denied to this website", website_id)


def _as_uuid(value: Union[UUID, str, None]) -> UUID:
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def verify_website_owner(
    db: Session,
    website_id: Union[UUID, str],
    user_id: Union[UUID, str],
) -> Website:
    """
    Return the website if it exists and is owned by user_id.

    Raises:
        WebsiteNotFound: No website with this id (malformed ids included)
        WebsiteAccessDenied: Website exists but belongs to someone else
    """
    try:
        website_uuid = _as_uuid(website_id)
    except (TypeError, ValueError):
        raise WebsiteNotFound(website_id)

    website = db.query(Website).filter(Website.id == website_uuid).first()

    if website is None:
        raise WebsiteNotFound(website_id)

    try:
        owner_matches = website.user_id == _as_uuid(user_id)
    except (TypeError, ValueError):
        owner_matches = False

    if not owner_matches:
        logger.warning(f"User {user_id} denied access to website {website_id}")
        raise WebsiteAccessDenied(website_id)

    return website
