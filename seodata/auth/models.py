"""
Authentication Models

Local mirror of identity-provider users. The id matches the token's sub claim.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Index, Uuid

from seodata.database.models import Base
from seodata.utils.time import utcnow


class User(Base):
    """Local user record synced from the bearer token on each request."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True)

    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255))

    is_active = Column(Boolean, default=True, nullable=False)

    last_sign_in_at = Column(DateTime)
    synced_at = Column(DateTime, default=utcnow)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_user_email", "email"),
    )

    def __repr__(self):
        return f"<User {self.email}>"
