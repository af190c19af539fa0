"""
SQLAlchemy Models for the SEO data cache

Two tables live here:
1. websites - user-owned sites whose SEO data is cached
2. seo_cache_entries - one row per (website, dimension, secondary key)

The users table is defined in seodata.auth.models on the same Base.
"""

from uuid import uuid4

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Index, UniqueConstraint, JSON, Uuid
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

from seodata.utils.time import utcnow

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Secondary key used by rows that have no secondary dimension
NO_SECONDARY_KEY = ""


class Website(Base):
    """A website registered by a user. Only its owner may read its SEO data."""
    __tablename__ = "websites"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    domain = Column(String(255), nullable=False)
    name = Column(String(255))

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    cache_entries = relationship(
        "SeoCacheEntry", back_populates="website", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_website_user", "user_id"),
    )

    def __repr__(self):
        return f"<Website {self.domain}>"


class SeoCacheEntry(Base):
    """
    Cached provider data for one dimension of one website.

    Rows are created on the first successful provider fetch and updated in
    place on every later refresh. data_updated_at records when the provider
    produced the payload; cache_expires_at is data_updated_at + TTL.
    """
    __tablename__ = "seo_cache_entries"

    id = Column(Uuid, primary_key=True, default=uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)

    # overview, keywords, competitors, intersection, historical-rank, relevant-pages
    dimension = Column(String(50), nullable=False)

    # location code, competitor domain or snapshot date; "" when none
    secondary_key = Column(String(255), nullable=False, default=NO_SECONDARY_KEY)

    payload = Column(JSONType, nullable=False)

    data_updated_at = Column(DateTime, nullable=False)
    cache_expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    website = relationship("Website", back_populates="cache_entries")

    __table_args__ = (
        UniqueConstraint("website_id", "dimension", "secondary_key", name="uq_seo_cache_key"),
        Index("idx_seo_cache_freshness", "website_id", "dimension", "cache_expires_at"),
    )

    def __repr__(self):
        return f"<SeoCacheEntry {self.dimension}:{self.secondary_key} website={self.website_id}>"
