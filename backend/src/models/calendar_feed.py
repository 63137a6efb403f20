"""
CalendarFeed model for token-addressed calendar subscriptions.

External calendar applications poll a feed URL carrying an opaque bearer
token. The plain token is only shown once at creation time; the SHA-256
hash is stored for lookup and revocation.

Design Rationale:
- token_hash is unique and indexed for constant-time lookup per request
- token_prefix (first 8 chars) lets users recognize feeds in the UI
- filter_member restricts the feed to occurrences where that member drives
- Soft revocation via is_active=False keeps the audit trail
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class CalendarFeed(Base, GuidMixin):
    """
    Calendar feed token model.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (fed_xxx, inherited from GuidMixin)
        household_id: Household whose calendar the feed publishes
        name: Display name (X-WR-CALNAME and download filename)
        token_hash: SHA-256 hex digest of the bearer token
        token_prefix: First characters of the token for identification
        filter_member: Optional raw member reference used as responsible-person filter
        is_active: False once revoked
        last_accessed_at: Last time a calendar application fetched the feed
    """

    __tablename__ = "calendar_feeds"

    GUID_PREFIX = "fed"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(
        Integer,
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(100), nullable=False)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    token_prefix = Column(String(8), nullable=False)
    filter_member = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_accessed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    household = relationship("Household", back_populates="feeds")

    def __repr__(self) -> str:
        return (
            f"<CalendarFeed(id={self.id}, name='{self.name}', "
            f"prefix='{self.token_prefix}', active={self.is_active})>"
        )
