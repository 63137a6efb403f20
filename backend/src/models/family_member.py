"""
FamilyMember model.

Dynamic member records that replaced the fixed five-slot legacy roles.
A member may claim one legacy role so that events still referencing the
role identifier resolve to the member.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class MemberType(enum.Enum):
    """Kind of household member."""
    PARENT = "parent"
    KID = "kid"
    HELPER = "helper"


class FamilyMember(Base, GuidMixin):
    """
    Household member model.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (mem_xxx, inherited from GuidMixin)
        household_id: Owning household
        name: Display name used in feed descriptions
        member_type: parent, kid or helper
        legacy_role: Optional legacy role identifier claimed by this member
        display_order: Ordering in member lists
        is_active: Inactive members are ignored for name resolution

    Constraints:
        - legacy_role unique per household
    """

    __tablename__ = "family_members"

    GUID_PREFIX = "mem"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(
        Integer,
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(255), nullable=False)
    member_type = Column(String(20), nullable=False, default=MemberType.KID.value)
    legacy_role = Column(String(20), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    household = relationship("Household", back_populates="members")

    __table_args__ = (
        UniqueConstraint("household_id", "legacy_role", name="uq_family_members_legacy_role"),
    )

    def __repr__(self) -> str:
        return (
            f"<FamilyMember(id={self.id}, name='{self.name}', "
            f"type={self.member_type}, legacy_role={self.legacy_role})>"
        )
