from datetime import datetime
from sqlalchemy import String, ForeignKey, UniqueConstraint, Enum as SQLAEnum
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, new_id, utcnow
from .enums import FamilyRole
from homeplanner.db.types import UTCDateTime

class Family(Base):
    """Owning group for events, members and children."""

    __tablename__ = "families"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    def __repr__(self):
        return f"<Family(id={self.id}, name={self.name})>"

class FamilyMember(Base):
    __tablename__ = "family_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    family_id: Mapped[str] = mapped_column(ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[FamilyRole] = mapped_column(
        SQLAEnum(FamilyRole, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=FamilyRole.MEMBER,
        nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    __table_args__ = (
        UniqueConstraint('family_id', 'user_id', name='uq_family_member'),
    )

    def __repr__(self):
        return f"<FamilyMember(family_id={self.family_id}, user_id={self.user_id}, role={self.role})>"

class Child(Base):
    __tablename__ = "children"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    family_id: Mapped[str] = mapped_column(ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    def __repr__(self):
        return f"<Child(id={self.id}, name={self.name})>"
