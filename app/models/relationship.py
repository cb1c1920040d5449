import enum
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, Index, Enum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base
from app.models.user import utcnow


class RelationshipType(str, enum.Enum):
    FOLLOW = "FOLLOW"
    REQUEST = "REQUEST"  # Pending follow against a private account
    BLOCK = "BLOCK"
    MUTE = "MUTE"


class Relationship(Base):
    """A directed edge between two accounts.

    The (from_id, to_id, type) triple is the natural key, so each pair of
    accounts holds at most one edge of each type per direction.
    """

    __tablename__ = "user_relationships"

    from_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    to_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    type: Mapped[RelationshipType] = mapped_column(
        Enum(RelationshipType, name="user_relationship_type"), primary_key=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("from_id <> to_id", name="ck_relationship_not_self"),
        Index("idx_relationship_to_type", "to_id", "type"),
        Index("idx_relationship_from_type", "from_id", "type"),
    )

    def __repr__(self) -> str:
        return f"<Relationship(from={self.from_id}, to={self.to_id}, type={self.type.value})>"
