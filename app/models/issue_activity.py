"""Issue activity model"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Enum
from sqlalchemy.orm import relationship
import enum
from app.models.base import Base, utcnow


class ActivityAction(str, enum.Enum):
    """Activity action enumeration"""
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    EDITED = "EDITED"
    SYNCED = "SYNCED"


class IssueActivity(Base):
    """Append-only audit trail of field-level changes"""

    __tablename__ = "issue_activities"

    id = Column(Integer, primary_key=True, index=True)
    issue_id = Column(Integer, ForeignKey("issues.id"), nullable=False, index=True)

    action = Column(Enum(ActivityAction), nullable=False)
    field = Column(String, nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)

    issue = relationship("Issue", back_populates="activities")

    def __repr__(self):
        return f"<IssueActivity(action={self.action}, field={self.field})>"
