"""Sync log model"""
from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, Enum
from sqlalchemy.orm import relationship
import enum
from app.models.base import Base, utcnow


class SyncStatus(str, enum.Enum):
    """Sync run outcome"""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncLog(Base):
    """Log of sync runs"""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)

    status = Column(Enum(SyncStatus), nullable=False)
    message = Column(Text, nullable=True)
    details = Column(Text, nullable=True)  # JSON summary

    created_at = Column(DateTime, default=utcnow, index=True)

    project = relationship("Project")

    def __repr__(self):
        return f"<SyncLog(project_id={self.project_id}, status={self.status})>"
