"""Project model"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from app.config import settings
from app.models.base import Base, utcnow


class Project(Base):
    """A board whose issues may be mirrored to one GitHub repository"""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)

    # "owner/repo"; sync is unavailable while unset
    github_repo = Column(String, nullable=True)
    # Sync watermark: start time of the last completed sync run
    github_synced_at = Column(DateTime, nullable=True)

    # Periodic sync configuration
    sync_enabled = Column(Boolean, default=True)
    sync_interval_minutes = Column(Integer, default=settings.default_sync_interval_minutes)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    issues = relationship("Issue", back_populates="project")

    def __repr__(self):
        return f"<Project(name='{self.name}', github_repo='{self.github_repo}')>"
