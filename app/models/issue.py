"""Issue model"""
import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.models.base import Base, utcnow


class IssueType(str, enum.Enum):
    """Issue type enumeration"""
    TASK = "TASK"
    STORY = "STORY"
    BUG = "BUG"
    DOCS = "DOCS"


class Priority(str, enum.Enum):
    """Priority enumeration"""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class IssueStatus(str, enum.Enum):
    """Board column"""
    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class GithubState(str, enum.Enum):
    """Last observed open/closed state of the linked GitHub issue"""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Issue(Base):
    """Local issue, optionally linked to a GitHub issue"""

    __tablename__ = "issues"
    __table_args__ = (
        # One local issue per GitHub issue within a project. NULLs (never pushed) don't collide.
        UniqueConstraint("project_id", "github_issue_number", name="uq_issues_project_github_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)

    # Content
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(IssueType), nullable=False, default=IssueType.TASK)
    priority = Column(Enum(Priority), nullable=False, default=Priority.MEDIUM)
    status = Column(Enum(IssueStatus), nullable=False, default=IssueStatus.BACKLOG)
    labels = Column(JSON, nullable=False, default=list)
    assignees = Column(JSON, nullable=False, default=list)

    # GitHub link
    github_issue_number = Column(Integer, nullable=True)
    github_state = Column(Enum(GithubState), nullable=False, default=GithubState.OPEN)
    # Set when pushing a local edit failed; cleared once GitHub has the edit.
    github_push_pending = Column(Boolean, nullable=False, default=False)

    # Timestamps; updated_at is the local-edit clock used for conflict detection
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="issues")
    activities = relationship("IssueActivity", back_populates="issue", order_by="IssueActivity.id")

    def __repr__(self):
        return f"<Issue(title='{self.title}', github_issue_number={self.github_issue_number})>"
