"""API routes"""

from app.api import github, sync

__all__ = ["github", "sync"]
