"""GitHub repository identifiers ("owner/repo")"""

import re
from dataclasses import dataclass

from app.services.errors import SyncConfigError

_REPO_RE = re.compile(r"^(?P<owner>[A-Za-z0-9_.-]+)/(?P<name>[A-Za-z0-9_.-]+)$")


@dataclass(frozen=True)
class RepoIdentity:
    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "RepoIdentity":
        """Parse "owner/repo", raising SyncConfigError when malformed."""
        m = _REPO_RE.match((value or "").strip())
        if not m:
            raise SyncConfigError(f"Invalid GitHub repo format {value!r}. Use owner/repo")
        return cls(owner=m.group("owner"), name=m.group("name"))

    @property
    def path(self) -> str:
        """URL path prefix for REST calls."""
        return f"/repos/{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"
