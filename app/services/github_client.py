"""GitHub REST API client wrapper"""
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from app.services.rate_limit import RateLimitGuard, ThrottleInfo
from app.services.repo_identity import RepoIdentity

logger = logging.getLogger(__name__)

_NEXT_LINK_RE = re.compile(r'<(?P<url>[^>]+)>;\s*rel="next"')


class GitHubAPIError(Exception):
    """Non-2xx response (or transport failure) from the GitHub API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.errors = list(errors or [])

    @property
    def is_already_exists(self) -> bool:
        """422 with an already_exists validation error (e.g. duplicate label)."""
        if self.status_code != 422:
            return False
        return any(str(e.get("code", "")).lower() == "already_exists" for e in self.errors)

    def throttle_info(self) -> ThrottleInfo:
        return ThrottleInfo(self.status_code, self.headers, self.message)


def _throttle_of(exc: BaseException) -> Optional[ThrottleInfo]:
    if isinstance(exc, GitHubAPIError):
        return exc.throttle_info()
    return None


def parse_github_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into UTC tz-naive datetimes."""
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class RemoteIssue:
    """The subset of a GitHub issue the sync engine reads."""

    number: int
    title: str
    body: Optional[str] = None
    state: str = "open"
    labels: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    updated_at: Optional[datetime] = None
    is_pull_request: bool = False

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteIssue":
        labels = []
        for label in data.get("labels") or []:
            # Labels come back as objects, but the API also accepts/echoes bare names.
            name = label.get("name") if isinstance(label, dict) else label
            if name:
                labels.append(name)
        assignees = [a.get("login") for a in data.get("assignees") or [] if a.get("login")]
        return cls(
            number=int(data["number"]),
            title=data.get("title") or "",
            body=data.get("body"),
            state=(data.get("state") or "open").lower(),
            labels=labels,
            assignees=assignees,
            updated_at=parse_github_datetime(data.get("updated_at")),
            # The issues endpoint also returns pull requests.
            is_pull_request="pull_request" in data,
        )


class GitHubClient:
    """Wrapper for GitHub REST operations on one account's token"""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        max_wait_seconds: float = 60.0,
        margin_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize GitHub client"""
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )
        self.guard = RateLimitGuard(
            _throttle_of,
            max_wait_seconds=max_wait_seconds,
            margin_seconds=margin_seconds,
            sleep=sleep,
        )

    @classmethod
    def from_settings(cls, access_token: str) -> "GitHubClient":
        from app.config import settings

        return cls(
            access_token,
            base_url=settings.github_api_url,
            timeout=settings.github_timeout_seconds,
            max_wait_seconds=settings.rate_limit_max_wait_seconds,
            margin_seconds=settings.rate_limit_margin_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise GitHubAPIError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            message = f"HTTP {response.status_code}"
            errors: List[Dict[str, Any]] = []
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    if payload.get("message"):
                        message = f"{message}: {payload['message']}"
                    errors = [e for e in payload.get("errors") or [] if isinstance(e, dict)]
            except ValueError:
                if response.text:
                    message = f"{message}: {response.text[:200]}"
            raise GitHubAPIError(
                message,
                status_code=response.status_code,
                headers=dict(response.headers),
                errors=errors,
            )
        return response

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send one request through the rate-limit guard."""
        return self.guard.call(
            lambda: self._send(method, url, **kwargs),
            description=f"{method} {url}",
        )

    def _paginate(self, url: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, Any]] = params
        while next_url:
            response = self._request("GET", next_url, params=next_params)
            items.extend(response.json())
            m = _NEXT_LINK_RE.search(response.headers.get("link", ""))
            # The next link already carries the query string.
            next_url = m.group("url") if m else None
            next_params = None
        return items

    def get_repository(self, repo: RepoIdentity) -> Dict[str, Any]:
        """Get repository metadata (used to validate access)"""
        return self._request("GET", repo.path).json()

    def list_issues(self, repo: RepoIdentity) -> List[RemoteIssue]:
        """Get all issues (open and closed) from a repository"""
        try:
            # GitHub defaults to state=open; closed issues are needed for state sync.
            data = self._paginate(
                f"{repo.path}/issues",
                {"state": "all", "per_page": 100, "sort": "created", "direction": "asc"},
            )
        except GitHubAPIError as e:
            logger.error(f"Failed to list issues for {repo}: {e}")
            raise
        return [RemoteIssue.from_api(item) for item in data]

    def create_issue(self, repo: RepoIdentity, title: str, body: str, labels: List[str]) -> RemoteIssue:
        """Create a new issue"""
        payload = {"title": title, "body": body, "labels": labels}
        issue = RemoteIssue.from_api(self._request("POST", f"{repo.path}/issues", json=payload).json())
        logger.info(f"Created issue #{issue.number} in {repo}")
        return issue

    def update_issue(
        self,
        repo: RepoIdentity,
        number: int,
        *,
        title: str,
        body: str,
        labels: List[str],
        state: str,
    ) -> RemoteIssue:
        """Update an existing issue; labels replace the current set"""
        payload = {"title": title, "body": body, "labels": labels, "state": state}
        issue = RemoteIssue.from_api(
            self._request("PATCH", f"{repo.path}/issues/{int(number)}", json=payload).json()
        )
        logger.info(f"Updated issue #{number} in {repo}")
        return issue

    def list_labels(self, repo: RepoIdentity) -> List[str]:
        """Get all label names for a repository"""
        data = self._paginate(f"{repo.path}/labels", {"per_page": 100})
        return [item["name"] for item in data if item.get("name")]

    def create_label(self, repo: RepoIdentity, name: str, color: str) -> None:
        """Create a label in a repository"""
        self._request("POST", f"{repo.path}/labels", json={"name": name, "color": color.lstrip("#")})
        logger.info(f"Created label '{name}' in {repo}")
