"""Ensure every label the project's issues need exists on GitHub"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from app.models import Issue
from app.services.errors import RateLimitError
from app.services.github_client import GitHubAPIError, GitHubClient
from app.services.label_codec import encode_labels
from app.services.repo_identity import RepoIdentity

logger = logging.getLogger(__name__)

LABEL_COLORS: Dict[str, str] = {
    "type:task": "0075ca",
    "type:story": "a2eeef",
    "type:bug": "d73a4a",
    "type:docs": "0e8a16",
    "priority:critical": "b60205",
    "priority:high": "d93f0b",
    "priority:medium": "fbca04",
    "priority:low": "c2e0c6",
}
DEFAULT_LABEL_COLOR = "ededed"


def label_color(name: str) -> str:
    return LABEL_COLORS.get(name.lower(), DEFAULT_LABEL_COLOR)


@dataclass
class LabelProvisionResult:
    created: int = 0
    errors: List[str] = field(default_factory=list)


def required_labels(issues: Iterable[Issue]) -> List[str]:
    """Labels implied by the issues, first spelling wins, case-insensitive."""
    seen: Dict[str, str] = {}
    for issue in issues:
        for name in encode_labels(issue.type, issue.priority, issue.labels):
            seen.setdefault(name.lower(), name)
    return list(seen.values())


class LabelProvisioner:
    def __init__(self, client: GitHubClient):
        self.client = client

    def ensure_labels(self, repo: RepoIdentity, issues: Iterable[Issue]) -> LabelProvisionResult:
        result = LabelProvisionResult()
        # Every issue, not only unsynced ones: a synced issue may have gained a label.
        wanted = required_labels(issues)
        if not wanted:
            return result

        try:
            existing = {name.lower() for name in self.client.list_labels(repo)}
        except RateLimitError:
            raise
        except Exception as e:
            result.errors.append(f"Failed to list GitHub labels for {repo}: {e}")
            logger.error(result.errors[-1])
            return result

        for name in wanted:
            if name.lower() in existing:
                continue
            try:
                self.client.create_label(repo, name, label_color(name))
                result.created += 1
            except RateLimitError:
                raise
            except Exception as e:
                if isinstance(e, GitHubAPIError) and e.is_already_exists:
                    # Created concurrently by someone else.
                    continue
                result.errors.append(f'Failed to create GitHub label "{name}": {e}')
                logger.warning(result.errors[-1])

        if result.created:
            logger.info(f"Created {result.created} labels in {repo}")
        return result
