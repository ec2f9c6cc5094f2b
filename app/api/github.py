"""GitHub repository validation endpoint"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.config import settings
from app.services.errors import RateLimitError, SyncConfigError
from app.services.github_client import GitHubAPIError, GitHubClient
from app.services.repo_identity import RepoIdentity

router = APIRouter(prefix="/api/github", tags=["github"])


class ValidateRepoRequest(BaseModel):
    repo: str


@router.post("/validate-repo")
def validate_repo(body: ValidateRepoRequest):
    """Check "owner/repo" format, then that the token can see the repository"""
    try:
        repo = RepoIdentity.parse(body.repo)
    except SyncConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not settings.github_pat:
        raise HTTPException(status_code=400, detail="GITHUB_PAT environment variable is not configured")

    with GitHubClient.from_settings(settings.github_pat) as client:
        try:
            client.get_repository(repo)
        except RateLimitError as e:
            raise HTTPException(status_code=429, detail=str(e))
        except GitHubAPIError as e:
            if e.status_code == 404:
                raise HTTPException(status_code=400, detail=f"Repository {repo} not found or not accessible")
            if e.status_code == 401:
                raise HTTPException(status_code=400, detail="Invalid GitHub token")
            raise HTTPException(status_code=502, detail=str(e))
    return {"valid": True, "repo": str(repo)}
