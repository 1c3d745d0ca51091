"""
GitHub API Access
──────────────────
GitHub App side of the pipeline:
  - Exchanging the app identity for an installation-scoped client
  - Listing the changed files of a pull request (all pages, in order)

Neither operation caches or retries; failures surface as CredentialError
or ChangeSetFetchError with the original exception chained.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from github import Auth, Github, GithubException, GithubIntegration
from requests.exceptions import RequestException

from .config import Settings

logger = logging.getLogger(__name__)

# Errors PyGithub surfaces for API, transport and app-key problems.
GITHUB_ERRORS = (GithubException, RequestException, jwt.PyJWTError)


class CredentialError(Exception):
    """The installation token exchange failed."""

    def __init__(self, installation_id: int, reason: str = ""):
        self.installation_id = installation_id
        message = f"Could not acquire a client for installation {installation_id}"
        super().__init__(f"{message}: {reason}" if reason else message)


class ChangeSetFetchError(Exception):
    """Listing the changed files of a pull request failed."""

    def __init__(self, owner: str, repo: str, pr_number: int, reason: str = ""):
        self.owner = owner
        self.repo = repo
        self.pr_number = pr_number
        message = f"Could not list files for {owner}/{repo}#{pr_number}"
        super().__init__(f"{message}: {reason}" if reason else message)


@dataclass(frozen=True)
class ChangedFile:
    """One file touched by a pull request."""
    path: str
    status: str            # added, modified, removed, renamed
    patch: str = ""
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    previous_path: Optional[str] = None
    sha: Optional[str] = None


class InstallationCredentialProvider:
    """Mints installation-scoped PyGithub clients from the app identity."""

    def __init__(self, settings: Settings):
        """Build the app-authenticated integration client."""
        self.api_url = settings.api_url
        self.integration = GithubIntegration(
            base_url=settings.api_url,
            auth=Auth.AppAuth(settings.app_id, settings.private_key),
            retry=None,
        )

    def acquire(self, installation_id: int) -> Github:
        """
        Exchange the app JWT for an installation token and return a client
        bound to it. The exchange happens here, so an invalid or suspended
        installation fails now rather than on the first API call.
        """
        try:
            authorization = self.integration.get_access_token(installation_id)
        except GITHUB_ERRORS as exc:
            raise CredentialError(installation_id, str(exc)) from exc

        logger.debug(
            "Installation %d token expires at %s.",
            installation_id, authorization.expires_at,
        )
        return Github(
            base_url=self.api_url, auth=Auth.Token(authorization.token), retry=None
        )


def list_changed_files(
    client: Github, owner: str, repo: str, pr_number: int
) -> list[ChangedFile]:
    """Fetch every changed file of a PR, in the order GitHub returns them."""
    try:
        pull = client.get_repo(f"{owner}/{repo}").get_pull(pr_number)
        # Iterating the PaginatedList walks every page.
        files = [
            ChangedFile(
                path=f.filename,
                status=f.status,
                patch=f.patch or "",
                additions=f.additions,
                deletions=f.deletions,
                changes=f.changes,
                previous_path=f.previous_filename,
                sha=f.sha,
            )
            for f in pull.get_files()
        ]
    except GITHUB_ERRORS as exc:
        raise ChangeSetFetchError(owner, repo, pr_number, str(exc)) from exc

    logger.info(
        "Fetched %d changed files for %s/%s#%d.",
        len(files), owner, repo, pr_number,
    )
    return files
