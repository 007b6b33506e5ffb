"""
github_client.py

Responsibility: Isolate all direct GitHub REST API interaction.

This module must be the only place that:
- Constructs GitHub REST endpoints
- Sends HTTP requests to api.github.com
- Interprets GitHub API responses / error payloads

The collector decides what a failure means for a run; this client only
classifies it (not found vs. any other failure).
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from nxtracker import __version__
from nxtracker.errors import TrackerError

logger = logging.getLogger(__name__)


class GitHubError(TrackerError):
    pass


class RepositoryNotFound(GitHubError):
    pass


class ReleaseNotFound(GitHubError):
    pass


class ApiError(GitHubError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GitHubClient:
    def __init__(
        self,
        token: str | None = None,
        api_base: str = "https://api.github.com",
        timeout: float = 30,
    ) -> None:
        self._token = (token or "").strip() or None
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": f"nx-projects-tracker/{__version__}",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get(self, path: str, *, not_found: type[GitHubError]) -> Any:
        url = f"{self._api_base}{path}"
        logger.debug("GET %s", url)
        try:
            r = requests.request("GET", url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as e:
            raise ApiError(f"GitHub request failed GET {path}: {e}") from e

        if r.status_code == 404:
            raise not_found(f"Not found: {path}")
        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = {"message": r.text}
            message = payload.get("message", payload) if isinstance(payload, dict) else payload
            raise ApiError(f"GitHub API error {r.status_code} GET {path}: {message}", status=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise ApiError(f"GitHub API returned invalid JSON for GET {path}", status=r.status_code) from e

    def get_repo(self, owner: str, name: str) -> dict[str, Any]:
        """
        Return the repository payload.

        Raises RepositoryNotFound on 404 and ApiError on any other failure.
        """
        return self._get(f"/repos/{owner}/{name}", not_found=RepositoryNotFound)

    def get_latest_release(self, owner: str, name: str) -> dict[str, Any]:
        """
        Return the latest published release.

        GitHub answers 404 both for missing repos and for repos without a
        published release; this raises ReleaseNotFound for either.
        """
        return self._get(f"/repos/{owner}/{name}/releases/latest", not_found=ReleaseNotFound)
