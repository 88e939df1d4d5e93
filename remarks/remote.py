"""
GitHub repository client for ReMarks.

Reads and writes single files through the GitHub contents API. Writes are
optimistic: an update carries the blob SHA the file had when it was read,
and GitHub rejects it if the file has changed since.
"""
import base64
import binascii
import logging
from datetime import date
from typing import Optional

import requests

from remarks.config import ConfigurationError
from remarks.constants import DEFAULT_REQUEST_TIMEOUT, DEFAULT_USER_AGENT
from remarks.tree import RemoteArtifact, SyncCredentials

logger = logging.getLogger(__name__)

# Passed as ``sha`` to push() to look the current revision up first
DISCOVER = object()


class RemoteError(Exception):
    """A request to the remote repository failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteConflictError(RemoteError):
    """A write was rejected because the file changed since it was read."""
    pass


class RemoteContentError(RemoteError):
    """A file exists but its content cannot be decoded as UTF-8 text."""

    def __init__(self, message: str, sha: Optional[str] = None):
        super().__init__(message)
        self.sha = sha


class GitHubClient:
    """Fetch and push files in one GitHub repository."""

    def __init__(self, credentials: SyncCredentials,
                 timeout: int = DEFAULT_REQUEST_TIMEOUT,
                 user_agent: str = DEFAULT_USER_AGENT,
                 commit_message: str = "Sync {date}"):
        """
        Initialize the client.

        Args:
            credentials: Account, repository, and token
            timeout: Request timeout in seconds
            user_agent: User agent string
            commit_message: Commit message template; ``{date}`` is today's date

        Raises:
            ConfigurationError: if the token, user, or repository is missing
        """
        if not credentials.token:
            raise ConfigurationError("Missing token")
        if not credentials.user or not credentials.repo:
            raise ConfigurationError("Missing repository owner or name")

        self.credentials = credentials
        self.timeout = timeout
        self.commit_message = commit_message
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"token {credentials.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
        })

    def contents_url(self, filename: str) -> str:
        c = self.credentials
        return f"{c.api_url.rstrip('/')}/repos/{c.user}/{c.repo}/contents/{filename}"

    def fetch(self, filename: str) -> Optional[RemoteArtifact]:
        """
        Fetch a file from the repository.

        Returns:
            The file and its revision, or None if it does not exist

        Raises:
            RemoteContentError: if the file is not valid base64-encoded UTF-8
            RemoteError: on any other non-success response or transport failure
        """
        params = {"ref": self.credentials.branch} if self.credentials.branch else None
        try:
            response = self.session.get(
                self.contents_url(filename), params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RemoteError(f"GitHub request failed: {e}") from e

        if response.status_code == 404:
            logger.debug(f"{filename} not found in {self.credentials.repo}")
            return None
        if not response.ok:
            raise RemoteError(f"GitHub API Error: {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"GitHub API Error: invalid response body ({e})",
                              response.status_code) from e
        if not isinstance(data, dict):
            raise RemoteError(f"GitHub API Error: {filename} is not a file", response.status_code)

        sha = data.get("sha")
        encoded = (data.get("content") or "").replace("\n", "")
        try:
            content = base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            raise RemoteContentError(f"{filename} is not UTF-8 text: {e}", sha=sha) from e
        return RemoteArtifact(path=filename, content=content, sha=sha)

    def fetch_text(self, filename: str) -> Optional[str]:
        """Fetch a file's text, or None if it does not exist."""
        artifact = self.fetch(filename)
        return artifact.content if artifact else None

    def push(self, filename: str, content: str, sha=DISCOVER,
             message: Optional[str] = None) -> Optional[str]:
        """
        Create or update a file.

        Args:
            filename: Path in the repository
            content: New file text (UTF-8)
            sha: Expected current revision. By default the file is fetched
                first to find it; None creates the file unconditionally.
            message: Commit message (defaults to the configured template)

        Returns:
            The new revision of the file

        Raises:
            RemoteConflictError: if the expected revision is stale
            RemoteError: on any other failure
        """
        if sha is DISCOVER:
            try:
                existing = self.fetch(filename)
                sha = existing.sha if existing else None
            except RemoteContentError as e:
                sha = e.sha

        body = {
            "message": message or self.commit_message.format(date=date.today().isoformat()),
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        if self.credentials.branch:
            body["branch"] = self.credentials.branch

        try:
            response = self.session.put(self.contents_url(filename), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteError(f"GitHub request failed: {e}") from e

        if response.status_code == 409 or (
                response.status_code == 422 and "sha" in response.text):
            raise RemoteConflictError(
                f"Push Failed: {filename} changed on the remote ({response.status_code})",
                response.status_code,
            )
        if not response.ok:
            raise RemoteError(f"Push Failed: {response.status_code}", response.status_code)

        logger.info(f"Pushed {filename}")
        return (response.json().get("content") or {}).get("sha")
