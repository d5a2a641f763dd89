"""GitHub contents API store for publishing screenshots."""

import base64
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from n8n_shots.errors import PublishError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
RAW_CONTENT_URL = "https://raw.githubusercontent.com"
SCREENSHOTS_ROOT = "screenshots"


@dataclass(frozen=True)
class PublishResult:
    """Where a published screenshot can be read from."""

    url: str
    sha: Optional[str] = None
    updated: bool = False


class GitHubContentStore:
    """Reads and writes screenshots in a GitHub repository."""

    def __init__(
        self,
        repo: str,
        token: str,
        branch: str = "main",
        existence_on_error: str = "proceed",
        api_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the store.

        Args:
            repo: Repository in ``owner/repo`` form
            token: GitHub token with contents write access
            branch: Branch screenshots are committed to
            existence_on_error: ``proceed`` to treat an unanswered existence
                check as "missing", ``skip`` to treat it as "exists"
            api_url: GitHub API root
            timeout: Per-request timeout in seconds
            session: Session to reuse; a new one is created if omitted
        """
        if existence_on_error not in ("proceed", "skip"):
            raise ValueError(f"Unknown existence_on_error policy: {existence_on_error}")

        self.repo = repo
        self.branch = branch
        self.existence_on_error = existence_on_error
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        })

    @staticmethod
    def path_for(category: str, filename: str) -> str:
        return f"{SCREENSHOTS_ROOT}/{category}/{filename}"

    def contents_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.repo}/contents/{path}"

    def public_url(self, path: str) -> str:
        return f"{RAW_CONTENT_URL}/{self.repo}/{self.branch}/{path}"

    def exists(self, category: str, filename: str) -> bool:
        """Check whether a screenshot is already committed.

        A 404 means "missing". Transport errors and unexpected statuses are
        resolved by the ``existence_on_error`` policy.
        """
        path = self.path_for(category, filename)
        try:
            response = self.session.get(
                self.contents_url(path),
                params={"ref": self.branch},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return self._ambiguous(path, str(e))

        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        return self._ambiguous(path, f"HTTP {response.status_code}")

    def _ambiguous(self, path: str, reason: str) -> bool:
        assume_exists = self.existence_on_error == "skip"
        logger.warning(
            f"Could not check {path} ({reason}); assuming it "
            f"{'exists' if assume_exists else 'does not exist'}"
        )
        return assume_exists

    def current_sha(self, path: str) -> Optional[str]:
        """Return the blob sha of ``path`` or None if it does not exist.

        Raises:
            PublishError: If GitHub cannot be asked or answers unexpectedly
        """
        try:
            response = self.session.get(
                self.contents_url(path),
                params={"ref": self.branch},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise PublishError(f"GitHub upload failed: could not read {path}: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise PublishError(
                f"GitHub upload failed: reading {path} returned {response.status_code}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PublishError(
                f"GitHub upload failed: unreadable response for {path}", status=200
            ) from e
        return data.get("sha") if isinstance(data, dict) else None

    def publish(self, category: str, filename: str, image: bytes) -> PublishResult:
        """Create or update a screenshot.

        An existing file is updated by passing its sha, which GitHub rejects
        with 409 if the file changed in between.

        Returns:
            PublishResult with the raw content URL

        Raises:
            PublishError: On any non-success response
        """
        path = self.path_for(category, filename)
        sha = self.current_sha(path)

        payload = {
            "message": f"Add screenshot: {filename}",
            "content": base64.b64encode(image).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha
            payload["message"] = f"Update screenshot: {filename}"

        try:
            response = self.session.put(self.contents_url(path), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise PublishError(f"GitHub upload failed: {e}") from e

        if response.status_code not in (200, 201):
            raise PublishError(
                f"GitHub upload failed: {response.status_code} - {response.text[:300]}",
                status=response.status_code,
            )

        new_sha = None
        try:
            new_sha = (response.json().get("content") or {}).get("sha")
        except (ValueError, AttributeError):
            logger.debug(f"No content sha in upload response for {path}")

        logger.debug(f"{'Updated' if sha else 'Created'} {path}")
        return PublishResult(url=self.public_url(path), sha=new_sha, updated=bool(sha))

    def close(self) -> None:
        self.session.close()
