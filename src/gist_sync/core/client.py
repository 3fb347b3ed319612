import logging
import threading
from typing import Any

import requests

from ..config import Settings
from ..exceptions import RemoteStoreFailure

logger = logging.getLogger(__name__)

_API_VERSION = "2022-11-28"


class GistClient:
    """Thin GitHub Gists REST client.

    Exposes the four document-store operations the sync engine needs
    (create, get, update, delete).  Every failure, HTTP or transport, is
    raised as ``RemoteStoreFailure``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._thread_local = threading.local()
        self.api_url = settings.api_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """Session for the current thread."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.settings.token}",
                "X-GitHub-Api-Version": _API_VERSION,
            }
        )
        return session

    def _request(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> Any:
        """
        Issue one API request and return the decoded JSON body (or None).
        """
        url = f"{self.api_url}{path}"
        try:
            response = self._get_session().request(
                method,
                url,
                timeout=(10, self.settings.timeout),
                **kwargs,
            )
        except requests.RequestException as exc:
            raise RemoteStoreFailure(operation, str(exc)) from exc

        if response.status_code >= 400:
            raise RemoteStoreFailure(
                operation,
                self._error_message(response),
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteStoreFailure(
                operation, f"invalid JSON in response: {exc}"
            ) from exc

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Extract GitHub's ``message`` field, falling back to the reason."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.reason or "request failed"

    def validate_token(self) -> str:
        """
        Check the token by fetching the authenticated user.
        Returns the GitHub login if successful.
        """
        data = self._request("user", "GET", "/user")
        return str((data or {}).get("login", ""))

    def create_gist(
        self,
        description: str,
        files: dict[str, str],
        public: bool = False,
    ) -> str:
        """
        Create a gist and return its id.

        Args:
            description: Gist description.
            files: Mapping of file name to text content.
            public: Whether the gist is public (default: secret).

        Raises:
            RemoteStoreFailure: If GitHub rejects the request or returns no id.
        """
        payload = {
            "description": description,
            "public": public,
            "files": {
                name: {"content": content}
                for name, content in files.items()
            },
        }
        data = self._request("create", "POST", "/gists", json=payload)
        gist_id = (data or {}).get("id")
        if not gist_id:
            raise RemoteStoreFailure(
                "create", "Failed to get gist ID from response"
            )
        logger.debug("Created gist %s with %d files", gist_id, len(files))
        return str(gist_id)

    def get_gist(self, gist_id: str) -> dict[str, str]:
        """
        Return the gist's files as a mapping of file name to content.

        Files GitHub truncates in the API response are fetched through
        their ``raw_url``.
        """
        data = self._request("get", "GET", f"/gists/{gist_id}")
        files: dict[str, str] = {}
        for name, info in ((data or {}).get("files") or {}).items():
            if not info:
                continue
            content = info.get("content")
            if info.get("truncated") and info.get("raw_url"):
                content = self._fetch_raw(info["raw_url"])
            if content is not None:
                files[name] = content
        return files

    def _fetch_raw(self, raw_url: str) -> str:
        try:
            response = self._get_session().get(
                raw_url, timeout=(10, self.settings.timeout)
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise RemoteStoreFailure("get", str(exc)) from exc
        return response.text

    def update_gist(
        self, gist_id: str, files: dict[str, str | None]
    ) -> None:
        """
        Replace the named files of a gist.

        A ``None`` content sends a null entry, which deletes the file if it
        exists and is ignored otherwise.  Files not named are left alone.
        """
        payload = {
            "files": {
                name: None if content is None else {"content": content}
                for name, content in files.items()
            }
        }
        self._request("update", "PATCH", f"/gists/{gist_id}", json=payload)
        logger.debug("Updated gist %s (%d files)", gist_id, len(files))

    def delete_gist(self, gist_id: str) -> None:
        """
        Delete a gist.
        """
        self._request("delete", "DELETE", f"/gists/{gist_id}")
        logger.debug("Deleted gist %s", gist_id)
