"""
Workspace client.

The single place views talk to the API through. One WorkspaceClient
instance holds the cached workspace for a session:

    client = WorkspaceClient("http://127.0.0.1:8000/api")
    ws = client.fetch()
    ok = client.save(records.delete_target(ws, target_id))

Failures never raise: they are kept in `client.error` and the method
returns None/False, so a caller can print the message and carry on.
After a successful save the cache holds exactly the document that was
sent (no re-fetch).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from unitrack.config import DEFAULT_API_URL

logger = logging.getLogger(__name__)

READONLY_HEADER = "x-workspace-readonly"
READ_ONLY_MESSAGE = "Read-only on deployed site"

_KEEP = object()


def _error_message(resp: Any, fallback: str) -> str:
    """
    Pull the API's error string out of a failed response, if there is one.
    """
    try:
        body = resp.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return fallback


class WorkspaceClient:
    def __init__(self, base_url: str = DEFAULT_API_URL, session: Any = None, timeout: float = 30) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

        self.workspace: Optional[dict[str, Any]] = None
        self.read_only = False
        self.error: Optional[str] = None
        self.loading = False
        self.saving = False

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _fail(self, message: str) -> None:
        self.error = message
        logger.warning("%s", message)

    # -----------------------------------------------------------------------
    # Workspace
    # -----------------------------------------------------------------------

    def fetch(self) -> Optional[dict[str, Any]]:
        """
        Load the workspace and the read-only flag into the cache.
        """
        self.error = None
        self.loading = True
        try:
            resp = self.session.get(self._url("workspace"), timeout=self.timeout)
            if resp.status_code != 200:
                self._fail("Failed to load workspace")
                return None
            ws = resp.json()
        except (requests.RequestException, ValueError) as exc:
            self._fail(f"Failed to load workspace: {exc}")
            return None
        finally:
            self.loading = False

        self.read_only = resp.headers.get(READONLY_HEADER) == "1"
        self.workspace = ws
        return ws

    def save(self, next_workspace: dict[str, Any]) -> bool:
        """
        Send the full document. True on success, False (with `error` set) otherwise.
        """
        self.error = None
        if self.read_only:
            self.error = READ_ONLY_MESSAGE
            return False
        if self.saving:
            self.error = "A save is already in progress"
            return False

        self.saving = True
        try:
            resp = self.session.post(self._url("workspace"), json=next_workspace, timeout=self.timeout)
            if resp.status_code // 100 != 2:
                self._fail(_error_message(resp, "Failed to save workspace"))
                return False
        except requests.RequestException as exc:
            self._fail(f"Failed to save workspace: {exc}")
            return False
        finally:
            self.saving = False

        self.workspace = next_workspace
        return True

    # -----------------------------------------------------------------------
    # Uploads
    # -----------------------------------------------------------------------

    def _mutation_blocked(self) -> bool:
        self.error = None
        if self.read_only:
            self.error = READ_ONLY_MESSAGE
            return True
        return False

    def _request(self, method: str, path: str, fallback: str, **kwargs: Any) -> Any:
        try:
            resp = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            self._fail(f"{fallback}: {exc}")
            return None
        if resp.status_code // 100 != 2:
            self._fail(_error_message(resp, fallback))
            return None
        return resp

    def _json(self, resp: Any, fallback: str) -> Any:
        try:
            return resp.json()
        except ValueError:
            self._fail(f"{fallback}: response is not JSON")
            return None

    def list_uploads(self) -> Optional[list[dict[str, Any]]]:
        self.error = None
        resp = self._request("GET", "uploads", "Failed to load uploads")
        if resp is None:
            return None
        body = self._json(resp, "Failed to load uploads")
        return body if isinstance(body, list) else None

    def upload(
        self,
        data: bytes,
        filename: str,
        display_name: str | None = None,
        notes: str | None = None,
        mime_type: str | None = None,
        template_id: str | None = None,
    ) -> Optional[str]:
        """
        Upload one file; returns the new record id.
        """
        if self._mutation_blocked():
            return None
        if not data:
            self.error = "Please choose a file first."
            return None

        form = {"displayName": display_name or "", "notes": notes or "", "templateId": template_id or ""}
        files = {"file": (filename, data, mime_type or "application/octet-stream")}
        resp = self._request("POST", "uploads", "Upload failed", data=form, files=files)
        if resp is None:
            return None
        body = self._json(resp, "Upload failed")
        return body.get("id") if isinstance(body, dict) else None

    def update_upload(self, upload_id: str, display_name: str | None = None, notes: Any = _KEEP) -> bool:
        """
        Rename an upload and/or change its notes.

        notes=None clears the notes; leaving `notes` out keeps them.
        """
        if self._mutation_blocked():
            return False
        body: dict[str, Any] = {"id": upload_id}
        if display_name is not None:
            body["displayName"] = display_name
        if notes is not _KEEP:
            body["notes"] = notes
        return self._request("PATCH", "uploads", "Update failed", json=body) is not None

    def delete_upload(self, upload_id: str) -> bool:
        if self._mutation_blocked():
            return False
        return self._request("DELETE", "uploads", "Delete failed", params={"id": upload_id}) is not None

    def download(self, upload_id: str) -> Optional[bytes]:
        self.error = None
        resp = self._request("GET", f"uploads/{upload_id}", "Download failed")
        return None if resp is None else resp.content
