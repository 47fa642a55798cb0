"""
Tests for WorkspaceClient.

Unit tests use a mocked session; the integration test plugs a FastAPI
TestClient in as the session so the real API runs on a temp directory.
"""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests
from fastapi.testclient import TestClient

from unitrack.api import create_app
from unitrack.client import READ_ONLY_MESSAGE, WorkspaceClient
from unitrack.storage import WorkspaceStore


def _response(status: int = 200, body=None, headers=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.headers = headers or {}
    return resp


class TestWorkspaceClient(unittest.TestCase):
    def setUp(self) -> None:
        self.session = MagicMock()
        self.client = WorkspaceClient("http://api.test/api/", session=self.session)

    def test_fetch_reads_document_and_flag(self) -> None:
        self.session.get.return_value = _response(200, {"version": 1}, {"x-workspace-readonly": "1"})
        self.assertEqual(self.client.fetch(), {"version": 1})
        self.assertTrue(self.client.read_only)
        self.assertFalse(self.client.loading)
        self.assertEqual(self.session.get.call_args.args[0], "http://api.test/api/workspace")

    def test_fetch_failure_is_kept(self) -> None:
        self.session.get.return_value = _response(500)
        self.assertIsNone(self.client.fetch())
        self.assertEqual(self.client.error, "Failed to load workspace")

        self.session.get.side_effect = requests.ConnectionError("refused")
        self.assertIsNone(self.client.fetch())
        self.assertIn("refused", self.client.error)

    def test_save_in_read_only_mode_sends_nothing(self) -> None:
        cached = {"version": 1, "notes": []}
        self.client.workspace = cached
        self.client.read_only = True

        self.assertFalse(self.client.save({"version": 1, "notes": [{"id": "n1"}]}))
        self.assertEqual(self.client.error, READ_ONLY_MESSAGE)
        self.session.post.assert_not_called()
        self.assertIs(self.client.workspace, cached)

    def test_save_caches_what_was_sent(self) -> None:
        self.session.post.return_value = _response(200, {"ok": True})
        doc = {"version": 1, "targets": []}
        self.assertTrue(self.client.save(doc))
        self.assertIs(self.client.workspace, doc)
        self.assertFalse(self.client.saving)
        self.session.get.assert_not_called()

    def test_save_error_from_server(self) -> None:
        self.client.workspace = {"version": 1}
        self.session.post.return_value = _response(403, {"ok": False, "error": "Read-only on deployed site"})
        self.assertFalse(self.client.save({"version": 2}))
        self.assertEqual(self.client.error, "Read-only on deployed site")
        self.assertEqual(self.client.workspace, {"version": 1})

    def test_second_save_while_saving_is_refused(self) -> None:
        self.client.saving = True
        self.assertFalse(self.client.save({"version": 1}))
        self.session.post.assert_not_called()

    def test_upload_requires_data(self) -> None:
        self.assertIsNone(self.client.upload(b"", "a.pdf"))
        self.assertEqual(self.client.error, "Please choose a file first.")
        self.session.request.assert_not_called()

    def test_non_json_success_response_is_kept_as_error(self) -> None:
        resp = _response(200)
        resp.json.side_effect = ValueError("Expecting value")
        self.session.request.return_value = resp

        self.assertIsNone(self.client.list_uploads())
        self.assertEqual(self.client.error, "Failed to load uploads: response is not JSON")
        self.assertIsNone(self.client.upload(b"x", "a.pdf"))
        self.assertEqual(self.client.error, "Upload failed: response is not JSON")

    def test_update_upload_body(self) -> None:
        self.session.request.return_value = _response(200, {"ok": True})
        self.assertTrue(self.client.update_upload("u1", display_name="CV"))
        self.assertEqual(self.session.request.call_args.kwargs["json"], {"id": "u1", "displayName": "CV"})

        self.client.update_upload("u1", notes=None)
        self.assertEqual(self.session.request.call_args.kwargs["json"], {"id": "u1", "notes": None})


class TestClientAgainstApi(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = WorkspaceStore(Path(self._tmp.name))

    def _client(self, read_only: bool) -> WorkspaceClient:
        app = create_app(store=self.store, read_only=read_only)
        return WorkspaceClient("http://testserver/api", session=TestClient(app))

    def test_fetch_save_and_uploads(self) -> None:
        client = self._client(read_only=False)
        ws = client.fetch()
        self.assertIsNotNone(ws)
        self.assertFalse(client.read_only)

        ws["targets"].append({"id": "t1", "name": "IELTS", "targetDate": "2026-05-01"})
        self.assertTrue(client.save(ws))
        self.assertEqual(self.store.load()["targets"][0]["name"], "IELTS")

        upload_id = client.upload(b"hello", "cv.txt", notes="v2", mime_type="text/plain")
        self.assertIsNotNone(upload_id, client.error)
        self.assertEqual(client.download(upload_id), b"hello")
        self.assertEqual([u["id"] for u in client.list_uploads()], [upload_id])

        self.assertTrue(client.update_upload(upload_id, display_name="CV 2026"))
        self.assertEqual(client.list_uploads()[0]["displayName"], "CV 2026")

        self.assertTrue(client.delete_upload(upload_id))
        self.assertEqual(client.list_uploads(), [])
        self.assertFalse(client.delete_upload(upload_id))
        self.assertEqual(client.error, "Not found")

    def test_read_only_server(self) -> None:
        client = self._client(read_only=True)
        ws = client.fetch()
        self.assertTrue(client.read_only)
        self.assertFalse(client.save(ws))
        self.assertEqual(client.error, READ_ONLY_MESSAGE)
        self.assertIsNone(client.upload(b"x", "a.pdf"))
        self.assertEqual(client.error, READ_ONLY_MESSAGE)


if __name__ == "__main__":
    unittest.main()
