"""
Integration tests for the HTTP API (FastAPI TestClient on a temp data dir).
"""

import inspect
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from unitrack.api import create_app
from unitrack.storage import WorkspaceStore


class ApiTestCase(unittest.TestCase):
    read_only = False

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = WorkspaceStore(Path(self._tmp.name) / "data")
        self.client = TestClient(create_app(store=self.store, read_only=self.read_only))

    def upload(self, name: str = "My Passport.pdf", data: bytes = b"%PDF", **form) -> str:
        resp = self.client.post("/api/uploads", files={"file": (name, data, "application/pdf")}, data=form)
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()["id"]


class TestWorkspaceEndpoints(ApiTestCase):
    def test_get_seeds_and_reports_writable(self) -> None:
        resp = self.client.get("/api/workspace")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["x-workspace-readonly"], "0")
        self.assertEqual(len(resp.json()["documentTemplates"]), 9)

    def test_post_replaces_document(self) -> None:
        ws = self.client.get("/api/workspace").json()
        ws["notes"].append({"id": "n1", "title": "APS", "body": "", "createdAt": "x", "updatedAt": "x"})
        resp = self.client.post("/api/workspace", json=ws)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True})
        self.assertEqual(self.client.get("/api/workspace").json(), ws)

    def test_post_rejects_non_object(self) -> None:
        resp = self.client.post("/api/workspace", json=[1, 2])
        self.assertEqual(resp.status_code, 400)

    def test_store_handlers_run_in_threadpool(self) -> None:
        routes = [r for r in self.client.app.routes if getattr(r, "path", "").startswith("/api/")]
        self.assertEqual(len(routes), 7)
        for route in routes:
            self.assertFalse(inspect.iscoroutinefunction(route.endpoint), route.path)


class TestUploadEndpoints(ApiTestCase):
    def test_upload_creates_file_and_record(self) -> None:
        upload_id = self.upload(notes=" certified copy ")
        records = self.client.get("/api/uploads").json()
        self.assertEqual(len(records), 1)
        rec = records[0]
        self.assertEqual(rec["id"], upload_id)
        self.assertEqual(rec["originalName"], "My Passport.pdf")
        self.assertEqual(rec["displayName"], "My Passport.pdf")
        self.assertEqual(rec["storedName"], f"{upload_id}-My_Passport.pdf")
        self.assertEqual(rec["mimeType"], "application/pdf")
        self.assertEqual(rec["size"], 4)
        self.assertEqual(rec["notes"], "certified copy")
        self.assertTrue((self.store.uploads_dir / rec["storedName"]).exists())

    def test_newest_upload_first(self) -> None:
        first = self.upload("a.pdf")
        second = self.upload("b.pdf")
        self.assertEqual([r["id"] for r in self.client.get("/api/uploads").json()], [second, first])

    def test_upload_without_file(self) -> None:
        resp = self.client.post("/api/uploads", data={"displayName": "nothing"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.client.get("/api/uploads").json(), [])

    def test_patch(self) -> None:
        upload_id = self.upload(notes="old")
        resp = self.client.patch("/api/uploads", json={"id": upload_id, "displayName": " Passport scan "})
        self.assertEqual(resp.status_code, 200)
        rec = self.client.get("/api/uploads").json()[0]
        self.assertEqual(rec["displayName"], "Passport scan")
        self.assertEqual(rec["notes"], "old")

        # blank display name is ignored, null notes clear
        self.client.patch("/api/uploads", json={"id": upload_id, "displayName": "  ", "notes": None})
        rec = self.client.get("/api/uploads").json()[0]
        self.assertEqual(rec["displayName"], "Passport scan")
        self.assertNotIn("notes", rec)

    def test_patch_errors(self) -> None:
        self.assertEqual(self.client.patch("/api/uploads", json={}).status_code, 400)
        self.assertEqual(self.client.patch("/api/uploads", json=["x"]).status_code, 400)
        self.assertEqual(self.client.patch("/api/uploads", json={"id": "nope"}).status_code, 404)

    def test_download(self) -> None:
        upload_id = self.upload("Abitur Zeugnis (copy).pdf", b"content")
        resp = self.client.get(f"/api/uploads/{upload_id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"content")
        self.assertTrue(resp.headers["content-type"].startswith("application/pdf"))
        self.assertEqual(resp.headers["content-disposition"], 'attachment; filename="Abitur%20Zeugnis%20(copy).pdf"')

    def test_download_unknown(self) -> None:
        self.assertEqual(self.client.get("/api/uploads/nope").status_code, 404)

    def test_delete(self) -> None:
        upload_id = self.upload()
        stored = self.client.get("/api/uploads").json()[0]["storedName"]
        resp = self.client.delete("/api/uploads", params={"id": upload_id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/api/uploads").json(), [])
        self.assertFalse((self.store.uploads_dir / stored).exists())

    def test_delete_when_file_already_gone(self) -> None:
        upload_id = self.upload()
        stored = self.client.get("/api/uploads").json()[0]["storedName"]
        (self.store.uploads_dir / stored).unlink()

        resp = self.client.delete("/api/uploads", params={"id": upload_id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/api/uploads").json(), [])

    def test_delete_errors(self) -> None:
        self.assertEqual(self.client.delete("/api/uploads").status_code, 400)
        self.assertEqual(self.client.delete("/api/uploads", params={"id": "nope"}).status_code, 404)


class TestReadOnly(ApiTestCase):
    read_only = True

    def test_header(self) -> None:
        self.assertEqual(self.client.get("/api/workspace").headers["x-workspace-readonly"], "1")

    def test_reads_do_not_seed_the_data_dir(self) -> None:
        resp = self.client.get("/api/workspace")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["documentTemplates"]), 9)
        self.assertEqual(self.client.get("/api/uploads").json(), [])

        self.assertFalse(self.store.path.exists())
        self.assertFalse(self.store.data_dir.exists())

    def test_every_mutation_forbidden(self) -> None:
        # an existing workspace written by a writable instance
        self.store.save(self.store.normalize({"notes": [{"id": "n1", "title": "APS", "body": ""}]}))
        before = self.store.path.read_text(encoding="utf-8")
        ws = self.client.get("/api/workspace").json()

        self.assertEqual(self.client.post("/api/workspace", json={**ws, "notes": []}).status_code, 403)
        resp = self.client.post("/api/uploads", files={"file": ("a.pdf", b"x", "application/pdf")})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self.client.patch("/api/uploads", json={"id": "x"}).status_code, 403)
        self.assertEqual(self.client.delete("/api/uploads", params={"id": "x"}).status_code, 403)

        self.assertEqual(self.store.path.read_text(encoding="utf-8"), before)
        self.assertEqual(list(self.store.uploads_dir.iterdir()), [])


if __name__ == "__main__":
    unittest.main()
