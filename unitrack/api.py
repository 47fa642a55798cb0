"""
HTTP API over the workspace and upload stores.

Endpoints (all under /api):

    GET    /workspace        full document, header x-workspace-readonly: 0|1
    POST   /workspace        replace the full document
    GET    /uploads          upload metadata records
    POST   /uploads          multipart upload (field "file")
    PATCH  /uploads          change displayName / notes of one record
    DELETE /uploads?id=...   remove record and file
    GET    /uploads/{id}     download the file

In read-only mode every mutating endpoint answers 403 and reads never
write: a missing workspace is served as defaults without being seeded.
Store access is synchronous, so all handlers are plain def and run in
FastAPI's threadpool.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from unitrack.config import Settings, load_settings
from unitrack.errors import NotFoundError, ReadOnlyError, UnitrackError, ValidationError
from unitrack.records import find_by_id
from unitrack.storage import WorkspaceStore, normalize_workspace, now_iso, random_id
from unitrack.uploads import UploadStore

logger = logging.getLogger(__name__)

READONLY_HEADER = "x-workspace-readonly"


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def create_app(
    store: WorkspaceStore | None = None,
    upload_store: UploadStore | None = None,
    read_only: bool | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Stores and the read-only flag default to what `settings` (or the
    environment) says; tests pass their own stores on a temp directory.
    """
    if store is None or read_only is None:
        settings = settings or load_settings()
    if store is None:
        store = WorkspaceStore(settings.data_dir)
    if upload_store is None:
        upload_store = UploadStore(store.uploads_dir)
    if read_only is None:
        read_only = settings.read_only

    app = FastAPI(title="unitrack")
    router = APIRouter(prefix="/api")

    def guard_writable() -> None:
        if read_only:
            raise ReadOnlyError()

    def load_workspace() -> dict[str, Any]:
        return store.load(persist=not read_only)

    @app.exception_handler(UnitrackError)
    async def handle_domain_error(_request: Request, exc: UnitrackError) -> JSONResponse:
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=exc.status_code)

    # -----------------------------------------------------------------------
    # Workspace
    # -----------------------------------------------------------------------

    @router.get("/workspace")
    def get_workspace() -> JSONResponse:
        ws = load_workspace()
        return JSONResponse(ws, headers={READONLY_HEADER: "1" if read_only else "0"})

    @router.post("/workspace")
    def post_workspace(payload: Any = Body(None)) -> dict[str, Any]:
        guard_writable()
        if not isinstance(payload, dict):
            raise ValidationError("Workspace must be a JSON object.")
        store.save(normalize_workspace(payload))
        logger.info("Workspace saved (%d universities)", len(payload.get("universities") or []))
        return {"ok": True}

    # -----------------------------------------------------------------------
    # Uploads
    # -----------------------------------------------------------------------

    @router.get("/uploads")
    def list_uploads() -> list[dict[str, Any]]:
        return load_workspace()["uploads"]

    @router.post("/uploads")
    def create_upload(
        file: Optional[UploadFile] = File(None),
        displayName: str = Form(""),
        notes: str = Form(""),
        templateId: str = Form(""),
    ) -> dict[str, Any]:
        guard_writable()
        if file is None or not file.filename:
            raise ValidationError("Missing file (field name must be 'file').")

        data = file.file.read()
        upload_id = random_id()
        stored_name = upload_store.put(data, file.filename, upload_id=upload_id)

        ws = load_workspace()
        now = now_iso()
        record = {
            "id": upload_id,
            "displayName": displayName.strip() or file.filename,
            "originalName": file.filename,
            "storedName": stored_name,
            "mimeType": file.content_type or "application/octet-stream",
            "size": len(data),
            "createdAt": now,
            "updatedAt": now,
        }
        if notes.strip():
            record["notes"] = notes.strip()
        if templateId.strip():
            record["templateId"] = templateId.strip()
        ws["uploads"].insert(0, record)
        store.save(ws)
        return {"ok": True, "id": upload_id}

    @router.patch("/uploads")
    def update_upload(body: Any = Body(None)) -> dict[str, Any]:
        guard_writable()
        if not isinstance(body, dict):
            raise ValidationError("Body must be a JSON object.")

        upload_id = str(body.get("id") or "").strip()
        if not upload_id:
            raise ValidationError("Missing id")

        ws = load_workspace()
        existing = find_by_id(ws["uploads"], upload_id)
        if existing is None:
            raise NotFoundError("Not found")

        updated = dict(existing)
        display_name = body.get("displayName")
        if isinstance(display_name, str) and display_name.strip():
            updated["displayName"] = display_name.strip()
        if "notes" in body and (body["notes"] is None or isinstance(body["notes"], str)):
            updated.pop("notes", None)
            notes = _text_or_none(body["notes"])
            if notes:
                updated["notes"] = notes
        updated["updatedAt"] = now_iso()

        ws["uploads"] = [updated if u.get("id") == upload_id else u for u in ws["uploads"]]
        store.save(ws)
        return {"ok": True}

    @router.delete("/uploads")
    def delete_upload(id: Optional[str] = Query(None)) -> dict[str, Any]:
        guard_writable()
        if not id:
            raise ValidationError("Missing id")

        ws = load_workspace()
        doc = find_by_id(ws["uploads"], id)
        if doc is None:
            raise NotFoundError("Not found")

        ws["uploads"] = [u for u in ws["uploads"] if u.get("id") != id]
        store.save(ws)
        upload_store.delete(str(doc.get("storedName") or ""))
        return {"ok": True}

    @router.get("/uploads/{upload_id}")
    def download_upload(upload_id: str) -> Response:
        ws = load_workspace()
        doc = find_by_id(ws["uploads"], upload_id)
        if doc is None:
            raise NotFoundError("Not found")

        data = upload_store.get(str(doc.get("storedName") or ""))
        filename = quote(str(doc.get("originalName") or doc.get("storedName")), safe="!~*'()")
        return Response(
            content=data,
            media_type=doc.get("mimeType") or "application/octet-stream",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    app.include_router(router)
    return app
