"""
Binary file storage for uploaded documents.

Files live flat in one directory and are named

    {id}-{sanitized original name}

The id prefix keeps names unique; the metadata record in the workspace
document stores that name as storedName. Keeping record and file in sync
(delete both, or neither) is up to the caller.
"""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path

from unitrack.errors import NotFoundError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.\-]", re.ASCII)


def sanitize_filename(name: str) -> str:
    """
    Replace every character outside [A-Za-z0-9_.-] with '_'.

    'My Passport.pdf' -> 'My_Passport.pdf'
    """
    safe = _UNSAFE_CHARS.sub("_", name or "")
    return safe or "file"


class UploadStore:
    def __init__(self, uploads_dir: str | Path) -> None:
        self.uploads_dir = Path(uploads_dir)

    def path_for(self, stored_name: str) -> Path:
        """
        Resolve a stored name inside the uploads directory.

        Names that would point anywhere else raise NotFoundError.
        """
        base = self.uploads_dir.resolve()
        candidate = (base / stored_name).resolve()
        if not stored_name or candidate.parent != base:
            raise NotFoundError(f"Invalid stored name: {stored_name!r}")
        return candidate

    def put(self, data: bytes, original_name: str, upload_id: str | None = None) -> str:
        """
        Write bytes under a fresh unique name and return that name.
        """
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        prefix = upload_id or str(uuid.uuid4())
        stored_name = f"{prefix}-{sanitize_filename(original_name)}"
        self.path_for(stored_name).write_bytes(data)
        logger.info("Stored upload %s (%d bytes)", stored_name, len(data))
        return stored_name

    def get(self, stored_name: str) -> bytes:
        path = self.path_for(stored_name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"File not found: {stored_name}") from None

    def delete(self, stored_name: str) -> None:
        """
        Remove the file. A file that is already gone counts as deleted.
        """
        try:
            path = self.path_for(stored_name)
        except NotFoundError:
            return
        path.unlink(missing_ok=True)
        logger.info("Deleted upload %s", stored_name)
