"""Filesystem blob storage.

Blobs are written once under ``<storage_dir>/<blob_id>`` with a sidecar
``.type`` file holding the content type, and served by the API under
``/api/v1/blobs/<blob_id>``.
"""

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional
from uuid import uuid4

from ..core.errors import NotFound, StorageError

logger = logging.getLogger(__name__)

_BLOB_ID_RE = re.compile(r"^[0-9a-f]{32}$")
_TYPE_SUFFIX = ".type"


def _atomic_write_bytes(path: Path, content: bytes) -> None:
    """Write *content* to *path* via a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class LocalBlobStore:
    """Append-only blob store on the local filesystem."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, blob_id: str) -> Path:
        if not _BLOB_ID_RE.match(blob_id):
            raise NotFound("blob", blob_id)
        return self.root / blob_id

    async def store(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store bytes under a fresh id."""
        blob_id = uuid4().hex
        path = self.root / blob_id
        try:
            await asyncio.to_thread(_atomic_write_bytes, path, data)
            await asyncio.to_thread(
                _atomic_write_bytes,
                path.with_name(blob_id + _TYPE_SUFFIX),
                content_type.encode("utf-8"),
            )
        except OSError as e:
            raise StorageError(f"Failed to store blob: {e}") from e

        logger.info(f"[STORAGE] Stored blob {blob_id} ({len(data)} bytes, {content_type})")
        return blob_id

    async def get_url(self, blob_id: str) -> Optional[str]:
        """Public URL of a blob, or None if it does not exist."""
        try:
            path = self._path(blob_id)
        except NotFound:
            return None
        if not path.is_file():
            return None
        return f"{self.public_base_url}/api/v1/blobs/{blob_id}"

    async def read(self, blob_id: str) -> bytes:
        """Read the bytes of a blob."""
        path = self._path(blob_id)
        if not path.is_file():
            raise NotFound("blob", blob_id)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read blob {blob_id}: {e}") from e

    async def content_type(self, blob_id: str) -> str:
        """Content type recorded when the blob was stored."""
        type_path = self._path(blob_id).with_name(blob_id + _TYPE_SUFFIX)
        if not type_path.is_file():
            return "application/octet-stream"
        return type_path.read_text(encoding="utf-8").strip() or "application/octet-stream"
