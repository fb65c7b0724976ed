"""
Filesystem-backed blob store for AI-generated replacement images.

Files are written below a root directory and served from a public base URL
(for example by a static file server mounted on that directory).
"""

from __future__ import annotations

import asyncio
import mimetypes
import secrets
import time
from pathlib import Path

from modflow.util.logger import get_logger

logger = get_logger("blob_store")


class LocalBlobStore:
    """Durable blob store writing to a local directory.

    Attributes:
        root: Directory the blobs are written to.
        public_base_url: URL prefix under which `root` is publicly served.
        name_prefix: Prefix for generated file names.
    """

    def __init__(self, root: Path, public_base_url: str, name_prefix: str = "ai-generated") -> None:
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")
        self.name_prefix = name_prefix

    def _file_name(self, content_type: str) -> str:
        extension = mimetypes.guess_extension(content_type.split(";", 1)[0].strip()) or ".bin"
        if extension == ".jpe":
            extension = ".jpg"
        return f"{self.name_prefix}-{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)

    async def upload(self, data: bytes, content_type: str) -> str:
        """Persist `data` and return its public URL.

        Raises:
            ValueError: If `data` is empty.
            OSError: If the file cannot be written.
        """
        if not data:
            raise ValueError("refusing to upload an empty blob")

        file_name = self._file_name(content_type)
        await asyncio.to_thread(self._write, self.root / file_name, data)
        url = f"{self.public_base_url}/{file_name}"
        logger.info("[BLOB STORE] Stored %d bytes as %s", len(data), file_name)
        return url
