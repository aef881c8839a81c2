"""Blob storage for media attachments.

The pipeline only depends on the StorageAdapter protocol. FileSystemStorage
is the bundled implementation: blobs are files under a root directory and
are served from base_url + "/" + path.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from fedicore.media.errors import StorageReadError, StorageWriteError


@runtime_checkable
class StorageAdapter(Protocol):
    """Content store addressed by slash-separated relative paths."""

    async def put(self, path: str, data: bytes, content_type: str) -> None: ...

    async def get(self, path: str) -> bytes: ...

    async def delete(self, path: str) -> None: ...

    def url_for(self, path: str) -> str: ...


def validate_path(path: str) -> PurePosixPath:
    """Reject absolute paths and any path that climbs out of the root."""
    posix = PurePosixPath(path)
    if not path or posix.is_absolute() or ".." in posix.parts:
        raise ValueError(f"invalid storage path: {path!r}")
    return posix


class FileSystemStorage:
    """StorageAdapter backed by a local directory.

    Writes go to a temporary file in the target directory and are renamed
    into place, so readers never observe a half-written blob.
    """

    def __init__(self, root: str | Path, base_url: str) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*validate_path(path).parts)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{validate_path(path)}"

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            raise StorageWriteError(path, str(e)) from e

    async def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            raise StorageReadError(path, str(e)) from e

    async def delete(self, path: str) -> None:
        """Remove a blob. Deleting a missing blob is not an error."""
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as e:
            raise StorageWriteError(path, str(e)) from e

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
