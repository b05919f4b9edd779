"""Local filesystem blob store for swiftgate.

Containers are directories directly under the configured root and blobs are
files stored under ``{root}/{container}/{key}``. Nested keys create nested
directories.

Crash-only design:
    - Atomic writes via temp-fsync-rename pattern.
    - Never acknowledge before data is fsync'd to disk.
    - Startup recovery removes orphan temp files left by interrupted writes.
"""

import hashlib
import logging
import os
import re
import shutil
import uuid
from pathlib import Path

from swiftgate.blobstore.errors import (
    BlobNotFoundError,
    BlobStoreError,
    ContainerNotFoundError,
)

logger = logging.getLogger(__name__)

_RESERVED_NAMES = {"", ".", ".."}

# Temp files written by put_blob: "{name}.tmp.{8 hex}"
_TEMP_NAME = re.compile(r".\.tmp\.[0-9a-f]{8}$")


class FilesystemBlobStore:
    """Blob store that persists containers and blobs on the local filesystem.

    Attributes:
        root: The root directory holding one directory per container.
    """

    provider = "filesystem"
    ordered_listing = True
    escape_names = False

    def __init__(self, root: str | Path) -> None:
        """Initialize the filesystem blob store.

        Args:
            root: Root directory path for container storage.
        """
        self.root = Path(root)

    def _container_path(self, container: str) -> Path:
        """Return the directory for a container.

        Raises:
            BlobStoreError: If the name would resolve outside the root.
        """
        if container in _RESERVED_NAMES or "/" in container or os.sep in container:
            raise BlobStoreError(f"Invalid container name: {container!r}")
        return self.root / container

    def _blob_path(self, container: str, key: str) -> Path:
        """Return the file path for a blob, requiring its container to exist.

        Raises:
            BlobStoreError: If the key would resolve outside the container.
            ContainerNotFoundError: If the container does not exist.
        """
        container_dir = self._container_path(container)
        segments = key.split("/")
        if any(segment in _RESERVED_NAMES for segment in segments):
            raise BlobStoreError(f"Invalid blob key: {key!r}")
        if not container_dir.is_dir():
            raise ContainerNotFoundError(container)
        return container_dir.joinpath(*segments)

    async def init(self) -> None:
        """Create the root directory if needed.

        Runs on every login, so it must not touch files that concurrent
        sessions may be writing.
        """
        self.root.mkdir(parents=True, exist_ok=True)

    async def recover(self) -> int:
        """Remove orphan temp files left by interrupted atomic writes.

        Only names of the exact form ``put_blob`` writes are removed. Call
        once at startup, before any session can be writing.

        Returns:
            The number of files removed.
        """
        count = 0
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for fname in filenames:
                if _TEMP_NAME.search(fname):
                    try:
                        os.unlink(os.path.join(dirpath, fname))
                        count += 1
                    except OSError:
                        pass
        if count > 0:
            logger.info("Cleaned %d orphan temp files under %s", count, self.root)
        return count

    async def close(self) -> None:
        """No-op for the filesystem store."""
        pass

    async def list_containers(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(entry.name for entry in self.root.iterdir() if entry.is_dir())

    async def container_exists(self, container: str) -> bool:
        return self._container_path(container).is_dir()

    async def create_container(self, container: str) -> bool:
        path = self._container_path(container)
        if path.is_dir():
            return False
        path.mkdir(parents=True)
        return True

    async def delete_container(self, container: str) -> None:
        """Delete a container directory and everything below it.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """
        path = self._container_path(container)
        if not path.is_dir():
            raise ContainerNotFoundError(container)
        shutil.rmtree(path)

    async def put_blob(self, container: str, key: str, data: bytes) -> str:
        """Store a blob's bytes on the local filesystem.

        Uses the atomic temp-fsync-rename pattern for crash safety.

        Returns:
            The hex-encoded MD5 of the stored data.
        """
        path = self._blob_path(container, key)
        path.parent.mkdir(parents=True, exist_ok=True)

        md5 = hashlib.md5(data).hexdigest()

        # Atomic write: temp file -> fsync -> rename
        tmp = path.with_name(f"{path.name}.tmp.{uuid.uuid4().hex[:8]}")
        try:
            fd = os.open(str(tmp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
            try:
                os.write(fd, data)
                os.fsync(fd)
            finally:
                os.close(fd)
            tmp.rename(path)
        except Exception:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise

        return md5

    async def get_blob(self, container: str, key: str) -> bytes:
        path = self._blob_path(container, key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError):
            raise BlobNotFoundError(container, key) from None

    async def blob_exists(self, container: str, key: str) -> bool:
        return self._blob_path(container, key).is_file()

    async def remove_blob(self, container: str, key: str) -> None:
        """Delete a blob file.

        Silently ignores missing files. Cleans up empty parent directories
        up to the container directory.
        """
        path = self._blob_path(container, key)

        try:
            path.unlink()
        except FileNotFoundError:
            return

        container_dir = self.root / container
        parent = path.parent
        while parent != container_dir:
            try:
                parent.rmdir()  # Only removes empty dirs
            except OSError:
                break
            parent = parent.parent
