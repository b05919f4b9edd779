"""Transient in-memory blob store for swiftgate.

Implements the BlobStore protocol using Python dictionaries. Nothing
survives a restart: every store starts empty, and a fresh store is a fresh
namespace. The provider performs no credential check, so the gateway keeps
reusing one store per identity for as long as its session lives.

Container listings come back in insertion order, not sorted. Names are held
in URL-escaped form, the same way the gateway's routes address them.
"""

import hashlib
import logging

from swiftgate.blobstore.errors import BlobNotFoundError, ContainerNotFoundError

logger = logging.getLogger(__name__)


class TransientBlobStore:
    """Blob store that holds all containers and blobs in memory.

    Containers are stored in a dictionary keyed by name, each mapping blob
    keys to ``(data, etag)`` tuples.

    Attributes:
        identity: The identity this namespace was created for.
    """

    provider = "transient"
    ordered_listing = False
    escape_names = True

    def __init__(self, identity: str = "") -> None:
        self.identity = identity
        # container -> key -> (data, etag)
        self._containers: dict[str, dict[str, tuple[bytes, str]]] = {}

    def _container(self, container: str) -> dict[str, tuple[bytes, str]]:
        try:
            return self._containers[container]
        except KeyError:
            raise ContainerNotFoundError(container) from None

    async def close(self) -> None:
        """Drop all containers held by this store."""
        self._containers.clear()

    async def list_containers(self) -> list[str]:
        return list(self._containers)

    async def container_exists(self, container: str) -> bool:
        return container in self._containers

    async def create_container(self, container: str) -> bool:
        if container in self._containers:
            return False
        self._containers[container] = {}
        logger.debug("Created transient container %s for %s", container, self.identity)
        return True

    async def delete_container(self, container: str) -> None:
        """Delete a container and all of its blobs.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """
        self._container(container)
        del self._containers[container]

    async def put_blob(self, container: str, key: str, data: bytes) -> str:
        """Store a blob's bytes in memory.

        Returns:
            The hex-encoded MD5 of the stored data.
        """
        blobs = self._container(container)
        etag = hashlib.md5(data).hexdigest()
        blobs[key] = (data, etag)
        return etag

    async def get_blob(self, container: str, key: str) -> bytes:
        blobs = self._container(container)
        if key not in blobs:
            raise BlobNotFoundError(container, key)
        data, _ = blobs[key]
        return data

    async def blob_exists(self, container: str, key: str) -> bool:
        return key in self._container(container)

    async def remove_blob(self, container: str, key: str) -> None:
        """Delete a blob from memory. Silently ignores missing blobs."""
        self._container(container).pop(key, None)
