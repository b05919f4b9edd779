"""Abstract blob store protocol for swiftgate."""

from typing import Protocol


class BlobStore(Protocol):
    """Protocol defining the provider-agnostic blob store interface.

    All providers (transient, filesystem, AWS S3) implement this interface.
    Containers hold blobs addressed by key; the gateway never assumes a
    particular storage layout behind it.

    Attributes:
        provider: The provider kind that produced this store.
        ordered_listing: True if ``list_containers`` returns names in
            lexicographic order. Unordered stores are sorted by the gateway.
        escape_names: True if the store keeps names in URL-escaped form, so
            names taken from request bodies must be escaped before lookup.
    """

    provider: str
    ordered_listing: bool
    escape_names: bool

    async def close(self) -> None:
        """Release resources held by the store."""
        ...

    async def list_containers(self) -> list[str]:
        """Return the names of all containers in the store."""
        ...

    async def container_exists(self, container: str) -> bool:
        """Check whether a container exists.

        Args:
            container: The container name.

        Returns:
            True if the container exists.
        """
        ...

    async def create_container(self, container: str) -> bool:
        """Create a container.

        Args:
            container: The container name.

        Returns:
            True if the container was created, False if it already existed.
        """
        ...

    async def delete_container(self, container: str) -> None:
        """Delete a container together with every blob it holds.

        Args:
            container: The container name.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """
        ...

    async def put_blob(self, container: str, key: str, data: bytes) -> str:
        """Store a blob's bytes.

        Args:
            container: The container name.
            key: The blob key.
            data: The raw bytes to store.

        Returns:
            The hex-encoded MD5 ETag of the stored data.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """
        ...

    async def get_blob(self, container: str, key: str) -> bytes:
        """Retrieve a blob's bytes.

        Raises:
            ContainerNotFoundError: If the container does not exist.
            BlobNotFoundError: If the blob does not exist.
        """
        ...

    async def blob_exists(self, container: str, key: str) -> bool:
        """Check whether a blob exists.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """
        ...

    async def remove_blob(self, container: str, key: str) -> None:
        """Delete a blob. Missing blobs are ignored.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """
        ...
