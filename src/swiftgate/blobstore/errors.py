"""Exceptions raised by blob store providers."""


class BlobStoreError(Exception):
    """Raised when a blob store cannot fulfill a request."""


class ContainerNotFoundError(BlobStoreError):
    """The referenced container does not exist at the backend."""

    def __init__(self, container: str) -> None:
        super().__init__(f"Container not found: {container}")
        self.container = container


class BlobNotFoundError(BlobStoreError):
    """The referenced blob does not exist in its container."""

    def __init__(self, container: str, key: str) -> None:
        super().__init__(f"Blob not found: {container}/{key}")
        self.container = container
        self.key = key


class BlobStoreAuthError(BlobStoreError):
    """The backend rejected the supplied identity/credential pair."""
