"""Blob store providers for swiftgate."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from swiftgate.blobstore.backend import BlobStore
from swiftgate.blobstore.errors import (
    BlobNotFoundError,
    BlobStoreAuthError,
    BlobStoreError,
    ContainerNotFoundError,
)

if TYPE_CHECKING:
    from swiftgate.config import ProviderConfig

__all__ = [
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreAuthError",
    "BlobStoreError",
    "ContainerNotFoundError",
    "PROVIDERS",
    "ProviderSpec",
    "get_provider",
]

StoreFactory = Callable[["ProviderConfig", str, str], Awaitable[BlobStore]]
RecoveryHook = Callable[["ProviderConfig"], Awaitable[None]]


@dataclass(frozen=True)
class ProviderSpec:
    """A provider kind and its capabilities.

    Attributes:
        kind: The configuration name of the provider.
        idempotent_identity: The provider performs no credential check and
            its namespaces are per store instance, so a repeat login for the
            same identity must keep the store it already has.
        open: Coroutine factory ``(config, identity, credential) -> store``.
        recover: Optional startup hook that repairs provider state once,
            before the first login.
    """

    kind: str
    idempotent_identity: bool
    open: StoreFactory
    recover: RecoveryHook | None = None


async def _open_transient(config: "ProviderConfig", identity: str, credential: str) -> BlobStore:
    from swiftgate.blobstore.transient import TransientBlobStore

    return TransientBlobStore(identity)


async def _open_filesystem(config: "ProviderConfig", identity: str, credential: str) -> BlobStore:
    from swiftgate.blobstore.filesystem import FilesystemBlobStore

    store = FilesystemBlobStore(config.filesystem_root)
    await store.init()
    return store


async def _recover_filesystem(config: "ProviderConfig") -> None:
    from swiftgate.blobstore.filesystem import FilesystemBlobStore

    store = FilesystemBlobStore(config.filesystem_root)
    await store.init()
    await store.recover()


async def _open_aws(config: "ProviderConfig", identity: str, credential: str) -> BlobStore:
    try:
        from swiftgate.blobstore.aws import AWSBlobStore
    except ImportError as exc:
        raise ImportError(
            "aiobotocore is required for the aws-s3 provider. "
            "Install with: pip install swiftgate[aws]"
        ) from exc

    store = AWSBlobStore(
        access_key_id=identity,
        secret_access_key=credential,
        region=config.aws_region,
        endpoint_url=config.aws_endpoint_url,
        use_path_style=config.aws_use_path_style,
    )
    await store.init()
    return store


PROVIDERS: dict[str, ProviderSpec] = {
    "transient": ProviderSpec("transient", idempotent_identity=True, open=_open_transient),
    "filesystem": ProviderSpec(
        "filesystem",
        idempotent_identity=False,
        open=_open_filesystem,
        recover=_recover_filesystem,
    ),
    "aws-s3": ProviderSpec("aws-s3", idempotent_identity=False, open=_open_aws),
}


def get_provider(kind: str) -> ProviderSpec:
    """Look up a provider by its configuration name.

    Raises:
        ValueError: If the provider kind is unknown.
    """
    try:
        return PROVIDERS[kind]
    except KeyError:
        raise ValueError(f"Unknown blob store provider: {kind}") from None
