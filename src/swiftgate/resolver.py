"""Backend handle resolution for swiftgate.

A backend handle is bound to one identity and yields the blob store that
serves it, optionally scoped by container and key. Handles come from a
resolver, which also decides whether an identity/credential pair is valid.

Two resolvers exist and one is chosen when the application is built:

- ``LocatorResolver`` defers everything to a locator supplied by the
  embedding application.
- ``ProviderResolver`` opens stores of the single provider named in the
  configuration.
"""

import hmac
import logging
from typing import Protocol

from swiftgate.blobstore import BlobStore, BlobStoreAuthError, get_provider
from swiftgate.config import ProviderConfig

logger = logging.getLogger(__name__)


class BackendHandle(Protocol):
    """Capability yielding the blob store of one identity."""

    async def get(self, container: str | None = None, key: str | None = None) -> BlobStore | None:
        """Return the store serving ``container``/``key``, or None if gone."""
        ...


class BlobStoreLocator(Protocol):
    """Maps ``(identity, container, key)`` to ``(secret, store)`` or None."""

    async def locate(
        self, identity: str, container: str | None, key: str | None
    ) -> tuple[str, BlobStore] | None:
        ...


class HandleResolver(Protocol):
    """Verifies credentials and produces backend handles."""

    async def verify(
        self, identity: str, credential: str, previous: BackendHandle | None
    ) -> BackendHandle | None:
        """Return a handle for ``identity`` or None if verification fails.

        Args:
            identity: The identity logging in.
            credential: The secret presented for it.
            previous: The handle currently cached for the identity, if any.
        """
        ...


class StoreHandle:
    """Handle over one already-opened store; scoping hints are ignored."""

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    async def get(self, container: str | None = None, key: str | None = None) -> BlobStore:
        return self.store


class LocatorHandle:
    """Handle that asks the locator again for every scoped request."""

    def __init__(self, locator: BlobStoreLocator, identity: str) -> None:
        self.locator = locator
        self.identity = identity

    async def get(self, container: str | None = None, key: str | None = None) -> BlobStore | None:
        entry = await self.locator.locate(self.identity, container, key)
        if entry is None:
            logger.debug("locator no longer knows %s", self.identity)
            return None
        return entry[1]


class LocatorResolver:
    """Resolver backed by an externally supplied locator."""

    def __init__(self, locator: BlobStoreLocator) -> None:
        self.locator = locator

    async def verify(
        self, identity: str, credential: str, previous: BackendHandle | None
    ) -> BackendHandle | None:
        entry = await self.locator.locate(identity, None, None)
        if entry is not None and hmac.compare_digest(
            entry[0].encode("utf-8"), credential.encode("utf-8")
        ):
            logger.debug("blob store for %s found", identity)
            return LocatorHandle(self.locator, identity)
        logger.debug("blob store for %s not found", identity)
        return None


class ProviderResolver:
    """Resolver for the single provider named in the configuration.

    Attributes:
        config: The provider configuration section.
        provider: The provider registry entry, including its capabilities.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config
        self.provider = get_provider(config.kind)

    async def recover(self) -> None:
        """Run the provider's startup recovery, if it has one."""
        if self.provider.recover is not None:
            logger.info("running %s startup recovery", self.provider.kind)
            await self.provider.recover(self.config)

    async def verify(
        self, identity: str, credential: str, previous: BackendHandle | None
    ) -> BackendHandle | None:
        """Open a store with the supplied credentials.

        Providers without a credential check keep the identity's existing
        handle, so repeat logins land in the same namespace.

        Raises:
            BlobStoreError: If the backend connection cannot be established
                for reasons other than rejected credentials.
        """
        if self.provider.idempotent_identity and previous is not None:
            logger.debug("reusing %s blob store for %s", self.provider.kind, identity)
            return previous

        logger.debug("authenticating %s with configured provider %s", identity, self.provider.kind)
        try:
            store = await self.provider.open(self.config, identity, credential)
        except BlobStoreAuthError as exc:
            logger.debug("provider %s rejected %s: %s", self.provider.kind, identity, exc)
            return None
        return StoreHandle(store)
