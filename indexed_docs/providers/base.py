"""Base interface for documentation providers."""

from abc import ABC, abstractmethod
from typing import List

from ..models import DocEntry, PackageIdentity, ProviderDescriptor, RawDocument


class DocsProvider(ABC):
    """Abstract base class for documentation providers.

    A provider knows how to fetch documentation for one kind of package
    source and how to turn it into entries. Fetching is I/O bound and may be
    retried by the caller; parsing is pure so it can be tested on fixtures.
    """

    def __init__(self, provider_id: str, display_name: str):
        """Initialize provider with its registry id and display name."""
        self.descriptor = ProviderDescriptor(id=provider_id, display_name=display_name)

    @property
    def id(self) -> str:
        return self.descriptor.id

    @abstractmethod
    async def fetch_raw(self, identity: PackageIdentity) -> RawDocument:
        """
        Retrieve unparsed documentation for a package.

        Args:
            identity: Package to fetch

        Returns:
            RawDocument with the provider's native export

        Raises:
            FetchError: NOT_FOUND, NETWORK_ERROR or RATE_LIMITED
        """
        pass

    @abstractmethod
    def parse(self, raw: RawDocument) -> List[DocEntry]:
        """
        Turn raw documentation into entries. Must not perform I/O.

        Args:
            raw: Document returned by fetch_raw

        Returns:
            List of DocEntry objects

        Raises:
            ParseError: If the raw content is malformed
        """
        pass

    def suggest_packages(self) -> List[str]:
        """Package names worth offering to the user. Empty by default."""
        return []

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None
