"""Exception hierarchy shared by the fetch, assembly and conversion stages."""

from __future__ import annotations


class PacktEpubError(Exception):
    """Base class for every error the CLI reports to the operator."""


class FetchError(PacktEpubError):
    """A network, transport or non-2xx failure while requesting a resource."""

    def __init__(self, url: str, reason: object) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class DecodeError(PacktEpubError):
    """Metadata returned by the content API did not have the expected shape."""


class AssemblyError(PacktEpubError):
    """The EPUB archive could not be built or written."""


class ConversionError(PacktEpubError):
    """The optional post-processing conversion step failed."""


class CredentialError(PacktEpubError):
    """No bearer token could be found for the content API."""
