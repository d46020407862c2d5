"""Exceptions raised while configuring the SP and resolving IdP metadata."""

from __future__ import annotations


class SAMLSPError(Exception):
    """Base exception for all samlsp errors."""


class ConfigurationError(SAMLSPError):
    """Raised when options are missing or malformed."""


class MetadataError(SAMLSPError):
    """Base exception for metadata decode and content errors."""


class MetadataDecodeError(MetadataError):
    """Raised when a metadata document cannot be decoded."""


class UnexpectedRootElementError(MetadataDecodeError):
    """Raised when the document root is not the element the decoder expects.

    Carries both qualified names so callers can branch on the actual root
    instead of inspecting the message.
    """

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected element type <{expected}> but have <{actual}>")


class NoIdPEntityError(MetadataError):
    """Raised when an EntitiesDescriptor holds no IdP-capable entity."""


class MetadataStatusError(SAMLSPError):
    """Raised when the metadata endpoint answers with a non-200 status."""

    def __init__(self, status_code: int, reason_phrase: str = "") -> None:
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        super().__init__(f"{status_code} {reason_phrase}".rstrip())


class FetchCancelledError(SAMLSPError):
    """Raised when a metadata fetch is cancelled by the caller."""
