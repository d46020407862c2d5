"""Service provider identity handed to the SAML protocol engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from samlsp.core.saml.metadata import EntityDescriptor
from samlsp.core.saml.registry import IdPRegistry


class ForceAuthn(StrEnum):
    """ForceAuthn policy for AuthnRequests.

    ``UNSET`` leaves the attribute off the request so the IdP applies its
    protocol default.
    """

    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_bool(cls, value: bool | None) -> ForceAuthn:
        if value is None:
            return cls.UNSET
        return cls.TRUE if value else cls.FALSE

    def as_attribute(self) -> str | None:
        """Value for the AuthnRequest ForceAuthn attribute, or None to omit it."""
        if self is ForceAuthn.UNSET:
            return None
        return self.value


@dataclass(frozen=True, eq=False)
class ServiceProvider:
    """SP configuration consumed by the protocol engine.

    Instances are frozen: the derived endpoint URLs are fixed at
    construction. The IdP registry is the only part that changes, and only
    through the owning middleware.
    """

    key: rsa.RSAPrivateKey
    certificate: x509.Certificate
    metadata_url: str
    acs_url: str
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("samlsp"))
    force_authn: ForceAuthn = ForceAuthn.UNSET
    idp_registry: IdPRegistry = field(default_factory=IdPRegistry)

    @property
    def entity_id(self) -> str:
        """SP entity ID, which is its metadata URL."""
        return self.metadata_url

    @property
    def idp_metadata(self) -> EntityDescriptor | None:
        """Single-IdP view: the most recently added IdP."""
        return self.idp_registry.primary

    @property
    def idp_metadatas(self) -> IdPRegistry:
        """All registered IdPs keyed by entity ID."""
        return self.idp_registry
