"""SAML metadata decoding, IdP registry and SP configuration."""

from samlsp.core.saml.fetch import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    USER_AGENT,
    fetch_metadata,
)
from samlsp.core.saml.metadata import (
    BINDING_HTTP_ARTIFACT,
    BINDING_HTTP_POST,
    BINDING_HTTP_REDIRECT,
    Endpoint,
    EntitiesDescriptor,
    EntityDescriptor,
    IDPSSODescriptor,
    KeyDescriptor,
    decode_idp_metadata,
    parse_entities_descriptor,
    parse_entity_descriptor,
)
from samlsp.core.saml.registry import IdPRegistry
from samlsp.core.saml.sp import ForceAuthn, ServiceProvider

__all__ = [
    "BINDING_HTTP_ARTIFACT",
    "BINDING_HTTP_POST",
    "BINDING_HTTP_REDIRECT",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "USER_AGENT",
    "Endpoint",
    "EntitiesDescriptor",
    "EntityDescriptor",
    "ForceAuthn",
    "IDPSSODescriptor",
    "IdPRegistry",
    "KeyDescriptor",
    "ServiceProvider",
    "decode_idp_metadata",
    "fetch_metadata",
    "parse_entities_descriptor",
    "parse_entity_descriptor",
]
