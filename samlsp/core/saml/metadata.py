"""SAML 2.0 metadata decoding.

Decodes IdP metadata documents into immutable descriptor records. Two
document shapes are accepted: a single ``md:EntityDescriptor`` root, or an
``md:EntitiesDescriptor`` collection from which the first IdP-capable member
is selected.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from datetime import datetime

from lxml import etree

from samlsp.core.errors import (
    MetadataDecodeError,
    NoIdPEntityError,
    UnexpectedRootElementError,
)

# SAML metadata namespaces
MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"
NS = {"md": MD_NS, "ds": DS_NS}

ENTITY_DESCRIPTOR = "md:EntityDescriptor"
ENTITIES_DESCRIPTOR = "md:EntitiesDescriptor"

# SAML bindings
BINDING_HTTP_POST = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
BINDING_HTTP_REDIRECT = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
BINDING_HTTP_ARTIFACT = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Artifact"

# Parser hardened against entity expansion and external fetches
_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_comments=True,
    huge_tree=False,
)


@dataclass(frozen=True)
class Endpoint:
    """A protocol endpoint advertised in metadata."""

    binding: str
    location: str
    response_location: str | None = None


@dataclass(frozen=True)
class KeyDescriptor:
    """A certificate published for signing and/or encryption."""

    use: str | None
    certificate: str

    @property
    def pem(self) -> str:
        """The certificate wrapped in PEM armour."""
        body = "\n".join(textwrap.wrap(self.certificate, 64))
        return f"-----BEGIN CERTIFICATE-----\n{body}\n-----END CERTIFICATE-----\n"


@dataclass(frozen=True)
class IDPSSODescriptor:
    """IdP single sign-on role of an entity."""

    protocol_support_enumeration: tuple[str, ...] = ()
    want_authn_requests_signed: bool = False
    key_descriptors: tuple[KeyDescriptor, ...] = ()
    single_sign_on_services: tuple[Endpoint, ...] = ()
    single_logout_services: tuple[Endpoint, ...] = ()
    name_id_formats: tuple[str, ...] = ()

    @property
    def signing_certificates(self) -> list[str]:
        """Certificates usable for verifying IdP signatures.

        A key descriptor without a ``use`` attribute applies to both signing
        and encryption.
        """
        return [k.certificate for k in self.key_descriptors if k.use in (None, "signing")]

    def sso_endpoint(self, binding: str | None = None) -> Endpoint | None:
        """Find a single sign-on endpoint.

        Args:
            binding: Binding to look for. When omitted, HTTP-POST is preferred
                over HTTP-Redirect.

        Returns:
            The matching endpoint, or None.
        """
        bindings = [binding] if binding else [BINDING_HTTP_POST, BINDING_HTTP_REDIRECT]
        for wanted in bindings:
            for endpoint in self.single_sign_on_services:
                if endpoint.binding == wanted:
                    return endpoint
        return None


@dataclass(frozen=True)
class EntityDescriptor:
    """Metadata record of one SAML entity.

    The raw element is kept in ``xml`` as opaque payload for the protocol
    engine.
    """

    entity_id: str
    idp_sso_descriptors: tuple[IDPSSODescriptor, ...] = ()
    sp_sso_descriptor_count: int = 0
    valid_until: datetime | None = None
    cache_duration: str | None = None
    xml: bytes = field(default=b"", repr=False, compare=False)

    @property
    def is_idp(self) -> bool:
        """Whether the entity advertises at least one IdP SSO descriptor."""
        return len(self.idp_sso_descriptors) > 0


@dataclass(frozen=True)
class EntitiesDescriptor:
    """A collection of entity descriptors, in document order."""

    name: str | None = None
    entity_descriptors: tuple[EntityDescriptor, ...] = ()


def _qualified_name(element: etree._Element) -> str:
    qname = etree.QName(element)
    if qname.namespace == MD_NS:
        return f"md:{qname.localname}"
    if qname.namespace:
        return f"{{{qname.namespace}}}{qname.localname}"
    return qname.localname


def _parse_root(data: bytes | str, expected: str) -> etree._Element:
    """Parse a document and check its root element.

    Raises:
        MetadataDecodeError: If the document is not well-formed XML.
        UnexpectedRootElementError: If the root element is not ``expected``.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        root = etree.fromstring(data, parser=_PARSER)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise MetadataDecodeError(f"Invalid metadata XML: {e}") from e

    actual = _qualified_name(root)
    if actual != expected:
        raise UnexpectedRootElementError(expected, actual)
    return root


def _parse_endpoints(parent: etree._Element, tag: str) -> tuple[Endpoint, ...]:
    endpoints = []
    for elem in parent.findall(f"md:{tag}", NS):
        binding = elem.get("Binding")
        location = elem.get("Location")
        if not binding or not location:
            raise MetadataDecodeError(f"<md:{tag}> requires Binding and Location attributes")
        endpoints.append(Endpoint(binding, location, elem.get("ResponseLocation")))
    return tuple(endpoints)


def _parse_key_descriptor(elem: etree._Element) -> KeyDescriptor | None:
    cert = elem.find("ds:KeyInfo/ds:X509Data/ds:X509Certificate", NS)
    if cert is None or not cert.text:
        return None
    return KeyDescriptor(use=elem.get("use"), certificate="".join(cert.text.split()))


def _parse_idp_sso_descriptor(elem: etree._Element) -> IDPSSODescriptor:
    keys = [_parse_key_descriptor(k) for k in elem.findall("md:KeyDescriptor", NS)]
    return IDPSSODescriptor(
        protocol_support_enumeration=tuple(
            (elem.get("protocolSupportEnumeration") or "").split()
        ),
        want_authn_requests_signed=elem.get("WantAuthnRequestsSigned") in ("true", "1"),
        key_descriptors=tuple(k for k in keys if k is not None),
        single_sign_on_services=_parse_endpoints(elem, "SingleSignOnService"),
        single_logout_services=_parse_endpoints(elem, "SingleLogoutService"),
        name_id_formats=tuple(
            n.text.strip() for n in elem.findall("md:NameIDFormat", NS) if n.text
        ),
    )


def _parse_valid_until(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise MetadataDecodeError(f"Invalid validUntil value: {value!r}") from e


def _build_entity(elem: etree._Element) -> EntityDescriptor:
    entity_id = elem.get("entityID")
    if not entity_id:
        raise MetadataDecodeError("<md:EntityDescriptor> is missing the entityID attribute")

    return EntityDescriptor(
        entity_id=entity_id,
        idp_sso_descriptors=tuple(
            _parse_idp_sso_descriptor(d) for d in elem.findall("md:IDPSSODescriptor", NS)
        ),
        sp_sso_descriptor_count=len(elem.findall("md:SPSSODescriptor", NS)),
        valid_until=_parse_valid_until(elem.get("validUntil")),
        cache_duration=elem.get("cacheDuration"),
        xml=etree.tostring(elem),
    )


def parse_entity_descriptor(data: bytes | str) -> EntityDescriptor:
    """Decode a document whose root is a single ``md:EntityDescriptor``.

    Raises:
        MetadataDecodeError: If the document is malformed or has no entityID.
        UnexpectedRootElementError: If the root is any other element.
    """
    return _build_entity(_parse_root(data, ENTITY_DESCRIPTOR))


def parse_entities_descriptor(data: bytes | str) -> EntitiesDescriptor:
    """Decode a document whose root is an ``md:EntitiesDescriptor`` collection.

    Only direct ``md:EntityDescriptor`` children are collected.
    """
    root = _parse_root(data, ENTITIES_DESCRIPTOR)
    return EntitiesDescriptor(
        name=root.get("Name"),
        entity_descriptors=tuple(
            _build_entity(e) for e in root.findall("md:EntityDescriptor", NS)
        ),
    )


def decode_idp_metadata(data: bytes | str) -> EntityDescriptor:
    """Decode IdP metadata in either document shape.

    The document is first decoded as a single entity. Only when that fails
    because the root is an ``md:EntitiesDescriptor`` is it decoded as a
    collection, and the first member with an IdP SSO descriptor is returned.
    Every other decode error propagates unchanged.

    Args:
        data: Raw metadata document.

    Returns:
        The selected entity descriptor.

    Raises:
        MetadataDecodeError: If either decode path fails structurally.
        NoIdPEntityError: If the collection holds no IdP-capable entity.
    """
    try:
        return parse_entity_descriptor(data)
    except UnexpectedRootElementError as e:
        if e.actual != ENTITIES_DESCRIPTOR:
            raise

    entities = parse_entities_descriptor(data)
    for entity in entities.entity_descriptors:
        if entity.is_idp:
            return entity
    raise NoIdPEntityError("no entity found with IDPSSODescriptor")
