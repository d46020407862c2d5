"""Pytest configuration and fixtures."""

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from samlsp.core.crypto import (
    generate_private_key,
    generate_self_signed_certificate,
    save_certificate,
    save_private_key,
)
from samlsp.middleware import Options

IDP_ENTITY_ID = "https://idp.example.com/metadata"
SECOND_IDP_ENTITY_ID = "https://login.example.org/saml2"

IDP_METADATA = b"""<?xml version="1.0" encoding="UTF-8"?>
<md:EntityDescriptor xmlns:md="urn:oasis:names:tc:SAML:2.0:metadata"
    xmlns:ds="http://www.w3.org/2000/09/xmldsig#"
    entityID="https://idp.example.com/metadata"
    validUntil="2030-01-01T00:00:00Z"
    cacheDuration="PT48H">
  <md:IDPSSODescriptor WantAuthnRequestsSigned="true"
      protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol">
    <md:KeyDescriptor use="signing">
      <ds:KeyInfo>
        <ds:X509Data>
          <ds:X509Certificate>
            MIIDdzCCAl+gAwIBAgIEbySuqTANBgkqhkiG9w0BAQsFADBs
            MRAwDgYDVQQGEwdVbmtub3duMRAwDgYDVQQIEwdVbmtub3du
          </ds:X509Certificate>
        </ds:X509Data>
      </ds:KeyInfo>
    </md:KeyDescriptor>
    <md:KeyDescriptor use="encryption">
      <ds:KeyInfo>
        <ds:X509Data>
          <ds:X509Certificate>MIIEncryptionCertificate</ds:X509Certificate>
        </ds:X509Data>
      </ds:KeyInfo>
    </md:KeyDescriptor>
    <md:SingleLogoutService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
        Location="https://idp.example.com/slo"/>
    <md:NameIDFormat>urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress</md:NameIDFormat>
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
        Location="https://idp.example.com/sso/redirect"/>
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
        Location="https://idp.example.com/sso/post"/>
  </md:IDPSSODescriptor>
</md:EntityDescriptor>
"""

SECOND_IDP_METADATA = b"""<md:EntityDescriptor xmlns:md="urn:oasis:names:tc:SAML:2.0:metadata"
    entityID="https://login.example.org/saml2">
  <md:IDPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol">
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
        Location="https://login.example.org/saml2/sso"/>
  </md:IDPSSODescriptor>
</md:EntityDescriptor>
"""

# An SP first, then two IdPs; the first IdP must win
ENTITIES_METADATA = b"""<?xml version="1.0" encoding="UTF-8"?>
<md:EntitiesDescriptor xmlns:md="urn:oasis:names:tc:SAML:2.0:metadata" Name="urn:example:federation">
  <md:EntityDescriptor entityID="https://sp.example.net/metadata">
    <md:SPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol">
      <md:AssertionConsumerService index="0"
          Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
          Location="https://sp.example.net/saml/acs"/>
    </md:SPSSODescriptor>
  </md:EntityDescriptor>
  <md:EntityDescriptor entityID="https://idp.example.com/metadata">
    <md:IDPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol">
      <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
          Location="https://idp.example.com/sso/post"/>
    </md:IDPSSODescriptor>
  </md:EntityDescriptor>
  <md:EntityDescriptor entityID="https://login.example.org/saml2">
    <md:IDPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol">
      <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
          Location="https://login.example.org/saml2/sso"/>
    </md:IDPSSODescriptor>
  </md:EntityDescriptor>
</md:EntitiesDescriptor>
"""

NO_IDP_ENTITIES_METADATA = b"""<md:EntitiesDescriptor xmlns:md="urn:oasis:names:tc:SAML:2.0:metadata">
  <md:EntityDescriptor entityID="https://sp1.example.net/metadata">
    <md:SPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol"/>
  </md:EntityDescriptor>
  <md:EntityDescriptor entityID="https://sp2.example.net/metadata">
    <md:SPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol"/>
  </md:EntityDescriptor>
</md:EntitiesDescriptor>
"""


@pytest.fixture(scope="session")
def sp_key() -> rsa.RSAPrivateKey:
    """SP private key, generated once per test session."""
    return generate_private_key()


@pytest.fixture(scope="session")
def sp_certificate(sp_key: rsa.RSAPrivateKey) -> x509.Certificate:
    """Self-signed SP certificate for ``sp_key``."""
    return generate_self_signed_certificate(sp_key, common_name="sp.example.com")


@pytest.fixture
def key_files(
    tmp_path: Path, sp_key: rsa.RSAPrivateKey, sp_certificate: x509.Certificate
) -> tuple[Path, Path]:
    """SP key and certificate written as PEM files."""
    key_path = tmp_path / "sp.key"
    cert_path = tmp_path / "sp.crt"
    save_private_key(sp_key, key_path)
    save_certificate(sp_certificate, cert_path)
    return key_path, cert_path


@pytest.fixture
def options(sp_key: rsa.RSAPrivateKey, sp_certificate: x509.Certificate) -> Options:
    """Minimal middleware options without remote metadata."""
    return Options(
        url="https://sp.example.com/app",
        key=sp_key,
        certificate=sp_certificate,
        retry_delay=0,
    )


@pytest.fixture
def metadata_server() -> Callable[..., tuple[httpx.Client, list[httpx.Request]]]:
    """Build an httpx client whose transport serves scripted answers.

    Each answer is a response body (served with status 200), a status code,
    or an exception to raise. The last answer repeats once the script runs
    out. Returns the client and the list of requests it received.
    """
    def factory(*answers: bytes | int | Exception) -> tuple[httpx.Client, list[httpx.Request]]:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            answer = answers[min(len(requests), len(answers)) - 1]
            if isinstance(answer, Exception):
                raise answer
            if isinstance(answer, int):
                return httpx.Response(answer, text="unavailable")
            return httpx.Response(200, content=answer)

        return httpx.Client(transport=httpx.MockTransport(handler)), requests

    return factory
