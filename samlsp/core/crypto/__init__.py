"""SP key and certificate handling."""

from samlsp.core.crypto.certs import (
    SP_CERT_FILENAME,
    SP_KEY_FILENAME,
    CertificateLoadError,
    KeyLoadError,
    certificate_fingerprint,
    generate_private_key,
    generate_self_signed_certificate,
    load_certificate,
    load_private_key,
    save_certificate,
    save_private_key,
)

__all__ = [
    "SP_CERT_FILENAME",
    "SP_KEY_FILENAME",
    "CertificateLoadError",
    "KeyLoadError",
    "certificate_fingerprint",
    "generate_private_key",
    "generate_self_signed_certificate",
    "load_certificate",
    "load_private_key",
    "save_certificate",
    "save_private_key",
]
