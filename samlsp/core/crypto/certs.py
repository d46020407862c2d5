"""SP key material management.

Loads the SP private key and certificate from PEM data or files, and
generates a self-signed signing pair for development setups.
"""

from __future__ import annotations

import os
import stat
from datetime import UTC, datetime, timedelta
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from samlsp.core.errors import ConfigurationError

# File names used for a generated SP pair
SP_KEY_FILENAME = "sp.key"
SP_CERT_FILENAME = "sp.crt"


class KeyLoadError(ConfigurationError):
    """Raised when a private key cannot be loaded."""


class CertificateLoadError(ConfigurationError):
    """Raised when a certificate cannot be loaded."""


def _read_pem(source: Path | str | bytes, error: type[ConfigurationError], what: str) -> bytes:
    if isinstance(source, bytes):
        return source
    path = Path(source)
    if not path.exists():
        raise error(f"{what} file not found: {path}")
    try:
        return path.read_bytes()
    except OSError as e:
        raise error(f"Cannot read {what.lower()} file {path}: {e}") from e


def generate_private_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    """Generate an RSA private key.

    Args:
        key_size: RSA key size in bits. Default 2048.

    Returns:
        RSA private key.
    """
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def generate_self_signed_certificate(
    private_key: rsa.RSAPrivateKey,
    common_name: str = "localhost",
    organization: str = "samlsp",
    days_valid: int = 365,
) -> x509.Certificate:
    """Generate a self-signed X.509 certificate for SAML signing.

    Args:
        private_key: RSA private key to sign the certificate.
        common_name: Common Name (CN) for the certificate subject.
        organization: Organization (O) for the certificate subject.
        days_valid: Number of days the certificate is valid.

    Returns:
        Self-signed X.509 certificate.
    """
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])

    now = datetime.now(UTC)

    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=days_valid))
        .add_extension(
            x509.BasicConstraints(ca=False, path_length=None),
            critical=True,
        )
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                key_encipherment=True,
                content_commitment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(private_key, hashes.SHA256())
    )


def save_private_key(
    private_key: rsa.RSAPrivateKey,
    path: Path,
    password: bytes | None = None,
) -> None:
    """Save a private key to a PEM file with secure permissions.

    Args:
        private_key: RSA private key to save.
        path: Path to write the key file.
        password: Optional password to encrypt the key.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    encryption = (
        serialization.BestAvailableEncryption(password)
        if password
        else serialization.NoEncryption()
    )

    pem_data = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption,
    )

    # Write with restricted permissions (0600)
    path.touch(mode=0o600)
    path.write_bytes(pem_data)
    os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)


def save_certificate(cert: x509.Certificate, path: Path) -> None:
    """Save a certificate to a PEM file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))


def load_private_key(
    source: Path | str | bytes,
    password: bytes | None = None,
) -> rsa.RSAPrivateKey:
    """Load the SP private key.

    Args:
        source: Path to a PEM file, or the PEM data itself.
        password: Optional password if key is encrypted.

    Returns:
        RSA private key.

    Raises:
        KeyLoadError: If the key cannot be loaded or is not an RSA key.
    """
    pem_data = _read_pem(source, KeyLoadError, "Private key")
    try:
        key = serialization.load_pem_private_key(pem_data, password=password)
    except (ValueError, TypeError) as e:
        raise KeyLoadError(f"Failed to load private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError(f"Expected RSA private key, got {type(key).__name__}")
    return key


def load_certificate(source: Path | str | bytes) -> x509.Certificate:
    """Load the SP certificate.

    Args:
        source: Path to a PEM file, or the PEM data itself.

    Returns:
        X.509 certificate.

    Raises:
        CertificateLoadError: If the certificate cannot be loaded.
    """
    pem_data = _read_pem(source, CertificateLoadError, "Certificate")
    try:
        return x509.load_pem_x509_certificate(pem_data)
    except ValueError as e:
        raise CertificateLoadError(f"Failed to load certificate: {e}") from e


def certificate_fingerprint(cert: x509.Certificate) -> str:
    """Return the SHA-256 fingerprint as colon-separated hex."""
    digest = cert.fingerprint(hashes.SHA256()).hex().upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))
