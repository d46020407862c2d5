"""SP key material CLI commands."""

from pathlib import Path

import click


@click.group()
def keys() -> None:
    """Manage the SP signing key and certificate."""
    pass


@keys.command("generate")
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),  # type: ignore[type-var]
    required=True,
    help="Output directory for sp.key and sp.crt",
)
@click.option(
    "--common-name",
    "-cn",
    default="localhost",
    help="Common Name (CN) for the certificate",
)
@click.option(
    "--days",
    "-d",
    type=click.IntRange(min=1),
    default=365,
    help="Days the certificate is valid",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing files",
)
def keys_generate(output: Path, common_name: str, days: int, force: bool) -> None:
    """Generate an RSA key and self-signed SP certificate.

    Examples:

        samlsp keys generate --output ~/.samlsp

        samlsp keys generate -o ./certs --common-name sp.example.com --days 730
    """
    from samlsp.core.crypto import (
        SP_CERT_FILENAME,
        SP_KEY_FILENAME,
        certificate_fingerprint,
        generate_private_key,
        generate_self_signed_certificate,
        save_certificate,
        save_private_key,
    )

    key_path = output / SP_KEY_FILENAME
    cert_path = output / SP_CERT_FILENAME

    if not force and (cert_path.exists() or key_path.exists()):
        raise click.ClickException(
            f"Key files already exist at {output}. Use --force to overwrite."
        )

    private_key = generate_private_key()
    cert = generate_self_signed_certificate(
        private_key,
        common_name=common_name,
        days_valid=days,
    )
    save_private_key(private_key, key_path)
    save_certificate(cert, cert_path)

    click.echo("SP key pair generated.")
    click.echo(f"  Private key: {key_path}")
    click.echo(f"  Certificate: {cert_path}")
    click.echo(f"  Fingerprint (SHA-256): {certificate_fingerprint(cert)}")
