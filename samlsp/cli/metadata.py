"""IdP metadata CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import httpx

from samlsp.core.errors import SAMLSPError

# Common option for JSON output
json_option = click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON for scripting",
)


def entity_summary(entity: Any) -> dict[str, Any]:
    """Summarize an entity descriptor for display."""
    sso_services = []
    certificates = 0
    for descriptor in entity.idp_sso_descriptors:
        certificates += len(descriptor.key_descriptors)
        for endpoint in descriptor.single_sign_on_services:
            sso_services.append({"binding": endpoint.binding, "location": endpoint.location})

    return {
        "entity_id": entity.entity_id,
        "is_idp": entity.is_idp,
        "sso_services": sso_services,
        "certificate_count": certificates,
        "valid_until": entity.valid_until.isoformat() if entity.valid_until else None,
    }


def print_entity(entity: Any, as_json: bool = False) -> None:
    """Print an entity as JSON or formatted text."""
    summary = entity_summary(entity)
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(f"Entity ID: {summary['entity_id']}")
    if summary["valid_until"]:
        click.echo(f"Valid until: {summary['valid_until']}")
    click.echo(f"Certificates: {summary['certificate_count']}")
    click.echo("Single sign-on services:")
    for service in summary["sso_services"]:
        click.echo(f"  {service['binding']}")
        click.echo(f"    {service['location']}")


@click.group()
def metadata() -> None:
    """Inspect SAML IdP metadata.

    Both a single EntityDescriptor document and an EntitiesDescriptor
    collection are accepted. For a collection, the first entity that
    advertises an IDPSSODescriptor is selected.
    """
    pass


@metadata.command("parse")
@click.argument("metadata_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))  # type: ignore[type-var]
@json_option
def metadata_parse(metadata_file: Path, output_json: bool) -> None:
    """Decode a local metadata file and show the selected IdP.

    Examples:

        samlsp metadata parse idp-metadata.xml

        samlsp metadata parse federation.xml --json
    """
    from samlsp.core.saml import decode_idp_metadata

    try:
        entity = decode_idp_metadata(metadata_file.read_bytes())
    except SAMLSPError as e:
        raise click.ClickException(str(e)) from None

    print_entity(entity, output_json)


@metadata.command("fetch")
@click.argument("url")
@click.option(
    "--retry-count",
    type=click.IntRange(min=0),
    default=10,
    show_default=True,
    help="Retries after the first failed attempt",
)
@click.option(
    "--retry-delay",
    type=click.FloatRange(min=0),
    default=5.0,
    show_default=True,
    help="Seconds to wait between attempts",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=10.0,
    show_default=True,
    help="Per-request timeout in seconds",
)
@json_option
def metadata_fetch(
    url: str,
    retry_count: int,
    retry_delay: float,
    timeout: float,
    output_json: bool,
) -> None:
    """Fetch remote metadata and show the selected IdP.

    Network failures and non-200 answers are retried with a fixed delay.

    Examples:

        samlsp metadata fetch https://idp.example.com/metadata

        samlsp metadata fetch https://idp.example.com/metadata --retry-count 2 --json
    """
    from samlsp.core.logging import LoggingClient
    from samlsp.core.saml import decode_idp_metadata, fetch_metadata

    try:
        with LoggingClient(timeout=timeout) as client:
            data = fetch_metadata(
                url,
                client=client,
                retry_count=retry_count,
                retry_delay=retry_delay,
            )
        entity = decode_idp_metadata(data)
    except (SAMLSPError, httpx.HTTPError, httpx.InvalidURL) as e:
        raise click.ClickException(f"{url}: {e}") from None

    print_entity(entity, output_json)
