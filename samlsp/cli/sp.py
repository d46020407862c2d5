"""Service provider CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import httpx

from samlsp.cli.metadata import entity_summary, json_option
from samlsp.core.errors import SAMLSPError


@click.group()
def sp() -> None:
    """Inspect the configured service provider.

    Settings come from ~/.samlsp/config.yaml (or --config) and SAMLSP_*
    environment variables.
    """
    pass


@sp.command("show")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),  # type: ignore[type-var]
    help="Path to config.yaml",
)
@json_option
def sp_show(config_path: Path | None, output_json: bool) -> None:
    """Build the SP and show its endpoints, cookie policy and IdPs.

    If an IdP metadata URL is configured it is fetched first, with the
    configured retry settings.
    """
    from samlsp.config import build_middleware, load_settings
    from samlsp.core.crypto import certificate_fingerprint

    try:
        settings = load_settings(config_path)
        middleware = build_middleware(settings)
    except (SAMLSPError, httpx.HTTPError) as e:
        raise click.ClickException(str(e)) from None

    provider = middleware.service_provider
    primary = provider.idp_metadata
    data: dict[str, Any] = {
        "entity_id": provider.entity_id,
        "metadata_url": provider.metadata_url,
        "acs_url": provider.acs_url,
        "certificate_fingerprint": certificate_fingerprint(provider.certificate),
        "force_authn": provider.force_authn.value,
        "allow_idp_initiated": middleware.allow_idp_initiated,
        "cookie": {
            "name": middleware.cookie_name,
            "domain": middleware.cookie_domain,
            "max_age": int(middleware.cookie_max_age.total_seconds()),
        },
        "primary_idp": primary.entity_id if primary else None,
        "idps": [entity_summary(entity) for entity in provider.idp_metadatas.values()],
    }

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("Service provider:")
    click.echo(f"  Entity ID: {data['entity_id']}")
    click.echo(f"  Metadata URL: {data['metadata_url']}")
    click.echo(f"  ACS URL: {data['acs_url']}")
    click.echo(f"  Certificate (SHA-256): {data['certificate_fingerprint']}")
    click.echo(f"  ForceAuthn: {data['force_authn']}")
    click.echo(f"  IdP-initiated SSO: {'allowed' if data['allow_idp_initiated'] else 'refused'}")
    click.echo("")
    click.echo("Cookie:")
    click.echo(f"  Name: {data['cookie']['name']}")
    click.echo(f"  Domain: {data['cookie']['domain']}")
    click.echo(f"  Max age: {data['cookie']['max_age']}s")
    click.echo("")
    if not data["idps"]:
        click.echo("No IdPs registered.")
        return
    click.echo(f"IdPs ({len(data['idps'])}):")
    for idp in data["idps"]:
        marker = " (primary)" if idp["entity_id"] == data["primary_idp"] else ""
        click.echo(f"  {idp['entity_id']}{marker}")
