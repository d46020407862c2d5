"""SP middleware bootstrap.

Resolves declarative :class:`Options` into a configured
:class:`~samlsp.core.saml.sp.ServiceProvider`, and loads trusted IdP
metadata either from a document supplied directly or from a remote URL.

Construction with a metadata URL blocks until the metadata is fetched or
the retries are used up; there is no partially initialised middleware.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlsplit, urlunsplit

import httpx
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from samlsp.core.errors import ConfigurationError
from samlsp.core.saml.fetch import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY, fetch_metadata
from samlsp.core.saml.metadata import EntityDescriptor, decode_idp_metadata
from samlsp.core.saml.registry import IdPRegistry
from samlsp.core.saml.sp import ForceAuthn, ServiceProvider

DEFAULT_COOKIE_NAME = "token"
DEFAULT_COOKIE_MAX_AGE = timedelta(hours=1)

METADATA_PATH = "/saml/metadata"
ACS_PATH = "/saml/acs"

logger = logging.getLogger(__name__)


@dataclass
class Options:
    """Parameters for building a :class:`Middleware`.

    ``url`` is the SP base URL. Fields left as None take their defaults.
    """

    url: str
    key: rsa.RSAPrivateKey
    certificate: x509.Certificate
    logger: logging.Logger | None = None
    allow_idp_initiated: bool = False
    idp_metadata: EntityDescriptor | None = None
    idp_metadata_url: str | None = None
    http_client: httpx.Client | None = None
    cookie_max_age: timedelta | None = None
    cookie_name: str | None = None
    force_authn: bool = False
    retry_count: int | None = None
    retry_delay: float = DEFAULT_RETRY_DELAY


def _derive_url(base: str, suffix: str) -> str:
    parts = urlsplit(base)
    return urlunsplit(parts._replace(path=parts.path + suffix))


def _check_http_url(value: str, field_name: str) -> None:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigurationError(f"{field_name} must be an absolute http(s) URL: {value!r}")


def _validate(options: Options) -> None:
    if not options.url:
        raise ConfigurationError("url is required")
    _check_http_url(options.url, "url")
    if not isinstance(options.key, rsa.RSAPrivateKey):
        raise ConfigurationError("key must be an RSA private key")
    if not isinstance(options.certificate, x509.Certificate):
        raise ConfigurationError("certificate must be an X.509 certificate")
    if options.idp_metadata_url is not None:
        _check_http_url(options.idp_metadata_url, "idp_metadata_url")
    if options.retry_count is not None and options.retry_count < 0:
        raise ConfigurationError(f"retry_count must not be negative: {options.retry_count}")
    if options.retry_delay < 0:
        raise ConfigurationError(f"retry_delay must not be negative: {options.retry_delay}")
    if options.cookie_max_age is not None and options.cookie_max_age < timedelta(0):
        raise ConfigurationError("cookie_max_age must not be negative")


class Middleware:
    """A configured SP together with its cookie policy and IdP registry."""

    def __init__(
        self,
        service_provider: ServiceProvider,
        *,
        allow_idp_initiated: bool = False,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        cookie_max_age: timedelta = DEFAULT_COOKIE_MAX_AGE,
        cookie_domain: str = "",
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        self._service_provider = service_provider
        self._allow_idp_initiated = allow_idp_initiated
        self._cookie_name = cookie_name
        self._cookie_max_age = cookie_max_age
        self._cookie_domain = cookie_domain
        self._retry_count = retry_count
        self._retry_delay = retry_delay

    @classmethod
    def from_options(
        cls,
        options: Options,
        *,
        cancel: threading.Event | None = None,
    ) -> Middleware:
        """Build a middleware from options.

        When ``options.idp_metadata_url`` is set, the metadata is fetched
        before returning and any failure is raised to the caller.

        Args:
            options: SP options.
            cancel: Event that aborts a pending metadata fetch.

        Returns:
            The configured middleware.

        Raises:
            ConfigurationError: If an option is missing or malformed.
        """
        _validate(options)

        service_provider = ServiceProvider(
            key=options.key,
            certificate=options.certificate,
            metadata_url=_derive_url(options.url, METADATA_PATH),
            acs_url=_derive_url(options.url, ACS_PATH),
            logger=options.logger or logging.getLogger("samlsp"),
            force_authn=ForceAuthn.from_bool(options.force_authn),
            idp_registry=IdPRegistry(primary=options.idp_metadata),
        )

        middleware = cls(
            service_provider,
            allow_idp_initiated=options.allow_idp_initiated,
            cookie_name=options.cookie_name or DEFAULT_COOKIE_NAME,
            cookie_max_age=options.cookie_max_age or DEFAULT_COOKIE_MAX_AGE,
            cookie_domain=urlsplit(options.url).hostname or "",
            retry_count=(
                DEFAULT_RETRY_COUNT if options.retry_count is None else options.retry_count
            ),
            retry_delay=options.retry_delay,
        )

        if options.idp_metadata_url is None:
            return middleware

        middleware.fetch_idp_metadata(options.idp_metadata_url, options.http_client, cancel=cancel)
        return middleware

    @property
    def service_provider(self) -> ServiceProvider:
        return self._service_provider

    @property
    def allow_idp_initiated(self) -> bool:
        return self._allow_idp_initiated

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    @property
    def cookie_max_age(self) -> timedelta:
        return self._cookie_max_age

    @property
    def cookie_domain(self) -> str:
        return self._cookie_domain

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    def add_idp_metadata(self, data: bytes | str) -> EntityDescriptor:
        """Decode IdP metadata and register it under its entity ID.

        The decoded entity also becomes the SP's primary IdP. On a decode
        error the registry is left untouched.

        Args:
            data: Metadata document, single entity or collection.

        Returns:
            The registered entity.
        """
        entity = decode_idp_metadata(data)
        self._service_provider.idp_registry.add(entity)
        self._service_provider.logger.info(f"Registered IdP {entity.entity_id}")
        return entity

    def fetch_idp_metadata(
        self,
        url: str,
        client: httpx.Client | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> EntityDescriptor:
        """Fetch IdP metadata from ``url`` and register it.

        Network failures are retried per the middleware's retry settings.
        Decode failures are raised straight away without fetching again.

        Args:
            url: Metadata URL.
            client: HTTP client to use instead of the default one.
            cancel: Event that aborts the fetch while waiting between attempts.

        Returns:
            The registered entity.
        """
        logger.info(f"Fetching IdP metadata from {url}")
        data = fetch_metadata(
            url,
            client=client,
            retry_count=self._retry_count,
            retry_delay=self._retry_delay,
            logger=self._service_provider.logger,
            cancel=cancel,
        )
        return self.add_idp_metadata(data)
