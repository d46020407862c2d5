"""Remote IdP metadata retrieval with bounded retries."""

from __future__ import annotations

import logging
import secrets
import threading
import time

import httpx

from samlsp import __version__
from samlsp.core.errors import FetchCancelledError, MetadataStatusError
from samlsp.core.logging import LoggingClient

# Some providers (OneLogin among them) answer 403 to clients that do not
# identify themselves.
USER_AGENT = f"samlsp/{__version__} (SAML metadata client; python-httpx)"

DEFAULT_RETRY_COUNT = 10
DEFAULT_RETRY_DELAY = 5.0  # seconds between attempts
DEFAULT_TIMEOUT = 10.0  # seconds, default client only

_logger = logging.getLogger(__name__)


def _fetch_once(client: httpx.Client, request: httpx.Request) -> bytes:
    response = client.send(request, stream=True)
    try:
        if response.status_code != httpx.codes.OK:
            raise MetadataStatusError(response.status_code, response.reason_phrase)
        return response.read()
    finally:
        response.close()


def _wait(delay: float, cancel: threading.Event | None) -> None:
    if cancel is None:
        time.sleep(delay)
    elif cancel.wait(delay):
        raise FetchCancelledError("metadata fetch cancelled")


def fetch_metadata(
    url: str,
    *,
    client: httpx.Client | None = None,
    retry_count: int = DEFAULT_RETRY_COUNT,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    logger: logging.Logger | None = None,
    cancel: threading.Event | None = None,
) -> bytes:
    """Download a metadata document.

    One GET request is built and sent on every attempt. Transport errors,
    body read errors and non-200 answers are retried after a fixed delay,
    up to ``retry_count`` times after the first attempt; the last error is
    raised once they are used up.

    Args:
        url: Metadata URL.
        client: HTTP client to use. It is never closed or modified. When
            omitted a logging client with a default timeout is used.
        retry_count: Number of retries after the first attempt.
        retry_delay: Seconds to wait between attempts.
        logger: Logger receiving retry warnings.
        cancel: Event that aborts the fetch when set during a wait.

    Returns:
        The response body.

    Raises:
        httpx.HTTPError: Last transport or read error.
        MetadataStatusError: Last non-200 answer.
        FetchCancelledError: If ``cancel`` was set.
    """
    logger = logger or _logger
    owns_client = client is None
    if owns_client:
        client = LoggingClient(timeout=DEFAULT_TIMEOUT)
        client.protocol_logger.start_flow(secrets.token_hex(8), "idp_metadata_fetch")

    try:
        request = client.build_request("GET", url, headers={"User-Agent": USER_AGENT})

        attempt = 0
        while True:
            try:
                data = _fetch_once(client, request)
            except (httpx.HTTPError, MetadataStatusError) as e:
                if attempt >= retry_count:
                    raise
                logger.warning(f"{url}: {e} (will retry)")
                _wait(retry_delay, cancel)
                attempt += 1
                continue

            _logger.debug(f"Fetched {len(data)} bytes of metadata from {url} (attempt {attempt + 1})")
            return data
    finally:
        if owns_client:
            client.protocol_logger.end_flow()
            client.close()
