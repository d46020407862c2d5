"""Protocol logging for SAML metadata exchanges.

Provides HTTP-level logging for debugging IdP metadata retrieval, with
configurable log levels and sensitive data protection.

Log levels:
- ERROR: Only log errors
- INFO: One summary line per exchange (method, URL, status, timing)
- DEBUG: Adds request and response headers, one exchange per redirect hop
- TRACE: Same detail as DEBUG with redaction turned off (requires explicit enable)
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

import httpx

# Custom log level for TRACE (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Module logger
logger = logging.getLogger("samlsp.protocol")


class LogLevel(IntEnum):
    """Protocol logging levels."""

    ERROR = logging.ERROR  # 40
    INFO = logging.INFO  # 20
    DEBUG = logging.DEBUG  # 10
    TRACE = TRACE  # 5


# Patterns for sensitive data redaction
SENSITIVE_PATTERNS = [
    # SAML protocol parameters
    (re.compile(r"(SAMLRequest=)[^&\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(SAMLResponse=)[^&\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(SAMLart=)[^&\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(RelayState=)[^&\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(Signature=)[^&\s]+"), r"\1[REDACTED]"),
    # PEM private keys
    (
        re.compile(
            r"(-----BEGIN (?:RSA |EC |ENCRYPTED )?PRIVATE KEY-----)"
            r".*?"
            r"(-----END (?:RSA |EC |ENCRYPTED )?PRIVATE KEY-----)",
            re.DOTALL,
        ),
        r"\1[REDACTED]\2",
    ),
    # HTTP headers (with or without "Authorization:" prefix for header dict values)
    (re.compile(r"(Authorization:\s*Bearer\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Authorization:\s*Basic\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"^(Bearer\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"^(Basic\s+)[^\s]+", re.IGNORECASE), r"\1[REDACTED]"),
    # Cookies
    (re.compile(r"(Cookie:\s*)[^\r\n]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Set-Cookie:\s*)[^\r\n]+", re.IGNORECASE), r"\1[REDACTED]"),
    # JSON fields
    (re.compile(r'"(password)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
    (re.compile(r'"(private_key)"\s*:\s*"[^"]+"', re.IGNORECASE), r'"\1": "[REDACTED]"'),
]

# Header names whose values are always masked, whatever their format
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "proxy-authorization"})


def redact_sensitive(text: str) -> str:
    """Redact sensitive information from text.

    Args:
        text: Text that may contain sensitive data.

    Returns:
        Text with sensitive data redacted.
    """
    result = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _redact_header(name: str, value: str) -> str:
    if name.lower() in SENSITIVE_HEADERS:
        return "[REDACTED]"
    return redact_sensitive(value)


@dataclass
class HTTPExchange:
    """One HTTP request and its answer, or the error that replaced it.

    A redirect chain is recorded as one exchange per hop.
    """

    id: str
    timestamp: datetime
    method: str
    url: str
    request_headers: dict[str, str]
    response_status: int | None = None
    response_headers: dict[str, str] = field(default_factory=dict)
    duration_ms: float | None = None
    error: str | None = None

    def format_log(self, level: LogLevel, include_sensitive: bool = False) -> str:
        """Format the exchange for logging.

        The summary line is always present. Headers are added at DEBUG and
        below; ``include_sensitive`` turns redaction off.
        """
        url = self.url if include_sensitive else redact_sensitive(self.url)
        lines = [f"HTTP {self.method} {url} -> {self.response_status or 'ERROR'}"]

        if self.duration_ms is not None:
            lines.append(f"  Duration: {self.duration_ms:.1f}ms")
        if self.error:
            lines.append(f"  Error: {self.error}")

        if level <= LogLevel.DEBUG:
            for title, headers in (
                ("Request Headers", self.request_headers),
                ("Response Headers", self.response_headers),
            ):
                if not headers:
                    continue
                lines.append(f"  {title}:")
                for name, value in headers.items():
                    shown = value if include_sensitive else _redact_header(name, value)
                    lines.append(f"    {name}: {shown}")

        return "\n".join(lines)


@dataclass
class ProtocolLog:
    """Collects the exchanges of one flow, such as a metadata fetch."""

    flow_id: str
    flow_type: str
    exchanges: list[HTTPExchange] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    def add_exchange(self, exchange: HTTPExchange) -> None:
        self.exchanges.append(exchange)

    def complete(self) -> None:
        self.completed_at = datetime.now(UTC)

    @property
    def duration_ms(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000


class ProtocolLogger:
    """Configurable protocol logger for metadata exchanges.

    Manages log level settings and provides HTTP transport hooks
    for capturing request/response data.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        trace_enabled: bool = False,
    ) -> None:
        """Initialize the protocol logger.

        Args:
            level: Minimum log level.
            trace_enabled: Whether TRACE level is enabled (for sensitive data).
        """
        self._level = level
        self._trace_enabled = trace_enabled
        self._current_log: ProtocolLog | None = None

    @property
    def level(self) -> LogLevel:
        """Get current log level."""
        return self._level

    @level.setter
    def level(self, value: LogLevel) -> None:
        self._level = value

    @property
    def trace_enabled(self) -> bool:
        """Whether TRACE level is enabled."""
        return self._trace_enabled

    @trace_enabled.setter
    def trace_enabled(self, value: bool) -> None:
        self._trace_enabled = value

    @property
    def effective_level(self) -> LogLevel:
        """Get effective log level (TRACE only if explicitly enabled)."""
        if self._level == LogLevel.TRACE and not self._trace_enabled:
            return LogLevel.DEBUG
        return self._level

    @property
    def current_log(self) -> ProtocolLog | None:
        """The log of the flow in progress, if any."""
        return self._current_log

    def start_flow(self, flow_id: str, flow_type: str) -> ProtocolLog:
        """Start logging a new flow.

        Args:
            flow_id: Unique identifier for the flow.
            flow_type: Type of flow (e.g., "idp_metadata_fetch").

        Returns:
            ProtocolLog for the flow.
        """
        self._current_log = ProtocolLog(flow_id=flow_id, flow_type=flow_type)
        logger.info(f"Started protocol logging for {flow_type} flow: {flow_id}")
        return self._current_log

    def end_flow(self) -> ProtocolLog | None:
        """End the current flow and return the log.

        Returns:
            The completed ProtocolLog, or None if no flow was active.
        """
        if self._current_log:
            self._current_log.complete()
            log = self._current_log
            logger.info(
                f"Completed protocol logging for {log.flow_type} flow: {log.flow_id} "
                f"({len(log.exchanges)} exchanges, {log.duration_ms:.1f}ms)"
            )
            self._current_log = None
            return log
        return None

    def log_exchange(self, exchange: HTTPExchange) -> None:
        """Log an HTTP exchange.

        Args:
            exchange: The HTTP exchange to log.
        """
        if self._current_log:
            self._current_log.add_exchange(exchange)

        effective = self.effective_level
        include_sensitive = self._trace_enabled and self._level <= LogLevel.TRACE

        if effective <= LogLevel.DEBUG:
            logger.debug(exchange.format_log(effective, include_sensitive))
        elif effective <= LogLevel.INFO:
            logger.info(exchange.format_log(effective, include_sensitive))

        if exchange.error:
            url = exchange.url if include_sensitive else redact_sensitive(exchange.url)
            logger.error(f"HTTP error: {exchange.method} {url}: {exchange.error}")

    def create_transport(self, transport: httpx.BaseTransport | None = None) -> LoggingTransport:
        """Create an httpx transport that logs requests/responses.

        Args:
            transport: Transport to wrap. Defaults to a plain HTTPTransport.

        Returns:
            LoggingTransport configured with this logger.
        """
        return LoggingTransport(self, transport)


class LoggingTransport(httpx.BaseTransport):
    """HTTPX transport that logs all HTTP exchanges.

    Response bodies are not read here, so streamed responses stay unconsumed
    for the caller.
    """

    def __init__(
        self,
        protocol_logger: ProtocolLogger,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._logger = protocol_logger
        self._transport = transport or httpx.HTTPTransport()
        self._exchange_counter = 0

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self._exchange_counter += 1
        exchange = HTTPExchange(
            id=f"http_{self._exchange_counter:04d}",
            timestamp=datetime.now(UTC),
            method=request.method,
            url=str(request.url),
            request_headers=dict(request.headers),
        )
        start_time = time.perf_counter()

        try:
            response = self._transport.handle_request(request)
        except Exception as e:
            exchange.duration_ms = (time.perf_counter() - start_time) * 1000
            exchange.error = str(e) or type(e).__name__
            self._logger.log_exchange(exchange)
            raise

        exchange.duration_ms = (time.perf_counter() - start_time) * 1000
        exchange.response_status = response.status_code
        exchange.response_headers = dict(response.headers)
        self._logger.log_exchange(exchange)
        return response

    def close(self) -> None:
        """Close the underlying transport."""
        self._transport.close()


class LoggingClient(httpx.Client):
    """HTTPX client with protocol logging support.

    Every request sent through the client, including each hop of a redirect
    chain, is recorded by the protocol logger.
    """

    def __init__(
        self,
        protocol_logger: ProtocolLogger | None = None,
        transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the logging client.

        Args:
            protocol_logger: ProtocolLogger to use. Uses the global one if not provided.
            transport: Transport to wrap with logging.
            **kwargs: Additional arguments passed to httpx.Client.
        """
        self._protocol_logger = protocol_logger or get_protocol_logger()
        kwargs.setdefault("follow_redirects", True)
        super().__init__(
            transport=self._protocol_logger.create_transport(transport),
            **kwargs,
        )

    @property
    def protocol_logger(self) -> ProtocolLogger:
        """Get the protocol logger."""
        return self._protocol_logger


# Global protocol logger instance
_global_logger: ProtocolLogger | None = None


def get_protocol_logger() -> ProtocolLogger:
    """Get the global protocol logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = ProtocolLogger()
    return _global_logger


def set_protocol_logger(logger_instance: ProtocolLogger) -> None:
    """Set the global protocol logger instance."""
    global _global_logger
    _global_logger = logger_instance


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    trace_enabled: bool = False,
    log_file: str | None = None,
) -> ProtocolLogger:
    """Configure samlsp logging.

    Attaches handlers to the ``samlsp`` logger, which carries both the SP
    logging capability and the protocol logger.

    Args:
        level: Log level (ERROR, INFO, DEBUG, TRACE) or string name.
        trace_enabled: Whether to enable TRACE level (includes sensitive data).
        log_file: Optional file path to write logs to.

    Returns:
        Configured ProtocolLogger.
    """
    if isinstance(level, str):
        level_map = {
            "ERROR": LogLevel.ERROR,
            "INFO": LogLevel.INFO,
            "DEBUG": LogLevel.DEBUG,
            "TRACE": LogLevel.TRACE,
        }
        level = level_map.get(level.upper(), LogLevel.INFO)

    root = logging.getLogger("samlsp")
    root.setLevel(level)
    root.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    protocol_logger = ProtocolLogger(level=level, trace_enabled=trace_enabled)
    set_protocol_logger(protocol_logger)

    if trace_enabled:
        logger.warning("TRACE logging enabled - URLs and headers are logged without redaction")

    return protocol_logger
