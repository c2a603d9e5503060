"""Core shared logic for the broker client.

This module contains the immutable client configuration and the pure
functions the client is built from: header construction, retry policy,
backoff calculation, response classification, payload decoding and the
trace renderer.
"""

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional, TypeVar

import httpx
import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from boss.client.errors import APIError, ErrorKind, TransportError, ValidationError
from boss.config.settings import (
    DEFAULT_BROKER_API_VERSION,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
)

if TYPE_CHECKING:
    from boss.config.settings import BrokerSettings

M = TypeVar("M", bound=BaseModel)

# Paths under this prefix belong to the versioned OSB API
VERSIONED_PREFIX = "/v2/"

# Separator printed around every traced request and response
TRACE_SEPARATOR = "================================="

# Network-level faults worth another attempt, matched against error text
RETRYABLE_MESSAGES = ("connection refused", "timeout", "temporary failure")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for broker client instances.

    Attributes:
        url: Base URL of the broker (e.g., https://10.0.0.5)
        username: Basic auth username
        password: Basic auth password
        insecure_skip_verify: Skip TLS certificate verification. This makes
            connections open to man-in-the-middle attacks; use it only for
            development brokers with self-signed certificates.
        debug: Log requests and responses
        trace: Dump full HTTP exchanges (implies debug)
        timeout: Request timeout in seconds
        max_retries: Maximum number of retry attempts for failed requests
        broker_api_version: Value of the X-Broker-API-Version header
    """

    url: str
    username: str = ""
    password: str = ""
    insecure_skip_verify: bool = False
    debug: bool = False
    trace: bool = False
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    broker_api_version: str = DEFAULT_BROKER_API_VERSION

    @property
    def debug_enabled(self) -> bool:
        return self.debug or self.trace

    @classmethod
    def from_settings(cls, settings: "BrokerSettings", **overrides: Any) -> "ClientConfig":
        """Build a config from BrokerSettings, applying non-None overrides.

        Args:
            settings: Settings loaded from the environment
            **overrides: Field values (typically CLI flags); None is ignored

        Returns:
            New ClientConfig
        """
        config = cls(
            url=settings.url or "",
            username=settings.username or "",
            password=settings.password or "",
            insecure_skip_verify=settings.skip_verify,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            broker_api_version=settings.broker_api_version,
        )
        return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def build_headers(config: ClientConfig, path: str, structured: bool) -> dict[str, str]:
    """Build request headers for a broker call.

    Basic authentication is configured on the transport, so it is not
    part of these headers.

    Args:
        config: Client configuration
        path: Request path, used to detect versioned endpoints
        structured: True for JSON calls, False for plain-text retrieval

    Returns:
        Header mapping for the request
    """
    headers: dict[str, str] = {}
    if path.startswith(VERSIONED_PREFIX):
        headers["X-Broker-API-Version"] = config.broker_api_version
    if structured:
        headers["Content-Type"] = "application/json"
        headers["Accept"] = "application/json"
    return headers


def is_retryable(error: Exception) -> bool:
    """Determine if a failure may go away on another attempt.

    Only server errors (5xx) and network faults whose text mentions a
    refused connection, a timeout or a temporary resolution failure are
    retryable. Client errors (4xx), malformed payloads and malformed URLs
    will not be resolved by retrying.

    Args:
        error: The error raised by the attempt

    Returns:
        True if the failure is retryable
    """
    if getattr(error, "kind", None) is ErrorKind.API:
        return error.retryable

    text = str(error).lower()
    return any(fragment in text for fragment in RETRYABLE_MESSAGES)


def calculate_backoff(retry: int) -> float:
    """Calculate the delay before a retry.

    Uses the formula ``retry ** 2`` seconds (1s, 4s, 9s, ...), not the
    usual ``base * 2 ** n``. Keep the schedule as is.

    Args:
        retry: Retry number (1 for the first retry)

    Returns:
        Delay in seconds before the retry
    """
    return float(retry * retry)


def parse_error_response(response: httpx.Response) -> APIError:
    """Build an APIError from an error response.

    A body of the form ``{"error": ..., "description": ..., "error_code": ...}``
    with a non-empty ``error`` becomes a typed APIError. Anything else is
    reported as a generic ``HTTPError`` embedding the status line and the
    raw body.

    Args:
        response: httpx Response with a 4xx/5xx status

    Returns:
        APIError carrying the HTTP status
    """
    status = response.status_code
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
        sub_code = data.get("error_code")
        return APIError.from_payload(
            status_code=status,
            error_code=data["error"],
            description=str(data.get("description") or ""),
            sub_error_code=str(sub_code) if sub_code else None,
        )

    description = f"HTTP {status}: {status} {response.reason_phrase}"
    if response.content:
        description += " - " + response.text
    return APIError.from_payload(
        status_code=status, error_code="HTTPError", description=description
    )


def classify_response(method: str, response: httpx.Response) -> None:
    """Raise the appropriate error for a non-successful response.

    Args:
        method: HTTP method of the request
        response: httpx Response (body already read)

    Raises:
        APIError: For 4xx/5xx responses (except DELETE answered with 410)
        TransportError: For any other status outside 2xx
    """
    status = response.status_code

    # Deleting something already gone is fine
    if method == "DELETE" and status == 410:
        return

    if status >= 400:
        raise parse_error_response(response)

    if status < 200 or status > 299:
        raise TransportError(
            f"unexpected status {status}: {status} {response.reason_phrase}",
            status_code=status,
        )


def decode_json(response: httpx.Response, model: Optional[type[M]] = None) -> Any:
    """Decode a successful response body.

    Args:
        response: httpx Response with a 2xx status
        model: Optional pydantic model to validate the body into

    Returns:
        The model instance, the raw decoded JSON when no model is given,
        or None for an empty body

    Raises:
        ValidationError: If the body is not valid JSON or does not fit the model
    """
    if not response.content:
        return None

    try:
        data = response.json()
    except ValueError as e:
        raise ValidationError(
            f"failed to parse response: {e}",
            status_code=response.status_code,
            details={"response_text": response.text[:500]},
        ) from e

    if model is None:
        return data

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"failed to parse response: {e}",
            status_code=response.status_code,
            details={"model": model.__name__},
        ) from e


def validate_yaml(content: str) -> Any:
    """Parse YAML text to check that it is well-formed.

    Returns:
        The parsed document

    Raises:
        ValidationError: If the text is not valid YAML
    """
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValidationError(f"invalid YAML: {e}") from e


def _render_headers(headers: httpx.Headers) -> list[str]:
    lines = []
    for name, value in headers.items():
        if name.lower() == "authorization":
            scheme = value.split(" ", 1)[0]
            value = f"{scheme} ********"
        lines.append(f"{name}: {value}")
    return lines


def render_request(request: httpx.Request) -> str:
    """Render an outgoing request the way it goes on the wire."""
    target = request.url.raw_path.decode("ascii", errors="replace")
    lines = [f"{request.method} {target} HTTP/1.1"]
    lines.extend(_render_headers(request.headers))
    body = request.content.decode("utf-8", errors="replace") if request.content else ""
    return "\n".join(lines) + "\n\n" + body


def render_response(response: httpx.Response, include_body: bool = True) -> str:
    """Render an incoming response: status line, headers and (optionally) body."""
    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
    lines.extend(_render_headers(response.headers))
    body = response.text if include_body else ""
    return "\n".join(lines) + "\n\n" + body
