"""Synchronous HTTP client for the Blacksmith service broker.

This module provides BrokerClient, a blocking client built on httpx.Client.
It owns request construction, authentication, retries, error
classification and payload validation, and exposes one typed method per
broker operation.
"""

import json
import time
from collections.abc import Iterator
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import BaseModel

from boss.client.cancellation import CancellationToken
from boss.client.core import (
    TRACE_SEPARATOR,
    ClientConfig,
    build_headers,
    calculate_backoff,
    classify_response,
    decode_json,
    is_retryable,
    render_request,
    render_response,
    validate_yaml,
)
from boss.client.errors import (
    BossClientError,
    CancelledError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from boss.client.models import (
    BrokerStatus,
    Catalog,
    Instance,
    LastOperation,
    Plan,
    ProvisionResponse,
    Service,
)
from boss.client.operations import (
    DEFAULT_OPERATION_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    wait_for_operation,
)
from boss.logging import get_logger

logger = get_logger(__name__)
trace_logger = get_logger("boss.client.trace")

M = TypeVar("M", bound=BaseModel)

# Placeholder org/space sent on provision; Blacksmith does not use them
ORG_GUID = "boss"
SPACE_GUID = "boss"

# Fields a usable set of credentials is expected to carry
EXPECTED_CREDENTIAL_FIELDS = ("hostname", "port", "username", "password")

ACCEPTS_INCOMPLETE = {"accepts_incomplete": "true"}


class BrokerClient:
    """Synchronous client for the broker API.

    Construction only stores configuration; ``open()`` (or entering the
    context manager) creates the connection pool, which is then reused for
    every call until ``close()``.

    Usage:
        with BrokerClient(config) as client:
            catalog = client.catalog()

    Attributes:
        config: Immutable client configuration
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration
            transport: Custom httpx transport (tests use httpx.MockTransport)
            sleep: Replacement for time.sleep in backoff and polling waits
            clock: Replacement for time.monotonic in deadline checks
        """
        self.config = config
        self._transport = transport
        self._sleep = sleep
        self._clock = clock or time.monotonic
        self._base_url = ""
        self._auth: Optional[httpx.BasicAuth] = None
        self._client: Optional[httpx.Client] = None

    # -- lifecycle --------------------------------------------------------

    def open(self) -> "BrokerClient":
        """Create the HTTP connection pool. Calling it twice is harmless.

        Returns:
            Self, ready to issue requests
        """
        if self._client is None:
            self._base_url = self.config.url.rstrip("/")
            self._auth = httpx.BasicAuth(self.config.username, self.config.password)
            self._client = httpx.Client(
                auth=self._auth,
                timeout=self.config.timeout,
                verify=not self.config.insecure_skip_verify,
                transport=self._transport,
                trust_env=True,
            )
        return self

    def close(self) -> None:
        """Close the HTTP connection pool."""
        if self._client is not None:
            self._client.close()
            self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def __enter__(self) -> "BrokerClient":
        return self.open()

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        self.close()

    def _http(self) -> httpx.Client:
        if self._client is None:
            raise RuntimeError(
                "Client not opened. Use 'with BrokerClient(config) as client:' "
                "or call open() first"
            )
        return self._client

    # -- timing -----------------------------------------------------------

    def now(self) -> float:
        """Current time from the client's clock, in seconds."""
        return self._clock()

    def pause(
        self,
        seconds: float,
        cancel: Optional[CancellationToken] = None,
        context: str = "",
    ) -> None:
        """Block for ``seconds``, honouring the cancellation token.

        Raises:
            CancelledError: If the token is cancelled before or during the wait
        """
        if cancel is None:
            (self._sleep or time.sleep)(seconds)
            return

        cancel.check_cancellation(context)
        if self._sleep is None:
            cancel.wait(seconds)
        else:
            self._sleep(seconds)
        cancel.check_cancellation(context)

    # -- transport --------------------------------------------------------

    def _build_request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        structured: bool = True,
        timeout: Any = httpx.USE_CLIENT_DEFAULT,
    ) -> httpx.Request:
        url = self._base_url + path

        content = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")

        if self.config.debug_enabled:
            logger.debug(f"REQUEST: {method} {url}")
            if content is not None:
                logger.debug(f"BODY: {content.decode('utf-8')}")

        try:
            request = self._http().build_request(
                method,
                url,
                params=params,
                content=content,
                headers=build_headers(self.config, path, structured),
                timeout=timeout,
            )
        except httpx.InvalidURL as e:
            raise TransportError(
                f"invalid URL {url}: {e}", details={"url": url}
            ) from e

        if self.config.trace:
            # Basic auth is applied inside send(); render the request as it goes out
            authed = next(self._auth.auth_flow(request))
            trace_logger.debug(f"{TRACE_SEPARATOR}\n{render_request(authed)}\n")

        return request

    def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            response = self._http().send(request, stream=stream)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"HTTP request failed: timeout: {type(e).__name__}: {e}",
                details={"url": str(request.url)},
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                f"HTTP request failed: {type(e).__name__}: {e}",
                details={"url": str(request.url)},
            ) from e

        if self.config.trace:
            trace_logger.debug(
                f"{TRACE_SEPARATOR}\n{render_response(response, include_body=not stream)}\n"
            )
        return response

    def _attempt(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]],
        params: Optional[dict[str, str]],
        structured: bool,
    ) -> httpx.Response:
        """One physical attempt: build, send, log and classify."""
        request = self._build_request(method, path, body, params, structured)
        response = self._send(request)

        if self.config.debug_enabled:
            logger.debug(f"RESPONSE: {response.status_code}")
            logger.debug(f"BODY: {response.text}")

        classify_response(method, response)
        return response

    def _make_request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        structured: bool = True,
        cancel: Optional[CancellationToken] = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry handling.

        Issues up to ``max_retries + 1`` attempts, sleeping ``n ** 2``
        seconds before retry ``n``. Non-retryable failures propagate from
        the attempt that produced them.

        Args:
            method: HTTP method (GET, PUT, PATCH, DELETE)
            path: Broker path (appended to the base URL)
            body: JSON request body
            params: Query parameters
            structured: Send JSON Content-Type/Accept headers
            cancel: Optional cancellation token checked around backoff sleeps

        Returns:
            The successful (or DELETE 410) response

        Raises:
            TransportError: Network failure or unexpected status
            APIError: Broker returned an error response
            CancelledError: Cancelled during a backoff sleep
        """
        retries = self.config.max_retries
        attempt = 0

        while True:
            try:
                return self._attempt(method, path, body, params, structured)
            except BossClientError as e:
                if not is_retryable(e):
                    raise

                if attempt >= retries:
                    exhausted = e.with_context(
                        f"request failed after {attempt + 1} attempts"
                    )
                    exhausted.attempts = attempt + 1
                    raise exhausted from e

            attempt += 1
            delay = calculate_backoff(attempt)
            if self.config.debug_enabled:
                logger.debug(
                    f"Retrying request after {delay:.0f}s "
                    f"(attempt {attempt + 1}/{retries + 1})"
                )
            self.pause(delay, cancel, "retry backoff")

    def request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        model: Optional[type[M]] = None,
        params: Optional[dict[str, str]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> tuple[int, Optional[M]]:
        """Make a JSON request and decode the response into ``model``.

        Returns:
            Tuple of HTTP status code and decoded model (None when no model
            was requested or the body is empty)
        """
        response = self._make_request(
            method, path, body=body, params=params, structured=True, cancel=cancel
        )
        if model is None:
            return response.status_code, None
        return response.status_code, decode_json(response, model)

    def text(
        self,
        path: str,
        params: Optional[dict[str, str]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> str:
        """Fetch a plain-text resource.

        Raises:
            TransportError: If the broker answers with anything but 200
        """
        response = self._make_request(
            "GET", path, params=params, structured=False, cancel=cancel
        )
        if response.status_code != 200:
            raise TransportError(
                f"unexpected status {response.status_code}: "
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.text

    # -- catalog ----------------------------------------------------------

    def catalog(self) -> Catalog:
        """Retrieve the service catalog.

        Returns:
            Catalog of all services and plans
        """
        try:
            _, catalog = self.request("GET", "/v2/catalog", model=Catalog)
        except BossClientError as e:
            raise e.with_context("failed to get catalog") from e
        return catalog or Catalog()

    def plan(self, service: str, plan: str) -> tuple[Service, Plan]:
        """Resolve a service/plan pair given by ID or by name.

        Raises:
            NotFoundError: If the catalog has no such pair
        """
        return self.catalog().plan(service, plan)

    # -- registry ---------------------------------------------------------

    def status(self) -> BrokerStatus:
        """Fetch the broker's instance registry and log."""
        _, status = self.request("GET", "/b/status", model=BrokerStatus)
        return status or BrokerStatus()

    def resolve(self, want: str) -> str:
        """Resolve a full or partial instance ID.

        An exact match wins; otherwise the first instance whose ID starts
        with ``want`` is returned.

        Raises:
            NotFoundError: If no instance matches
        """
        try:
            status = self.status()
        except BossClientError as e:
            raise e.with_context("failed to get status") from e

        if want in status.instances:
            return want

        for instance_id in status.instances:
            if instance_id.startswith(want):
                return instance_id

        raise NotFoundError(
            f"no instance found matching '{want}'", details={"query": want}
        )

    def log(self) -> str:
        """Return the broker's own log text."""
        try:
            return self.status().log
        except BossClientError as e:
            raise e.with_context("failed to get log") from e

    def instances(self) -> list[Instance]:
        """List all service instances, newest first.

        Registry entries are joined to the catalog by service and plan ID.
        Entries whose IDs no longer exist in the catalog are kept with no
        service or plan. Instances without a creation time come last,
        ordered by ID.
        """
        catalog = self.catalog()

        try:
            status = self.status()
        except BossClientError as e:
            raise e.with_context("failed to get instance status") from e

        instances = []
        for instance_id, entry in status.instances.items():
            service = plan = None
            found = catalog.plan_by_id(entry.service_id, entry.plan_id)
            if found is not None:
                service, plan = found
            elif self.config.debug_enabled:
                logger.warning(
                    f"Unknown service/plan for instance {instance_id}: "
                    f"{entry.service_id}/{entry.plan_id}"
                )

            instances.append(
                Instance(
                    id=instance_id,
                    service=service,
                    plan=plan,
                    state=entry.state,
                    created_at=entry.created_at,
                    updated_at=entry.updated_at,
                )
            )

        def _sort_key(instance: Instance) -> tuple[bool, float, str]:
            if instance.created_at is None:
                return (True, 0.0, instance.id)
            return (False, -instance.created_at.timestamp(), instance.id)

        return sorted(instances, key=_sort_key)

    # -- lifecycle operations ---------------------------------------------

    def _provision(
        self,
        instance_id: str,
        service_id: str,
        plan_id: str,
        params: Optional[dict[str, Any]],
        context: Optional[dict[str, Any]],
    ) -> tuple[int, ProvisionResponse]:
        body: dict[str, Any] = {
            "service_id": service_id,
            "plan_id": plan_id,
            "organization_guid": ORG_GUID,
            "space_guid": SPACE_GUID,
        }
        if params:
            body["parameters"] = params
        if context:
            body["context"] = context

        status_code, response = self.request(
            "PUT",
            f"/v2/service_instances/{instance_id}",
            body=body,
            model=ProvisionResponse,
            params=ACCEPTS_INCOMPLETE,
        )
        return status_code, response or ProvisionResponse()

    def create(
        self,
        instance_id: str,
        service_id: str,
        plan_id: str,
        params: Optional[dict[str, Any]] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> Instance:
        """Provision a new service instance.

        The broker may complete the work asynchronously; see
        ``create_and_wait`` to block until it is done.

        Args:
            instance_id: ID for the new instance
            service_id: Canonical service ID
            plan_id: Canonical plan ID
            params: Optional provisioning parameters
            context: Optional OSB context object

        Returns:
            Instance carrying the new ID
        """
        try:
            self._provision(instance_id, service_id, plan_id, params, context)
        except BossClientError as e:
            raise e.with_context(f"failed to create instance {instance_id}") from e
        return Instance(id=instance_id)

    def create_and_wait(
        self,
        instance_id: str,
        service_id: str,
        plan_id: str,
        params: Optional[dict[str, Any]] = None,
        context: Optional[dict[str, Any]] = None,
        timeout: float = DEFAULT_OPERATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel: Optional[CancellationToken] = None,
    ) -> Instance:
        """Provision an instance and wait for an asynchronous provision to finish.

        Polling only starts when the broker answers 202 with an operation
        token; any other success returns immediately.

        Raises:
            OperationError: If the operation fails or runs past ``timeout``
        """
        try:
            status_code, response = self._provision(
                instance_id, service_id, plan_id, params, context
            )
        except BossClientError as e:
            raise e.with_context(f"failed to create instance {instance_id}") from e

        if status_code == 202 and response.operation:
            if self.config.debug_enabled:
                logger.debug(f"Instance creation started, operation: {response.operation}")
            try:
                wait_for_operation(
                    self,
                    instance_id,
                    response.operation,
                    timeout=timeout,
                    poll_interval=poll_interval,
                    cancel=cancel,
                )
            except BossClientError as e:
                raise e.with_context(f"instance creation failed for {instance_id}") from e

        return Instance(id=instance_id)

    def update(
        self,
        instance_id: str,
        service_id: str,
        plan_id: str = "",
        params: Optional[dict[str, Any]] = None,
    ) -> Instance:
        """Update an instance's plan and/or parameters.

        Args:
            instance_id: Instance to update
            service_id: Canonical service ID of the instance
            plan_id: New plan ID; omitted from the request when empty
            params: Optional parameters
        """
        body: dict[str, Any] = {"service_id": service_id}
        if plan_id:
            body["plan_id"] = plan_id
        if params:
            body["parameters"] = params

        try:
            self.request(
                "PATCH",
                f"/v2/service_instances/{instance_id}",
                body=body,
                params=ACCEPTS_INCOMPLETE,
            )
        except BossClientError as e:
            raise e.with_context(f"failed to update instance {instance_id}") from e
        return Instance(id=instance_id)

    def delete(self, instance_id: str) -> None:
        """Delete an instance. An instance that is already gone is not an error."""
        try:
            self.request(
                "DELETE",
                f"/v2/service_instances/{instance_id}",
                params=ACCEPTS_INCOMPLETE,
            )
        except BossClientError as e:
            raise e.with_context(f"failed to delete instance {instance_id}") from e

    def last_operation(
        self,
        instance_id: str,
        operation: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> LastOperation:
        """Report the state of the instance's in-flight asynchronous operation."""
        params = {"operation": operation} if operation else None
        try:
            _, status = self.request(
                "GET",
                f"/v2/service_instances/{instance_id}/last_operation",
                model=LastOperation,
                params=params,
                cancel=cancel,
            )
        except BossClientError as e:
            raise e.with_context("failed to get operation status") from e
        return status or LastOperation()

    # -- instance artifacts -----------------------------------------------

    def task(self, instance_id: str) -> str:
        """Return the full deployment task log for an instance."""
        try:
            return self.text(f"/b/{instance_id}/task.log")
        except BossClientError as e:
            raise e.with_context(f"failed to get task log for {instance_id}") from e

    def stream_task(
        self,
        instance_id: str,
        follow: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> Iterator[str]:
        """Yield task log lines as the broker sends them.

        The response is read incrementally over one open connection and is
        never retried. Without ``follow`` the stream ends when the broker
        has sent the current log; with ``follow`` it lasts until the broker
        closes the connection, so callers stop it with ``cancel`` (checked
        between lines) or by closing the generator.

        Raises:
            APIError: If the broker answers with an error status
            TransportError: On a non-200 status or a network failure
            CancelledError: If ``cancel`` fires
        """
        path = f"/b/{instance_id}/task.log"
        context = f"failed to stream task log for {instance_id}"
        params = {"follow": "true"} if follow else None

        try:
            # No read timeout: a followed log may stay quiet for a long time
            request = self._build_request(
                "GET",
                path,
                params=params,
                structured=False,
                timeout=httpx.Timeout(self.config.timeout, read=None),
            )
            response = self._send(request, stream=True)
        except BossClientError as e:
            raise e.with_context(context) from e

        try:
            if response.status_code != 200:
                response.read()
                classify_response("GET", response)
                raise TransportError(
                    f"unexpected status: {response.status_code}",
                    status_code=response.status_code,
                )

            for line in response.iter_lines():
                if cancel is not None:
                    cancel.check_cancellation("task log streaming")
                yield line
        except httpx.TransportError as e:
            raise TransportError(
                f"{context}: {type(e).__name__}: {e}",
                details={"instance_id": instance_id},
            ) from e
        except CancelledError:
            raise
        except BossClientError as e:
            raise e.with_context(context) from e
        finally:
            response.close()

    def manifest(self, instance_id: str) -> str:
        """Return the instance's deployment manifest, checked to be valid YAML.

        Raises:
            ValidationError: If the manifest is not well-formed YAML
        """
        try:
            manifest = self.text(f"/b/{instance_id}/manifest.yml")
        except BossClientError as e:
            raise e.with_context(f"failed to get manifest for {instance_id}") from e

        try:
            validate_yaml(manifest)
        except ValidationError as e:
            raise e.with_context(f"invalid manifest for {instance_id}") from e
        return manifest

    def creds(self, instance_id: str) -> str:
        """Return the instance's credentials YAML, checked to be valid YAML.

        Raises:
            ValidationError: If the credentials are not well-formed YAML
        """
        try:
            creds = self.text(f"/b/{instance_id}/creds.yml")
        except BossClientError as e:
            raise e.with_context(f"failed to get credentials for {instance_id}") from e

        try:
            validate_yaml(creds)
        except ValidationError as e:
            raise e.with_context(f"invalid credentials YAML for {instance_id}") from e
        return creds

    def creds_map(self, instance_id: str) -> dict[str, Any]:
        """Return the instance's credentials as a mapping.

        Missing ``hostname``, ``port``, ``username`` or ``password`` keys are
        reported as warnings in debug mode, never as errors.

        Raises:
            ValidationError: If the credentials document is not a mapping
        """
        parsed = validate_yaml(self.creds(instance_id))
        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            raise ValidationError(
                f"failed to parse credentials for {instance_id}: "
                f"expected a mapping, got {type(parsed).__name__}"
            )

        if self.config.debug_enabled:
            for field in EXPECTED_CREDENTIAL_FIELDS:
                if field not in parsed:
                    logger.warning(f"Missing credential field: {field}")

        return parsed

    def redeploy(self, instance_id: str) -> str:
        """Redeploy an instance from its saved manifest.

        Returns:
            Broker response text, typically the new task reference
        """
        try:
            return self.text(f"/b/{instance_id}/redeploy")
        except BossClientError as e:
            raise e.with_context(f"failed to redeploy {instance_id}") from e
