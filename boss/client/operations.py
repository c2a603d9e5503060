"""Polling for asynchronous broker operations.

Brokers that accept a request with 202 hand back an operation token; this
module provides the loop that polls the last-operation endpoint until the
operation reaches a terminal state or runs past its deadline.
"""

from typing import TYPE_CHECKING, Optional

from boss.client.errors import OperationError
from boss.logging import get_logger

if TYPE_CHECKING:
    from boss.client.broker_client import BrokerClient
    from boss.client.cancellation import CancellationToken
    from boss.client.models import LastOperation

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_OPERATION_TIMEOUT = 30 * 60.0

STATE_SUCCEEDED = "succeeded"
STATE_FAILED = "failed"
STATE_IN_PROGRESS = "in progress"


def wait_for_operation(
    client: "BrokerClient",
    instance_id: str,
    operation: Optional[str] = None,
    timeout: float = DEFAULT_OPERATION_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel: Optional["CancellationToken"] = None,
) -> "LastOperation":
    """Poll an instance's last operation until it finishes.

    Each tick waits ``poll_interval`` seconds, then polls. The deadline is
    compared against the client's clock after every tick rather than
    interrupting a tick, so the loop can overrun ``timeout`` by up to one
    interval.

    Args:
        client: Open BrokerClient (also supplies sleep and clock)
        instance_id: Instance whose operation is in flight
        operation: Operation token returned by the broker, if any
        timeout: Overall deadline in seconds
        poll_interval: Seconds between polls
        cancel: Optional cancellation token checked at every tick

    Returns:
        The final ``succeeded`` LastOperation report

    Raises:
        OperationError: The operation failed, reported an unknown state,
            or did not finish before the deadline
        CancelledError: The cancellation token fired
    """
    deadline = client.now() + timeout

    while True:
        client.pause(poll_interval, cancel, "operation polling")

        status = client.last_operation(instance_id, operation, cancel=cancel)

        if status.state == STATE_SUCCEEDED:
            logger.debug(f"Operation on {instance_id} succeeded")
            return status

        if status.state == STATE_FAILED:
            raise OperationError(
                f"operation failed: {status.description}",
                details={"instance_id": instance_id, "operation": operation},
            )

        if status.state != STATE_IN_PROGRESS:
            raise OperationError(
                f"unknown operation state: {status.state}",
                details={"instance_id": instance_id, "operation": operation},
            )

        if client.config.debug_enabled:
            logger.debug(f"Operation in progress: {status.description}")

        if client.now() > deadline:
            raise OperationError(
                f"operation timed out after {timeout:g}s",
                details={"instance_id": instance_id, "operation": operation},
            )
