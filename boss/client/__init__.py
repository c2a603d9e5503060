"""Broker client module.

Provides the HTTP client for the Blacksmith service broker with
consistent error handling, retry logic and payload validation.
"""

from boss.client.broker_client import BrokerClient
from boss.client.cancellation import CancellationToken
from boss.client.core import ClientConfig
from boss.client.errors import (
    APIError,
    BossClientError,
    CancelledError,
    ErrorKind,
    NotFoundError,
    OperationError,
    TransportError,
    ValidationError,
    is_conflict,
    is_not_found,
    is_timeout,
)
from boss.client.models import Catalog, Instance, LastOperation, Plan, Service
from boss.client.operations import wait_for_operation

__all__ = [
    "BrokerClient",
    "CancellationToken",
    "ClientConfig",
    "BossClientError",
    "ErrorKind",
    "TransportError",
    "APIError",
    "ValidationError",
    "NotFoundError",
    "OperationError",
    "CancelledError",
    "is_not_found",
    "is_conflict",
    "is_timeout",
    "Catalog",
    "Instance",
    "LastOperation",
    "Plan",
    "Service",
    "wait_for_operation",
]
