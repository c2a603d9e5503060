"""
Data models for the broker API.

These models mirror the JSON documents served by the broker: the service
catalog, the instance registry behind ``/b/status`` and the OSB
last-operation report. They are built from a single response body, held
for the duration of one command and then discarded.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from boss.client.errors import NotFoundError


def _zero_time_as_none(value: Optional[datetime]) -> Optional[datetime]:
    # Go brokers emit 0001-01-01T00:00:00Z for unset timestamps
    if value is not None and value.year <= 1:
        return None
    return value


class Plan(BaseModel):
    """A purchasable tier within a Service."""

    id: str
    name: str
    description: str = ""
    free: bool = False
    bindable: Optional[bool] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class Service(BaseModel):
    """A catalog offering and its plans."""

    id: str
    name: str
    description: str = ""
    bindable: bool = False
    tags: list[str] = Field(default_factory=list)
    plan_updateable: bool = False
    plans: list[Plan] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("tags", "plans", "requires", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Catalog(BaseModel):
    """
    Snapshot of the broker's services and plans.

    Fetched fresh on every operation that needs it; never cached.
    """

    services: list[Service] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("services", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def plan_by_id(
        self, service_id: str, plan_id: str
    ) -> Optional[tuple[Service, Plan]]:
        """Find a Service/Plan pair by canonical IDs, or None."""
        for service in self.services:
            if service.id != service_id:
                continue
            for plan in service.plans:
                if plan.id == plan_id:
                    return service, plan
        return None

    def plan_by_name(
        self, service_name: str, plan_name: str
    ) -> Optional[tuple[Service, Plan]]:
        """Find a Service/Plan pair by names, or None."""
        for service in self.services:
            if service.name != service_name:
                continue
            for plan in service.plans:
                if plan.name == plan_name:
                    return service, plan
        return None

    def plan(self, service: str, plan: str) -> tuple[Service, Plan]:
        """
        Resolve a service and plan given as IDs or names.

        The ID pass runs over the whole catalog before the name pass, so an
        ID match always wins over a name match.

        Args:
            service: Service ID or name
            plan: Plan ID or name

        Returns:
            The matching (Service, Plan) pair from this catalog

        Raises:
            NotFoundError: If neither pass finds a match
        """
        found = self.plan_by_id(service, plan) or self.plan_by_name(service, plan)
        if found is None:
            raise NotFoundError(
                f"service '{service}' / plan '{plan}' not found",
                details={"service": service, "plan": plan},
            )
        return found


class RegistryEntry(BaseModel):
    """One instance as recorded in the broker's registry (``/b/status``)."""

    service_id: str = ""
    plan_id: str = ""
    state: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_task_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("created_at", "updated_at")
    @classmethod
    def zero_time_as_none(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _zero_time_as_none(value)


class BrokerStatus(BaseModel):
    """Body of ``GET /b/status``: the instance registry and the broker log."""

    instances: dict[str, RegistryEntry] = Field(default_factory=dict)
    log: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("instances", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class Instance(BaseModel):
    """
    A deployed service instance.

    ``service`` and ``plan`` are None when the registry references IDs that
    no longer exist in the current catalog.
    """

    id: str
    service: Optional[Service] = None
    plan: Optional[Plan] = None
    state: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def zero_time_as_none(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _zero_time_as_none(value)


class LastOperation(BaseModel):
    """Body of ``GET /v2/service_instances/{id}/last_operation``."""

    state: str = ""
    description: str = ""

    model_config = ConfigDict(extra="ignore")


class ProvisionResponse(BaseModel):
    """Body of a provision/update response (may carry an operation token)."""

    operation: str = ""
    dashboard_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")
