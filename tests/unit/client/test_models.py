"""Tests for broker data models and catalog plan lookup."""

import pytest

from boss.client.errors import NotFoundError
from boss.client.models import BrokerStatus, Catalog, Instance, LastOperation, Service
from tests.conftest import CATALOG


@pytest.fixture
def catalog() -> Catalog:
    return Catalog.model_validate(CATALOG)


class TestCatalogPlanLookup:
    """Tests for Catalog.plan / plan_by_id / plan_by_name."""

    def test_lookup_by_ids(self, catalog):
        service, plan = catalog.plan("redis-svc", "redis-large")
        assert service.name == "redis"
        assert plan.name == "large"

    def test_lookup_by_names(self, catalog):
        service, plan = catalog.plan("redis", "small")
        assert service.id == "redis-svc"
        assert plan.id == "redis-small"

    def test_id_pass_wins_over_name_pass(self):
        catalog = Catalog.model_validate(
            {
                "services": [
                    {"id": "s1", "name": "s2", "plans": [{"id": "p1", "name": "p2"}]},
                    {"id": "s2", "name": "other", "plans": [{"id": "p2", "name": "z"}]},
                ]
            }
        )
        service, plan = catalog.plan("s2", "p2")
        assert service.id == "s2"
        assert plan.id == "p2"

    def test_mixed_id_and_name_do_not_match(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.plan("redis-svc", "small")

    def test_not_found(self, catalog):
        with pytest.raises(NotFoundError) as exc_info:
            catalog.plan("nope", "small")
        assert str(exc_info.value) == "service 'nope' / plan 'small' not found"
        assert exc_info.value.details == {"service": "nope", "plan": "small"}

    def test_plan_by_id_returns_none_on_miss(self, catalog):
        assert catalog.plan_by_id("redis-svc", "pg-standalone") is None
        assert catalog.plan_by_name("postgresql", "standalone") is not None


class TestModelDecoding:
    """Tests for tolerant decoding of broker documents."""

    def test_null_lists_become_empty(self):
        service = Service.model_validate({"id": "x", "name": "x", "tags": None, "plans": None})
        assert service.tags == []
        assert service.plans == []

    def test_null_services_become_empty(self):
        assert Catalog.model_validate({"services": None}).services == []

    def test_unknown_fields_are_ignored(self):
        catalog = Catalog.model_validate({"services": [], "extra": 1})
        assert catalog.services == []

    def test_zero_timestamps_become_none(self):
        status = BrokerStatus.model_validate(
            {
                "instances": {
                    "a": {
                        "service_id": "s",
                        "plan_id": "p",
                        "created_at": "0001-01-01T00:00:00Z",
                        "updated_at": "2024-05-01T12:00:00Z",
                    }
                }
            }
        )
        entry = status.instances["a"]
        assert entry.created_at is None
        assert entry.updated_at.year == 2024

    def test_null_instances_become_empty(self):
        status = BrokerStatus.model_validate({"instances": None, "log": "hi"})
        assert status.instances == {}
        assert status.log == "hi"

    def test_instance_defaults(self):
        instance = Instance(id="abc")
        assert instance.service is None
        assert instance.plan is None
        assert instance.created_at is None

    def test_last_operation_defaults(self):
        assert LastOperation.model_validate({}).state == ""
