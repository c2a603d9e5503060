"""Tests for wait_for_operation polling."""

import pytest

from boss.client import CancellationToken, wait_for_operation
from boss.client.errors import APIError, CancelledError, OperationError
from tests.conftest import json_response


def last_operation(*states):
    """Handler reporting the given last-operation states in order."""
    remaining = list(states)

    def handler(request):
        state = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return json_response(200, {"state": state, "description": f"{state}..."})

    return handler


class TestWaitForOperation:
    """Tests for the poll-to-completion loop."""

    def test_returns_final_report(self, make_client, fake_clock):
        client, recorder = make_client(last_operation("in progress", "succeeded"))

        result = wait_for_operation(client, "abc", "op-9", poll_interval=5)

        assert result.state == "succeeded"
        assert fake_clock.sleeps == [5, 5]
        assert all(r.url.params["operation"] == "op-9" for r in recorder.requests)

    def test_waits_before_first_poll(self, make_client, fake_clock):
        client, recorder = make_client(last_operation("succeeded"))
        wait_for_operation(client, "abc")
        assert fake_clock.sleeps == [5.0]
        assert len(recorder.requests) == 1

    def test_without_operation_token(self, make_client):
        client, recorder = make_client(last_operation("succeeded"))
        wait_for_operation(client, "abc")
        assert "operation" not in recorder.requests[0].url.params

    def test_failed(self, make_client):
        client, _ = make_client(last_operation("failed"))
        with pytest.raises(OperationError) as exc_info:
            wait_for_operation(client, "abc", "op-1")
        assert str(exc_info.value) == "operation failed: failed..."
        assert exc_info.value.details["instance_id"] == "abc"

    def test_unknown_state(self, make_client):
        client, _ = make_client(last_operation("exploded"))
        with pytest.raises(OperationError, match="^unknown operation state: exploded$"):
            wait_for_operation(client, "abc")

    def test_deadline(self, make_client, fake_clock):
        client, recorder = make_client(last_operation("in progress"))

        with pytest.raises(OperationError) as exc_info:
            wait_for_operation(client, "abc", timeout=12, poll_interval=5)

        # deadline is checked after each tick, so it can be overrun by one interval
        assert len(recorder.requests) == 3
        assert fake_clock.sleeps == [5, 5, 5]
        assert str(exc_info.value) == "operation timed out after 12s"

    def test_poll_errors_propagate(self, make_client):
        client, _ = make_client(
            lambda r: json_response(410, {"error": "Gone", "description": "deleted"})
        )
        with pytest.raises(APIError, match="failed to get operation status: Gone"):
            wait_for_operation(client, "abc")

    def test_cancelled_before_first_poll(self, make_client):
        token = CancellationToken()
        token.cancel("shutdown")
        client, recorder = make_client(last_operation("in progress"))

        with pytest.raises(CancelledError, match="during operation polling: shutdown"):
            wait_for_operation(client, "abc", cancel=token)
        assert recorder.requests == []

    def test_cancelled_between_polls(self, make_client):
        token = CancellationToken()
        client, recorder = make_client(last_operation("in progress"))

        def on_request(request):
            token.cancel()
            return json_response(200, {"state": "in progress"})

        recorder.handler = on_request
        with pytest.raises(CancelledError):
            wait_for_operation(client, "abc", cancel=token)
        assert len(recorder.requests) == 1
