"""Tests for CancellationToken."""

import threading

import pytest

from boss.client import CancellationToken
from boss.client.errors import CancelledError


class TestCancellationToken:
    """Tests for the thread-safe cancellation flag."""

    def test_initial_state(self):
        token = CancellationToken()
        assert not token.is_cancelled()
        assert token.reason is None
        token.check_cancellation("anything")

    def test_cancel(self):
        token = CancellationToken()
        token.cancel("user pressed Ctrl+C")
        assert token.is_cancelled()
        assert token.reason == "user pressed Ctrl+C"

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"

    def test_check_raises_with_context(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancelledError) as exc_info:
            token.check_cancellation("operation polling")
        assert str(exc_info.value) == (
            "operation cancelled during operation polling: Operation cancelled"
        )
        assert exc_info.value.details == {"reason": "Operation cancelled"}

    def test_check_without_context(self):
        token = CancellationToken()
        token.cancel("stop")
        with pytest.raises(CancelledError, match="^operation cancelled: stop$"):
            token.check_cancellation()

    def test_wait_times_out(self):
        assert CancellationToken().wait(0.01) is False

    def test_wait_returns_early_when_cancelled_from_another_thread(self):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            assert token.wait(5) is True
        finally:
            timer.cancel()

    def test_pause_uses_token_wait(self):
        from boss.client import BrokerClient, ClientConfig

        token = CancellationToken()
        client = BrokerClient(ClientConfig(url="http://broker.test"))
        timer = threading.Timer(0.05, token.cancel, args=("stop",))
        timer.start()
        try:
            with pytest.raises(CancelledError, match="during retry backoff: stop"):
                client.pause(5, token, "retry backoff")
        finally:
            timer.cancel()
