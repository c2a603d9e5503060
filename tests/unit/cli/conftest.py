"""Shared fixtures for CLI tests."""

import logging
import re
from typing import TYPE_CHECKING
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from boss.client import BrokerClient
from boss.logging import set_debug_mode

if TYPE_CHECKING:
    from typer.testing import Result

# ANSI escape code pattern for stripping styling from output
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

CONNECTION_ARGS = ["-U", "http://broker.test", "-u", "admin", "-p", "secret"]


class CleanResult:
    """Result wrapper that strips ANSI codes from stdout/output.

    Rich applies bold/dim styling to help text even with NO_COLOR=1,
    which breaks plain string assertions.
    """

    def __init__(self, result: "Result") -> None:
        self._result = result

    @property
    def exit_code(self) -> int:
        return self._result.exit_code

    @property
    def stdout(self) -> str:
        return ANSI_ESCAPE_PATTERN.sub("", self._result.stdout)

    @property
    def output(self) -> str:
        """The terminal output (mixed stdout+stderr) with ANSI codes stripped."""
        return ANSI_ESCAPE_PATTERN.sub("", self._result.output)

    @property
    def exception(self):
        return self._result.exception


class CleanCliRunner(CliRunner):
    """CLI runner that returns results with ANSI codes stripped."""

    def invoke(self, *args, **kwargs) -> CleanResult:
        result = super().invoke(*args, **kwargs)
        return CleanResult(result)


@pytest.fixture
def runner():
    """CLI runner with colours disabled and ANSI codes stripped."""
    return CleanCliRunner(env={"NO_COLOR": "1", "COLUMNS": "120"})


@pytest.fixture
def mock_broker():
    """Route every BrokerClient the CLI opens through a mock transport.

    Yields a setter taking the request handler; the list of requests seen
    is returned by the setter for assertions.
    """
    state = {"handler": None, "requests": [], "configs": []}

    def _factory(config):
        state["configs"].append(config)

        def _handle(request):
            state["requests"].append(request)
            return state["handler"](request)

        return BrokerClient(
            config, transport=httpx.MockTransport(_handle), sleep=lambda s: None
        )

    def _install(handler):
        state["handler"] = handler
        return state

    with patch("boss.cli.commands.BrokerClient", side_effect=_factory):
        yield _install


@pytest.fixture(autouse=True)
def reset_boss_logger():
    """The CLI installs handlers on the ``boss`` logger; remove them after each test."""
    yield
    set_debug_mode(False)
    boss_logger = logging.getLogger("boss")
    for handler in boss_logger.handlers[:]:
        boss_logger.removeHandler(handler)
        handler.close()
    boss_logger.propagate = True
    boss_logger.setLevel(logging.NOTSET)
