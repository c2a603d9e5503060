"""
Command-line interface for boss.

Loads a ``.env`` file from the working directory so ``BLACKSMITH_*``
variables defined there reach both the settings layer and subprocesses.
"""

from dotenv import load_dotenv

load_dotenv()

from boss.cli.app import app  # noqa: E402

__all__ = ["app"]
