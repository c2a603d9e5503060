"""
boss - command-line client for the Blacksmith service broker.
"""

from boss.version import __version__

__all__ = ["__version__"]
