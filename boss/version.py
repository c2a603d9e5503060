"""Version information for boss."""

__version__ = "1.0.0"
