"""Allow ``python -m boss``."""

from boss.cli import app

if __name__ == "__main__":
    app()
