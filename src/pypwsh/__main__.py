"""Entry point for ``python -m pypwsh``."""

from pypwsh.cli import app

if __name__ == "__main__":
    app()
