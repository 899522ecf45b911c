"""Entry point for python -m focus_flow."""

from focus_flow.cli.main import app

if __name__ == "__main__":
    app()
