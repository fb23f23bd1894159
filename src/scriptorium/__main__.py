"""CLI entrypoint for running scriptorium as a module."""

from scriptorium.cli import cli
from scriptorium.logging import setup_logging

if __name__ == "__main__":
    setup_logging()
    cli()
