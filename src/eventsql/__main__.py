"""Entry point for running eventsql as a module."""

from eventsql.cli import cli_entry

if __name__ == "__main__":
    cli_entry()
