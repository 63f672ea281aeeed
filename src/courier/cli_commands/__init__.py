"""CLI command modules for the Courier agent."""

from courier.cli_commands.config import config_app
from courier.cli_commands.queue import queue_app
from courier.cli_commands.run import run_command
from courier.cli_commands.status import status_command
from courier.cli_commands.sync import sync_command

__all__ = ["config_app", "queue_app", "run_command", "status_command", "sync_command"]
