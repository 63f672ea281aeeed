"""Courier - offline-first message delivery agent."""

__version__ = "0.1.0"
