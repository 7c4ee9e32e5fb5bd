"""Guildhall: guilds, channels and direct messages with real-time fanout."""

__version__ = "0.1.0"
