"""Slash commands and the navigator that routes them to page controllers."""
