"""Adapters for the host system and the management server."""
