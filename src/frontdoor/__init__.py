"""Frontdoor - production HTTP entrypoint for a web frontend."""
