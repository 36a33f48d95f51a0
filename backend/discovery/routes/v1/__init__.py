# backend/discovery/routes/v1/__init__.py
"""API v1 routers, mounted under /api/v1 in main.py."""

from . import discovery, health, locations, search

__all__ = ["discovery", "health", "locations", "search"]
