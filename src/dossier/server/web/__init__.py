"""Conditional file server."""

from dossier.server.web.router import router

__all__ = ["router"]
