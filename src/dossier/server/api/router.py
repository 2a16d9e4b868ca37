"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from dossier.server.api import health, sync

# Mounted under a reserved prefix so it never shadows served content
API_PREFIX = "/_api"

router = APIRouter(prefix=API_PREFIX)

# Include all API routers
router.include_router(health.router)
router.include_router(sync.router)
