"""FastAPI application for the schemata editor.

Provides REST API endpoints over one ``RepositoryStore``:
- Contexts, versions and changelogs
- Schema documents, fields, groups and vocabularies
- Content types registered in core.json
- ZIP archive and JSON bundle export/import
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schemata import __version__
from schemata.store.repository import RepositoryStore

from web.backend.app.routers import archive, contexts, schemas


def create_app(store: Optional[RepositoryStore] = None) -> FastAPI:
    """Build the application.

    Without *store* the repository is created from the settings on the
    first request.
    """
    app = FastAPI(
        title="schemata API",
        description=(
            "REST API for editing versioned metadata schemas: contexts, "
            "versions, schema documents, fields, vocabularies and archives."
        ),
        version=__version__,
    )
    app.state.store = store

    # -----------------------------------------------------------------------
    # CORS middleware (allow all origins for development)
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(contexts.router)
    app.include_router(schemas.router)
    app.include_router(archive.router)

    @app.get("/", tags=["meta"])
    async def root():
        """Return basic API information."""
        return {
            "name": "schemata API",
            "version": __version__,
            "docs": "/docs",
            "openapi": "/openapi.json",
        }

    @app.get("/health", tags=["meta"])
    async def health_check():
        """Health check endpoint."""
        loaded = app.state.store is not None and app.state.store.registry is not None
        return {"status": "healthy", "repository_loaded": loaded}

    return app


app = create_app()
