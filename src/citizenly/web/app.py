"""FastAPI application for the Citizenly registry services.

Serves the PSGC address endpoints that back the cascading geographic
selectors, address resolution over the cascade engine, and sectoral
classification.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from citizenly import __version__
from citizenly.cascade.graph import CascadeGraph
from citizenly.classification.rules import SectoralClassifier
from citizenly.core.config import Settings
from citizenly.psgc.service import PSGCSource
from citizenly.psgc.sources import build_address_cascade, create_psgc_source
from citizenly.web.address_router import router as address_router
from citizenly.web.classification_router import router as classification_router


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = __version__


def create_app(
    settings: Settings | None = None,
    psgc_source: PSGCSource | None = None,
    address_graph: CascadeGraph | None = None,
    sectoral_classifier: SectoralClassifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with mock dependencies.

    Args:
        settings: Application settings. Defaults to Settings().
        psgc_source: Optional pre-built PSGC backend.
        address_graph: Optional pre-built address cascade.
        sectoral_classifier: Optional pre-built classifier.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Citizenly",
        description="Resident and household registry services",
        version=__version__,
        debug=settings.debug,
    )

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if psgc_source is None:
        psgc_source = create_psgc_source(settings.psgc)

    if address_graph is None:
        address_graph = build_address_cascade(
            psgc_source,
            graphs_dir=settings.cascade.graphs_dir,
            graph_name=settings.cascade.address_graph,
        )

    if sectoral_classifier is None:
        sectoral_classifier = SectoralClassifier(settings.classification.rules_path)

    # Store on app state for access in route handlers
    app.state.settings = settings
    app.state.psgc_source = psgc_source
    app.state.address_graph = address_graph
    app.state.sectoral_classifier = sectoral_classifier

    app.include_router(address_router)
    app.include_router(classification_router)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="citizenly")

    return app
