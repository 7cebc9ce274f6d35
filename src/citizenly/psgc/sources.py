"""Wiring PSGC lookups into the cascading selection engine."""

from __future__ import annotations

from pathlib import Path

from citizenly.cascade.graph import CascadeGraph, load_graph
from citizenly.cascade.sources import SourceRegistry
from citizenly.core.config import PSGCConfig
from citizenly.psgc.client import PSGCClient
from citizenly.psgc.service import MockPSGCService, PSGCSource

_DEFAULT_GRAPHS_DIR = Path(__file__).resolve().parents[3] / "config" / "cascades"

ADDRESS_GRAPH = "psgc_address"


def create_psgc_source(config: PSGCConfig) -> PSGCSource:
    """Factory: select a PSGC backend based on config.provider."""
    provider = config.provider.lower()
    if provider == "mock":
        return MockPSGCService()
    if provider == "http":
        return PSGCClient(config)
    raise ValueError(f"Unknown PSGC provider {config.provider!r}. Available: http, mock")


def register_psgc_sources(registry: SourceRegistry, backend: PSGCSource) -> SourceRegistry:
    """Expose a PSGC backend as named option sources.

    Registered names: ``psgc.regions``, ``psgc.provinces``, ``psgc.cities``,
    ``psgc.barangays`` and ``psgc.region_cities`` (cities loaded straight
    from a region code, for regions without a province layer).
    """
    registry.register("psgc.regions", lambda _parent: backend.list_regions())
    registry.register("psgc.provinces", backend.list_provinces)
    registry.register("psgc.cities", backend.list_cities)
    registry.register("psgc.barangays", backend.list_barangays)
    registry.register("psgc.region_cities", backend.list_region_cities)
    return registry


def build_address_cascade(
    backend: PSGCSource,
    graphs_dir: str | Path | None = None,
    graph_name: str = ADDRESS_GRAPH,
) -> CascadeGraph:
    """Load the Region -> Province -> City -> Barangay cascade over ``backend``."""
    registry = register_psgc_sources(SourceRegistry(), backend)
    directory = Path(graphs_dir) if graphs_dir else _DEFAULT_GRAPHS_DIR
    return load_graph(directory / f"{graph_name}.yml", registry)
