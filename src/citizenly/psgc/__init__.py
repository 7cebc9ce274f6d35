"""PSGC geographic data sources for address cascades."""

from citizenly.psgc.client import PSGCClient
from citizenly.psgc.service import MockPSGCService, PSGCSource
from citizenly.psgc.sources import build_address_cascade, create_psgc_source, register_psgc_sources

__all__ = [
    "MockPSGCService",
    "PSGCClient",
    "PSGCSource",
    "build_address_cascade",
    "create_psgc_source",
    "register_psgc_sources",
]
