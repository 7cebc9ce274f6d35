"""FastAPI router for PSGC address endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from citizenly.cascade.controller import CascadeController
from citizenly.cascade.models import LevelStatus, Option

router = APIRouter()


class ResolveAddressRequest(BaseModel):
    region: str | None = None
    province: str | None = None
    city: str | None = None
    barangay: str | None = None


def _get_source(request: Request):
    source = getattr(request.app.state, "psgc_source", None)
    if source is None:
        raise HTTPException(status_code=503, detail="PSGC source not available")
    return source


def _payload(options: list[Option]) -> dict[str, Any]:
    return {"data": [option.model_dump() for option in options]}


@router.get("/api/addresses/regions/public")
async def list_regions(request: Request) -> dict[str, Any]:
    """List all regions."""
    return _payload(await _get_source(request).list_regions())


@router.get("/api/addresses/provinces/public")
async def list_provinces(
    request: Request,
    region_code: str = Query(..., alias="regionCode"),
) -> dict[str, Any]:
    """List provinces of a region."""
    return _payload(await _get_source(request).list_provinces(region_code))


@router.get("/api/addresses/cities/public")
async def list_cities(
    request: Request,
    province_code: str | None = Query(None, alias="provinceCode"),
    region_code: str | None = Query(None, alias="regionCode"),
) -> dict[str, Any]:
    """List cities of a province, or every city of a region."""
    source = _get_source(request)
    if province_code:
        return _payload(await source.list_cities(province_code))
    if region_code:
        return _payload(await source.list_region_cities(region_code))
    raise HTTPException(status_code=400, detail="provinceCode or regionCode is required")


@router.get("/api/addresses/barangays/public")
async def list_barangays(
    request: Request,
    city_code: str = Query(..., alias="cityCode"),
) -> dict[str, Any]:
    """List barangays of a city or municipality."""
    return _payload(await _get_source(request).list_barangays(city_code))


@router.get("/api/addresses/search")
async def search_addresses(
    request: Request,
    q: str = "",
    limit: int | None = Query(None, ge=1, le=50),
) -> dict[str, Any]:
    """Search barangays by any part of their full address."""
    if limit is None:
        limit = request.app.state.settings.psgc.search_limit
    matches = await _get_source(request).search(q, limit=limit)
    return {"data": [match.model_dump() for match in matches]}


@router.post("/api/addresses/resolve")
async def resolve_address(body: ResolveAddressRequest, request: Request) -> dict[str, Any]:
    """Walk the address cascade with the given codes and report how far it resolves."""
    graph = getattr(request.app.state, "address_graph", None)
    if graph is None:
        raise HTTPException(status_code=503, detail="Address cascade not available")

    controller = CascadeController(graph, name="address-resolve")
    try:
        snapshot = await controller.restore(body.model_dump())
    finally:
        controller.dispose()

    required = [
        level for level in snapshot.levels if level.status is not LevelStatus.SKIPPED
    ]
    return {
        "selections": snapshot.selected_codes(),
        "complete": all(level.selected_option is not None for level in required),
        "summary": snapshot.summary(),
        "skipped": [level.name for level in snapshot.levels if level.status is LevelStatus.SKIPPED],
        "errors": {level.name: level.error for level in snapshot.levels if level.error},
    }
