"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from citizenly.cascade.graph import BypassRule, CascadeGraph

REGIONS = [
    {"code": "03", "name": "Central Luzon"},
    {"code": "04", "name": "CALABARZON"},
    {"code": "13", "name": "National Capital Region"},
]

PROVINCES = {
    "03": [{"code": "0308", "name": "Bataan"}],
    "04": [{"code": "0410", "name": "Batangas"}, {"code": "0411", "name": "Cavite"}],
}

CITIES = {
    "0308": [{"code": "030803", "name": "Balanga", "type": "City"}],
    "0410": [
        {"code": "041005", "name": "Batangas City", "type": "City"},
        {"code": "041006", "name": "Bauan", "type": "Municipality"},
    ],
    "0411": [{"code": "041103", "name": "Bacoor", "type": "City"}],
}

INDEPENDENT_CITIES = {
    "13": [
        {"code": "133900", "name": "City of Manila", "type": "City", "is_independent": True},
        {"code": "137404", "name": "Quezon City", "type": "City", "is_independent": True},
    ],
}

BARANGAYS = {
    "041005": [{"code": "041005001", "name": "Alangilan"}],
    "133900": [{"code": "133900001", "name": "Ermita"}, {"code": "133900002", "name": "Malate"}],
}

LEVEL_NAMES = ["region", "province", "city", "barangay"]


class StaticSource:
    """Option source that answers synchronously from a dict, recording calls."""

    def __init__(self, data: dict[str | None, list[dict[str, Any]]]) -> None:
        self.data = data
        self.calls: list[str | None] = []

    def __call__(self, parent_key: str | None) -> list[dict[str, Any]]:
        self.calls.append(parent_key)
        return self.data.get(parent_key, [])


class AsyncSource(StaticSource):
    """Option source answering from a dict through a coroutine."""

    async def __call__(self, parent_key: str | None) -> list[dict[str, Any]]:  # type: ignore[override]
        self.calls.append(parent_key)
        await asyncio.sleep(0)
        return self.data.get(parent_key, [])


class ControlledSource:
    """Option source whose fetches stay pending until the test resolves them."""

    def __init__(self, data: dict[str | None, list[dict[str, Any]]] | None = None) -> None:
        self.data = data or {}
        self.calls: list[str | None] = []
        self._pending: list[tuple[str | None, asyncio.Future]] = []

    def __call__(self, parent_key: str | None) -> asyncio.Future:
        self.calls.append(parent_key)
        future = asyncio.get_running_loop().create_future()
        self._pending.append((parent_key, future))
        return future

    def _next(self, parent_key: str | None) -> asyncio.Future:
        for key, future in self._pending:
            if key == parent_key and not future.done():
                return future
        raise AssertionError(f"No pending fetch for {parent_key!r}")

    def resolve(self, parent_key: str | None, options: list[dict[str, Any]] | None = None) -> None:
        self._next(parent_key).set_result(
            options if options is not None else self.data.get(parent_key, [])
        )

    def reject(self, parent_key: str | None, exc: Exception) -> None:
        self._next(parent_key).set_exception(exc)

    @property
    def pending(self) -> int:
        return sum(1 for _, future in self._pending if not future.done())


async def settle() -> None:
    """Let completed fetch tasks run their callbacks."""
    for _ in range(5):
        await asyncio.sleep(0)


def make_graph(
    region=None,
    province=None,
    city=None,
    barangay=None,
    independent_cities=None,
    with_bypass: bool = True,
) -> CascadeGraph:
    """Build the four-level address cascade, with the NCR bypass by default."""
    sources = {
        "region": region or StaticSource({None: REGIONS}),
        "province": province or StaticSource(PROVINCES),
        "city": city or StaticSource(CITIES),
        "barangay": barangay or StaticSource(BARANGAYS),
    }
    rules = []
    if with_bypass:
        rules.append(
            BypassRule(
                level="region",
                target_level="city",
                alternate_source=independent_cities or StaticSource(INDEPENDENT_CITIES),
                predicate=lambda code: code == "13",
                name="ncr",
            )
        )
    return CascadeGraph(LEVEL_NAMES, sources, rules)


@pytest.fixture
def graph() -> CascadeGraph:
    return make_graph()
