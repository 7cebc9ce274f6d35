"""PSGC data source protocol and mock implementation."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from citizenly.cascade.models import Option
from citizenly.psgc.models import AddressMatch

# Code prefix lengths: region "04", province "0410", city "041005", barangay "041005001".
REGION_DIGITS = 2
PROVINCE_DIGITS = 4
CITY_DIGITS = 6


@runtime_checkable
class PSGCSource(Protocol):
    """Protocol for geographic hierarchy lookups."""

    async def list_regions(self) -> list[Option]: ...
    async def list_provinces(self, region_code: str) -> list[Option]: ...
    async def list_cities(self, province_code: str) -> list[Option]: ...
    async def list_region_cities(self, region_code: str) -> list[Option]: ...
    async def list_barangays(self, city_code: str) -> list[Option]: ...
    async def search(self, query: str, limit: int = 10) -> list[AddressMatch]: ...


def parent_codes(code: str) -> dict[str, str]:
    """Split a hierarchical code into its region, province and city prefixes."""
    digits = "".join(ch for ch in code if ch.isdigit())
    return {
        "region_code": digits[:REGION_DIGITS],
        "province_code": digits[:PROVINCE_DIGITS] if len(digits) > REGION_DIGITS else "",
        "city_code": digits[:CITY_DIGITS] if len(digits) > PROVINCE_DIGITS else "",
    }


class MockPSGCService:
    """Mock PSGC service with fixture locations for development/testing."""

    def __init__(self) -> None:
        self._regions: list[Option] = []
        self._provinces: list[Option] = []
        self._cities: list[Option] = []
        self._barangays: list[Option] = []
        self._load_fixtures()

    def _load_fixtures(self) -> None:
        self._regions = [
            Option(code="01", name="Region I (Ilocos Region)"),
            Option(code="03", name="Region III (Central Luzon)"),
            Option(code="04", name="Region IV-A (CALABARZON)"),
            Option(code="13", name="National Capital Region (NCR)"),
        ]
        self._provinces = [
            Option(code="0128", name="Ilocos Norte"),
            Option(code="0129", name="Ilocos Sur"),
            Option(code="0308", name="Bataan"),
            Option(code="0371", name="Zambales"),
            Option(code="0410", name="Batangas"),
            Option(code="0421", name="Cavite"),
            Option(code="0434", name="Laguna"),
            Option(code="1339", name="NCR, City of Manila, First District"),
            Option(code="1374", name="NCR, Second District"),
        ]
        self._cities = [
            Option(code="012805", name="City of Batac", type="City", is_independent=False),
            Option(code="012812", name="Laoag City", type="City", is_independent=False),
            Option(code="012934", name="Vigan City", type="City", is_independent=False),
            Option(code="030803", name="City of Balanga", type="City", is_independent=False),
            Option(code="037101", name="Botolan", type="Municipality", is_independent=False),
            Option(code="037117", name="San Antonio", type="Municipality", is_independent=False),
            Option(code="041005", name="Batangas City", type="City", is_independent=False),
            Option(code="041014", name="Lipa City", type="City", is_independent=False),
            Option(code="042103", name="Bacoor City", type="City", is_independent=False),
            Option(code="042108", name="Dasmariñas City", type="City", is_independent=False),
            Option(code="043404", name="Calamba City", type="City", is_independent=False),
            Option(code="133900", name="City of Manila", type="City", is_independent=True),
            Option(code="137401", name="City of Mandaluyong", type="City", is_independent=True),
            Option(code="137402", name="City of Marikina", type="City", is_independent=True),
            Option(code="137404", name="Quezon City", type="City", is_independent=True),
        ]
        self._barangays = [
            Option(code="012812001", name="San Lorenzo"),
            Option(code="037117001", name="Poblacion"),
            Option(code="041005001", name="Alangilan"),
            Option(code="041005002", name="Balagtas"),
            Option(code="041014001", name="Antipolo del Norte"),
            Option(code="041014002", name="Bagong Pook"),
            Option(code="042103001", name="Alima"),
            Option(code="133900001", name="Ermita"),
            Option(code="133900002", name="Malate"),
            Option(code="133900003", name="Tondo"),
            Option(code="137401001", name="Addition Hills"),
            Option(code="137404001", name="Bagong Silangan"),
            Option(code="137404002", name="Batasan Hills"),
        ]

    async def list_regions(self) -> list[Option]:
        return list(self._regions)

    async def list_provinces(self, region_code: str) -> list[Option]:
        prefix = region_code[:REGION_DIGITS]
        return [p for p in self._provinces if p.code[:REGION_DIGITS] == prefix]

    async def list_cities(self, province_code: str) -> list[Option]:
        prefix = province_code[:PROVINCE_DIGITS]
        return [c for c in self._cities if c.code[:PROVINCE_DIGITS] == prefix]

    async def list_region_cities(self, region_code: str) -> list[Option]:
        # Accepts both "13" and the padded "130000000" form.
        prefix = region_code[:REGION_DIGITS]
        return [c for c in self._cities if c.code[:REGION_DIGITS] == prefix]

    async def list_barangays(self, city_code: str) -> list[Option]:
        prefix = city_code[:CITY_DIGITS]
        return [b for b in self._barangays if b.code[:CITY_DIGITS] == prefix]

    async def search(self, query: str, limit: int = 10) -> list[AddressMatch]:
        needle = query.strip().lower()
        if not needle:
            return []
        regions = {r.code: r for r in self._regions}
        provinces = {p.code: p for p in self._provinces}
        cities = {c.code: c for c in self._cities}

        matches: list[AddressMatch] = []
        for barangay in self._barangays:
            codes = parent_codes(barangay.code)
            city = cities[codes["city_code"]]
            region = regions[codes["region_code"]]
            province = None if getattr(city, "is_independent", False) else provinces.get(codes["province_code"])
            parts = [barangay.name, city.name, province.name if province else None, region.name]
            full_address = ", ".join(p for p in parts if p)
            if needle not in full_address.lower():
                continue
            matches.append(
                AddressMatch(
                    barangay_code=barangay.code,
                    barangay_name=barangay.name,
                    city_municipality_code=city.code,
                    city_municipality_name=city.name,
                    province_code=province.code if province else None,
                    province_name=province.name if province else None,
                    region_code=region.code,
                    region_name=region.name,
                    full_address=full_address,
                )
            )
            if len(matches) >= limit:
                break
        return matches
