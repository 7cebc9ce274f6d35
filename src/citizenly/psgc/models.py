"""PSGC (Philippine Standard Geographic Code) data models."""

from __future__ import annotations

from pydantic import BaseModel


class AddressMatch(BaseModel):
    """A barangay search hit with its full geographic hierarchy.

    ``province_code`` and ``province_name`` are None for independent cities.
    """

    barangay_code: str
    barangay_name: str
    city_municipality_code: str
    city_municipality_name: str
    province_code: str | None = None
    province_name: str | None = None
    region_code: str
    region_name: str
    full_address: str
