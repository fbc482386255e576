"""Place records parsed from reverse-geocoding answers and their display line."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from mentalmap.geocode.admin_labels import ADMIN_LABELS, labels_for

PLACE_PENDING = "Ort wird geladen..."
ADMIN_SEPARATOR = " · "

# Address keys tried in order for each level
_REGION_KEYS = ("state", "region", "state_district")
_DEPT_KEYS = ("county", "state_district")
_COMMUNE_KEYS = ("city", "town", "village", "municipality", "hamlet", "suburb", "locality")


def _first(address: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = address.get(key)
        if value:
            return str(value)
    return None


@dataclass(frozen=True)
class PlaceRecord:
    region: str | None = None
    departement: str | None = None
    commune: str | None = None
    country_code: str | None = None

    @classmethod
    def from_nominatim(cls, payload: Any) -> PlaceRecord:
        """Parse a reverse-geocoding JSON body; any subset of address keys is fine."""
        address = payload.get("address") if isinstance(payload, dict) else None
        if not isinstance(address, dict):
            address = {}
        return cls(
            region=_first(address, _REGION_KEYS),
            departement=_first(address, _DEPT_KEYS),
            commune=_first(address, _COMMUNE_KEYS),
            country_code=_first(address, ("country_code",)),
        )

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)


def admin_line(place: PlaceRecord, table: dict[str, tuple[str, str]] | None = None) -> str:
    """e.g. ``"Bundesland: Bayern · Landkreis: Landkreis Rosenheim · Gemeinde: Kolbermoor"``."""
    labels = labels_for(place.country_code, ADMIN_LABELS if table is None else table)
    parts = []
    if place.region:
        parts.append(f"{labels.region}: {place.region}")
    if place.departement and labels.dept:
        parts.append(f"{labels.dept}: {place.departement}")
    if place.commune:
        parts.append(f"{labels.commune}: {place.commune}")
    return ADMIN_SEPARATOR.join(parts) if parts else PLACE_PENDING
