"""Base-station registry lookup and best-effort sync for task locations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .value_normalizer import (
    format_coordinates,
    normalize_locations,
    parse_coordinates_pair,
    parse_number,
    round6,
)

logger = logging.getLogger(__name__)

T2_OPERATOR_CODE = "250020"
_T2_OPERATOR_SLUGS = frozenset({"t2", "t-2", "250020", "250-20"})


@dataclass(frozen=True)
class RegistryStation:
    bs_number: str
    coordinates: str = ""
    address: str = ""
    lat: float | None = None
    lon: float | None = None


@dataclass(frozen=True)
class StationSyncRequest:
    bs_number: str
    bs_address: str | None = None
    lat: float | None = None
    lon: float | None = None
    region_code: str | None = None
    operator_code: str | None = None


class StationRegistry(Protocol):
    def find_station(
        self,
        bs_number: str,
        *,
        operator_code: str | None = None,
        region_code: str | None = None,
    ) -> RegistryStation | None:
        ...

    def upsert_station(self, request: StationSyncRequest) -> None:
        ...


def normalize_bs_number(value: str | None) -> str:
    if not value:
        return ""
    return value.split(",")[0].strip().upper()


def normalize_operator_code(value: str | None) -> str | None:
    if not value or not value.strip():
        return None
    trimmed = value.strip()
    if trimmed.lower() in _T2_OPERATOR_SLUGS:
        return T2_OPERATOR_CODE
    return trimmed


def _station_location(bs_number: str, station: RegistryStation) -> list[dict[str, str]] | None:
    if station.coordinates:
        coordinates = station.coordinates
    elif station.lat is not None and station.lon is not None:
        coordinates = format_coordinates(station.lat, station.lon)
    else:
        return None
    return [{"name": bs_number, "coordinates": coordinates, "address": station.address or ""}]


def resolve_station_location(
    registry: StationRegistry,
    *,
    bs_number: str,
    operator_code: str | None,
    region_code: str | None,
    client_locations: list[Any] | None,
) -> list[dict[str, str]]:
    """Pick the authoritative location list for a changed station number.

    Registry entry first, then the caller's explicit list, else empty.
    """
    normalized = normalize_bs_number(bs_number)
    station = None
    if normalized:
        try:
            station = registry.find_station(
                normalized,
                operator_code=normalize_operator_code(operator_code),
                region_code=region_code or None,
            )
        except Exception:
            logger.exception("Base-station lookup failed bs=%s (ignored)", normalized)
            station = None

    if station is not None:
        location = _station_location(bs_number, station)
        if location is not None:
            return location
    if client_locations is not None:
        return normalize_locations(client_locations)
    return []


def derive_coordinates(locations: Any) -> tuple[float | None, float | None]:
    """Latitude/longitude of the first location point, if it parses."""
    points = normalize_locations(locations)
    if not points:
        return None, None
    pair = parse_coordinates_pair(points[0]["coordinates"])
    return pair.lat, pair.lon


def _sanitize_coordinate(value: Any) -> float | None:
    number = parse_number(value)
    return round6(number) if number is not None else None


def build_sync_request(
    *,
    bs_number: str | None,
    bs_address: str | None,
    lat: Any,
    lon: Any,
    region_code: str | None,
    operator_code: str | None,
) -> StationSyncRequest | None:
    normalized = normalize_bs_number(bs_number)
    if not normalized:
        return None
    return StationSyncRequest(
        bs_number=normalized,
        bs_address=(bs_address or "").strip() or None,
        lat=_sanitize_coordinate(lat),
        lon=_sanitize_coordinate(lon),
        region_code=region_code or None,
        operator_code=normalize_operator_code(operator_code),
    )


def sync_station_best_effort(registry: StationRegistry, request: StationSyncRequest | None) -> bool:
    """Ask the registry to upsert a station; failures are logged and swallowed."""
    if request is None:
        return False
    try:
        registry.upsert_station(request)
    except Exception:
        logger.exception("Base-station sync failed bs=%s (ignored)", request.bs_number)
        return False
    logger.info("geo_sync.upserted bs=%s", request.bs_number)
    return True
