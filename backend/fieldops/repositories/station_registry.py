"""SQLAlchemy-backed base-station registry."""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import BaseStation
from ..services.geo_sync import RegistryStation, StationSyncRequest
from ..services.value_normalizer import format_coordinates


def _to_registry_station(row: BaseStation) -> RegistryStation:
    return RegistryStation(
        bs_number=row.num or row.name or "",
        coordinates=row.coordinates or "",
        address=row.address or "",
        lat=row.lat,
        lon=row.lon,
    )


def _fill_blanks(row: BaseStation, request: StationSyncRequest) -> None:
    if not row.address and request.bs_address:
        row.address = request.bs_address
    if row.lat is None and request.lat is not None:
        row.lat = request.lat
    if row.lon is None and request.lon is not None:
        row.lon = request.lon
    if not row.region_code and request.region_code:
        row.region_code = request.region_code
    if not row.operator_code and request.operator_code:
        row.operator_code = request.operator_code
    if not row.source:
        row.source = "tasks"


class SqlStationRegistry:
    """Shares the request session with the task store.

    Every database error rolls the session back before it propagates, so a
    swallowed registry failure never leaves the task write on an aborted
    transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _by_number(self, bs_number: str):
        return self.db.query(BaseStation).filter(
            or_(BaseStation.num == bs_number, BaseStation.name == bs_number)
        )

    def find_station(
        self,
        bs_number: str,
        *,
        operator_code: str | None = None,
        region_code: str | None = None,
    ) -> RegistryStation | None:
        try:
            query = self._by_number(bs_number)
            if operator_code:
                query = query.filter(BaseStation.operator_code == operator_code)
            if region_code:
                query = query.filter(BaseStation.region_code == region_code)
            row = query.first()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return _to_registry_station(row) if row else None

    def upsert_station(self, request: StationSyncRequest) -> None:
        """Create the station when missing, otherwise only fill blank fields."""
        try:
            query = self._by_number(request.bs_number)
            if request.operator_code:
                query = query.filter(
                    or_(BaseStation.operator_code == request.operator_code, BaseStation.operator_code.is_(None))
                )
            if request.region_code:
                query = query.filter(
                    or_(BaseStation.region_code == request.region_code, BaseStation.region_code.is_(None))
                )
            row = query.first()

            if row is None:
                row = BaseStation(
                    name=request.bs_number,
                    num=request.bs_number,
                    address=request.bs_address or "",
                    lat=request.lat,
                    lon=request.lon,
                    region_code=request.region_code,
                    operator_code=request.operator_code,
                    source="tasks",
                )
                self.db.add(row)
            else:
                _fill_blanks(row, request)

            if row.lat is not None and row.lon is not None and not row.coordinates:
                row.coordinates = format_coordinates(row.lat, row.lon)

            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
