"""
Parking operations: entry, exit with payment, availability and lot setup.

Every operation runs in one database transaction. Counter writes are guarded
in-place updates (see ``crud.reserve_spot`` / ``crud.release_spot``), so two
requests racing for the last spot cannot both win and the counter never leaves
``[0, total_capacity]``.
"""

import logging
import math
from contextlib import asynccontextmanager
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parking_tracker import crud
from parking_tracker.errors import (
    CapacityExceeded,
    CapacityInvariantViolation,
    ConfigurationNotFound,
    DuplicateActiveSession,
    InvalidInput,
    ParkingError,
    SessionNotFound,
    StorageFailure,
)
from parking_tracker.fees import calculate_fee
from parking_tracker.models import VehicleSession, utcnow

logger = logging.getLogger(__name__)

MAX_FIELD_LENGTH = 20


def _clean(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Please provide a {field.replace('_', ' ')}")
    value = value.strip()
    if len(value) > MAX_FIELD_LENGTH:
        raise InvalidInput(f"{field} must be at most {MAX_FIELD_LENGTH} characters")
    return value


class ParkingService:
    """Operation layer over the vehicle session and parking lot records."""

    def __init__(
        self,
        default_rate_per_hour: float = 5.0,
        strict_capacity: bool = False,
        clock: Callable = utcnow
    ):
        self.default_rate_per_hour = default_rate_per_hour
        self.strict_capacity = strict_capacity
        self.clock = clock

    @asynccontextmanager
    async def _transaction(self, db: AsyncSession, operation: str):
        try:
            yield
            await db.commit()
        except ParkingError:
            await db.rollback()
            raise
        except Exception as e:
            await db.rollback()
            logger.error(f"{operation} failed: {e}", exc_info=True)
            raise StorageFailure(detail=str(e)) from e

    async def record_entry(
        self, db: AsyncSession, license_plate: str, parking_spot: str
    ) -> Tuple[VehicleSession, int]:
        """Park a vehicle; returns the new session and the spots left after it."""
        plate = _clean(license_plate, "license_plate")
        spot = _clean(parking_spot, "parking_spot")

        async with self._transaction(db, "record_entry"):
            lot = await crud.get_parking_lot(db)
            if lot is None or lot.available_spots <= 0:
                logger.warning(f"No available slots for vehicle {plate}. Parking lot is full.")
                raise CapacityExceeded()

            if await crud.get_active_session_by_plate(db, plate):
                logger.warning(f"Vehicle {plate} is already parked.")
                raise DuplicateActiveSession()

            if not await crud.reserve_spot(db, lot.id):
                # another entry took the last spot after our read
                raise CapacityExceeded()

            try:
                session = await crud.create_vehicle_session(db, plate, spot, self.clock())
            except IntegrityError as e:
                raise DuplicateActiveSession(detail=str(e.orig)) from e

            lot = await crud.get_parking_lot(db)

        logger.info(f"Vehicle {plate} entered. Assigned spot: {spot}. Entry time: {session.entry_time}.")
        return session, lot.available_spots

    async def record_exit(
        self, db: AsyncSession, license_plate: str, rate_per_hour: Optional[float] = None
    ) -> dict:
        plate = _clean(license_plate, "license_plate")
        rate = self.default_rate_per_hour if rate_per_hour is None else rate_per_hour
        if not math.isfinite(rate):
            raise InvalidInput("rate_per_hour must be a finite number")
        if rate < 0:
            raise InvalidInput("rate_per_hour must not be negative")

        async with self._transaction(db, "record_exit"):
            vehicle = await crud.get_active_session_by_plate(db, plate)
            if vehicle is None:
                logger.error(f"Vehicle {plate} not found in parking lot.")
                raise SessionNotFound()

            # the wall clock may step backwards; never bill negative time
            exit_time = max(self.clock(), vehicle.entry_time)
            try:
                hours, fee = calculate_fee(vehicle.entry_time, exit_time, rate)
            except ValueError as e:
                raise InvalidInput(str(e)) from e

            closed = await crud.mark_session_exited(db, vehicle.id, exit_time)
            if closed is None:
                raise SessionNotFound()

            lot = await crud.get_parking_lot(db)
            if lot is None:
                raise ConfigurationNotFound()

            if not await crud.release_spot(db, lot.id):
                if self.strict_capacity:
                    raise CapacityInvariantViolation(
                        detail=f"available_spots already at total_capacity ({lot.total_capacity})"
                    )
                logger.warning(
                    f"Exit of {plate} would exceed capacity {lot.total_capacity}; counter clamped"
                )

        logger.info(
            f"Vehicle {plate} exited. Duration: {hours} hour(s), rate: ${rate}/hour, "
            f"total amount due: ${fee}"
        )
        return {
            "session_id": closed.id,
            "license_plate": closed.license_plate,
            "parking_spot": closed.parking_spot,
            "entry_time": closed.entry_time,
            "exit_time": closed.exit_time,
            "duration_hours": hours,
            "rate_per_hour": rate,
            "fee": fee,
        }

    async def get_availability(self, db: AsyncSession) -> dict:
        async with self._transaction(db, "get_availability"):
            lot = await crud.get_parking_lot(db)
            if lot is None:
                raise ConfigurationNotFound()

        logger.info(f"Available Parking Slots: {lot.available_spots}")
        return {"total_capacity": lot.total_capacity, "available_spots": lot.available_spots}

    async def setup_lot(self, db: AsyncSession, total_capacity: int) -> dict:
        """Create the lot, or resize it keeping one spot per parked vehicle."""
        if not isinstance(total_capacity, int) or total_capacity < 0:
            raise InvalidInput("Capacity cannot be negative")

        async with self._transaction(db, "setup_lot"):
            active = await crud.count_active_sessions(db)
            if total_capacity < active:
                raise InvalidInput(
                    f"Capacity {total_capacity} is below the {active} vehicle(s) currently parked"
                )

            lot = await crud.get_parking_lot(db)
            if lot is None:
                await crud.create_parking_lot(db, total_capacity, total_capacity - active)
            else:
                await crud.resize_parking_lot(db, lot.id, total_capacity, total_capacity - active)

        logger.info(f"Parking lot configured with capacity {total_capacity}")
        return await self.get_availability(db)

    async def ensure_lot(self, db: AsyncSession, total_capacity: int) -> bool:
        """Create the lot when none exists; True if one was created."""
        async with self._transaction(db, "ensure_lot"):
            if await crud.get_parking_lot(db) is not None:
                return False
        await self.setup_lot(db, total_capacity)
        return True

    async def list_sessions(self, db: AsyncSession, license_plate: str) -> List[VehicleSession]:
        plate = _clean(license_plate, "license_plate")
        async with self._transaction(db, "list_sessions"):
            sessions = await crud.list_sessions_by_plate(db, plate)
        return sessions

    async def check_consistency(self, db: AsyncSession) -> dict:
        async with self._transaction(db, "check_consistency"):
            lot = await crud.get_parking_lot(db)
            if lot is None:
                raise ConfigurationNotFound()
            active = await crud.count_active_sessions(db)

        return {
            "total_capacity": lot.total_capacity,
            "available_spots": lot.available_spots,
            "active_sessions": active,
            "consistent": active + lot.available_spots == lot.total_capacity,
        }
