from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from parking_tracker.models import ParkingLot, SessionStatus, VehicleSession, utcnow


async def get_active_session_by_plate(db: AsyncSession, license_plate: str):
    result = await db.execute(
        select(VehicleSession).where(
            VehicleSession.license_plate == license_plate,
            VehicleSession.status == SessionStatus.PARKED.value
        )
    )
    return result.scalars().first()


async def list_sessions_by_plate(db: AsyncSession, license_plate: str) -> List[VehicleSession]:
    result = await db.execute(
        select(VehicleSession)
        .where(VehicleSession.license_plate == license_plate)
        .order_by(VehicleSession.entry_time.desc(), VehicleSession.id.desc())
    )
    return list(result.scalars().all())


async def count_active_sessions(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(VehicleSession.id)).where(
            VehicleSession.status == SessionStatus.PARKED.value
        )
    )
    return result.scalar_one()


async def create_vehicle_session(
    db: AsyncSession, license_plate: str, parking_spot: str, entry_time: datetime
):
    new_session = VehicleSession(
        license_plate=license_plate,
        parking_spot=parking_spot,
        entry_time=entry_time,
        status=SessionStatus.PARKED.value
    )
    db.add(new_session)
    await db.flush()
    await db.refresh(new_session)
    return new_session


async def mark_session_exited(db: AsyncSession, session_id: int, exit_time: datetime):
    """Close a parked session in place; None if it was already closed."""
    result = await db.execute(
        update(VehicleSession)
        .where(
            VehicleSession.id == session_id,
            VehicleSession.status == SessionStatus.PARKED.value
        )
        .values(status=SessionStatus.EXITED.value, exit_time=exit_time)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None

    session = await db.get(VehicleSession, session_id, populate_existing=True)
    return session


async def get_parking_lot(db: AsyncSession) -> Optional[ParkingLot]:
    result = await db.execute(
        select(ParkingLot)
        .order_by(ParkingLot.id)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def create_parking_lot(db: AsyncSession, total_capacity: int, available_spots: int):
    lot = ParkingLot(total_capacity=total_capacity, available_spots=available_spots)
    db.add(lot)
    await db.flush()
    await db.refresh(lot)
    return lot


async def resize_parking_lot(db: AsyncSession, lot_id: int, total_capacity: int, available_spots: int):
    await db.execute(
        update(ParkingLot)
        .where(ParkingLot.id == lot_id)
        .values(total_capacity=total_capacity, available_spots=available_spots, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


async def reserve_spot(db: AsyncSession, lot_id: int) -> bool:
    """Take one spot; False when none was free at write time."""
    result = await db.execute(
        update(ParkingLot)
        .where(ParkingLot.id == lot_id, ParkingLot.available_spots > 0)
        .values(available_spots=ParkingLot.available_spots - 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_spot(db: AsyncSession, lot_id: int) -> bool:
    """Give one spot back; False when the counter is already at capacity."""
    result = await db.execute(
        update(ParkingLot)
        .where(ParkingLot.id == lot_id, ParkingLot.available_spots < ParkingLot.total_capacity)
        .values(available_spots=ParkingLot.available_spots + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
