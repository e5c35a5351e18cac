import enum
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Index, Integer, String, TIMESTAMP, text

from parking_tracker.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every TIMESTAMP column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SessionStatus(str, enum.Enum):
    PARKED = "parked"
    EXITED = "exited"


class VehicleSession(Base):
    __tablename__ = "vehicle_sessions"
    __table_args__ = (
        CheckConstraint("status IN ('parked', 'exited')", name="ck_vehicle_sessions_status"),
        # one parked session per plate
        Index(
            "uq_vehicle_sessions_active_plate",
            "license_plate",
            unique=True,
            sqlite_where=text("status = 'parked'"),
            postgresql_where=text("status = 'parked'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    license_plate = Column(String(20), nullable=False, index=True)
    parking_spot = Column(String(20), nullable=False)
    entry_time = Column(TIMESTAMP, nullable=False, default=utcnow)
    exit_time = Column(TIMESTAMP, nullable=True)
    status = Column(String(10), nullable=False, default=SessionStatus.PARKED.value)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.PARKED.value


class ParkingLot(Base):
    __tablename__ = "parking_lot"
    __table_args__ = (
        CheckConstraint("total_capacity >= 0", name="ck_parking_lot_capacity"),
        CheckConstraint("available_spots >= 0", name="ck_parking_lot_available_min"),
        CheckConstraint("available_spots <= total_capacity", name="ck_parking_lot_available_max"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    total_capacity = Column(Integer, nullable=False)
    available_spots = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow)
