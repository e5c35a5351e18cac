"""
Standalone in-memory parking lot, runnable without a database.

    python -m parking_tracker.demo
"""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from parking_tracker.fees import calculate_fee
from parking_tracker.models import utcnow

logger = logging.getLogger(__name__)

TOTAL_SLOTS = 10


class InMemoryParkingLot:
    """Counter, parked vehicles and slot numbering held in one object behind a lock."""

    def __init__(self, total_slots: int = TOTAL_SLOTS, clock: Callable[[], datetime] = utcnow):
        if total_slots < 0:
            raise ValueError("Capacity cannot be negative")
        self.total_slots = total_slots
        self.available_slots = total_slots
        self.parked_vehicles: Dict[str, dict] = {}
        self.next_slot_number = 1
        self.clock = clock
        self._lock = threading.Lock()

    def track_available_slots(self) -> int:
        logger.info(f"Available Parking Slots: {self.available_slots}")
        return self.available_slots

    def log_vehicle_entry(self, vehicle_id: str) -> Optional[dict]:
        """Park a vehicle in the next numbered slot; None when full or already parked."""
        with self._lock:
            if self.available_slots <= 0:
                logger.warning(f"No available slots for vehicle {vehicle_id}. Parking lot is full.")
                return None
            if vehicle_id in self.parked_vehicles:
                logger.warning(f"Vehicle {vehicle_id} is already parked.")
                return None

            self.available_slots -= 1
            slot = self.next_slot_number
            self.next_slot_number += 1
            entry_time = self.clock()
            self.parked_vehicles[vehicle_id] = {"slot": slot, "entry_time": entry_time}

        logger.info(f"Vehicle {vehicle_id} entered. Assigned slot: {slot}. Entry time: {entry_time}.")
        self.track_available_slots()
        return {"vehicle_id": vehicle_id, "slot": slot, "entry_time": entry_time}

    def process_payment(self, vehicle_id: str, rate_per_hour: float) -> Optional[dict]:
        """Bill and release a parked vehicle; None if it is not in the lot.

        A rate the fee rules reject raises ValueError and leaves the vehicle parked.
        """
        with self._lock:
            vehicle = self.parked_vehicles.get(vehicle_id)
            if vehicle is None:
                logger.error(f"Vehicle {vehicle_id} not found in parking lot.")
                return None

            entry_time = vehicle["entry_time"]
            exit_time = max(self.clock(), entry_time)
            hours, amount = calculate_fee(entry_time, exit_time, rate_per_hour)
            del self.parked_vehicles[vehicle_id]
            self.available_slots = min(self.available_slots + 1, self.total_slots)

        logger.info(f"Processing payment for Vehicle {vehicle_id}:")
        logger.info(f"  Entry Time: {entry_time}")
        logger.info(f"  Exit Time: {exit_time}")
        logger.info(f"  Duration: {hours} hour(s)")
        logger.info(f"  Rate: ${rate_per_hour}/hour")
        logger.info(f"  Total Amount Due: ${amount}")
        logger.info(f"Vehicle {vehicle_id} exited.")
        self.track_available_slots()

        return {
            "vehicle_id": vehicle_id,
            "entry_time": entry_time,
            "exit_time": exit_time,
            "duration_hours": hours,
            "total_amount": amount,
            "slot": vehicle["slot"],
        }


def main(lot: Optional[InMemoryParkingLot] = None, wait_seconds: float = 2.0) -> InMemoryParkingLot:
    lot = lot or InMemoryParkingLot()

    logger.info("--- Initial State ---")
    lot.track_available_slots()

    logger.info("--- Vehicle Entries ---")
    for vehicle_id in ("ABC-123", "XYZ-789", "DEF-456", "GHI-010", "JKL-111"):
        lot.log_vehicle_entry(vehicle_id)

    logger.info("--- Current Parked Vehicles ---")
    logger.info(lot.parked_vehicles)

    time.sleep(wait_seconds)

    logger.info("--- Processing Payments ---")
    lot.process_payment("XYZ-789", 5)
    lot.process_payment("ABC-123", 5)
    lot.process_payment("UNKNOWN-VEHICLE", 5)

    logger.info("--- Final State ---")
    lot.track_available_slots()
    logger.info(f"Remaining Parked Vehicles: {lot.parked_vehicles}")
    return lot


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    main()
