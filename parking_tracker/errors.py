"""
Error kinds reported by the parking operations.

Domain violations each get their own kind so the HTTP layer can report them as
distinct client errors; every storage or runtime failure collapses into
``StorageFailure`` ("Server error").
"""

from typing import Optional


class ParkingError(Exception):
    kind = "server_error"
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"kind": self.kind, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class CapacityExceeded(ParkingError):
    kind = "full"
    status_code = 400
    default_message = "Parking lot is full"


class DuplicateActiveSession(ParkingError):
    kind = "already_parked"
    status_code = 400
    default_message = "A vehicle with this license plate is already parked"


class SessionNotFound(ParkingError):
    kind = "not_found"
    status_code = 404
    default_message = "No active parking session found"


class ConfigurationNotFound(ParkingError):
    kind = "configuration_not_found"
    status_code = 404
    default_message = "Parking lot configuration not found"


class InvalidInput(ParkingError):
    kind = "invalid_input"
    status_code = 422
    default_message = "Invalid input"


class StorageFailure(ParkingError):
    kind = "server_error"
    status_code = 500
    default_message = "Server error"


class CapacityInvariantViolation(StorageFailure):
    """Counter write would push available spots above total capacity."""
