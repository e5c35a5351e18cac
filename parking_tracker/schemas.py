from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VehicleEntryCreate(BaseModel):
    license_plate: str = Field(..., min_length=1, max_length=20)
    parking_spot: str = Field(..., min_length=1, max_length=20)


class VehicleExitCreate(BaseModel):
    license_plate: str = Field(..., min_length=1, max_length=20)
    rate_per_hour: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class VehicleSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    license_plate: str
    parking_spot: str
    entry_time: datetime
    exit_time: Optional[datetime] = None
    status: str


class VehicleEntryResponse(BaseModel):
    message: str
    session: VehicleSessionResponse
    available_spots: int


class PaymentResult(BaseModel):
    message: str
    session_id: int
    license_plate: str
    parking_spot: str
    entry_time: datetime
    exit_time: datetime
    duration_hours: int
    rate_per_hour: float
    fee: float


class SessionHistoryResponse(BaseModel):
    license_plate: str
    sessions: List[VehicleSessionResponse]
    count: int


class LotSetup(BaseModel):
    total_capacity: int = Field(..., ge=0)


class AvailabilityResponse(BaseModel):
    total_capacity: int
    available_spots: int


class ErrorResponse(BaseModel):
    kind: str
    message: str
    detail: Optional[str] = None
