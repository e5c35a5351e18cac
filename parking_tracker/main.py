"""
FastAPI application for the parking lot tracker.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_500_INTERNAL_SERVER_ERROR

from parking_tracker import __version__
from parking_tracker.config import Settings, get_settings
from parking_tracker.database import create_engine, create_sessionmaker, get_db, init_db
from parking_tracker.errors import ParkingError
from parking_tracker.gate import GateNotifier
from parking_tracker.schemas import (
    AvailabilityResponse,
    LotSetup,
    PaymentResult,
    SessionHistoryResponse,
    VehicleEntryCreate,
    VehicleEntryResponse,
    VehicleExitCreate,
    VehicleSessionResponse,
)
from parking_tracker.service import ParkingService

logger = logging.getLogger(__name__)


def get_service(request: Request) -> ParkingService:
    """Get parking service from app state."""
    return request.app.state.parking_service


def get_gate(request: Request) -> GateNotifier:
    """Get gate notifier from app state."""
    return request.app.state.gate


def notify_gate(app: FastAPI, gate: GateNotifier, direction: str):
    if not gate.enabled:
        return
    publish = gate.open_entry if direction == "entry" else gate.open_exit
    task = asyncio.create_task(publish())
    # the loop holds tasks only weakly
    app.state.gate_tasks.add(task)
    task.add_done_callback(app.state.gate_tasks.discard)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Parking Tracker...")
        engine = create_engine(settings.database_url)
        await init_db(engine)

        app.state.sessionmaker = create_sessionmaker(engine)
        app.state.parking_service = ParkingService(
            default_rate_per_hour=settings.default_rate_per_hour,
            strict_capacity=settings.strict_capacity
        )
        app.state.gate = GateNotifier.from_settings(settings)
        app.state.gate_tasks = set()

        if settings.total_capacity is not None:
            async with app.state.sessionmaker() as db:
                if await app.state.parking_service.ensure_lot(db, settings.total_capacity):
                    logger.info(f"Created parking lot with {settings.total_capacity} spots")

        yield

        logger.info("Shutting down Parking Tracker...")
        if app.state.gate_tasks:
            await asyncio.gather(*app.state.gate_tasks)
        await engine.dispose()

    app = FastAPI(
        title="Parking Tracker",
        description="Vehicle entry/exit sessions, spot availability and parking fees",
        version=__version__,
        lifespan=lifespan
    )

    @app.exception_handler(ParkingError)
    async def parking_error_handler(request: Request, exc: ParkingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"kind": "server_error", "message": "Server error", "detail": str(exc)}
        )

    @app.get("/")
    async def root():
        return {
            "service": "Parking Tracker",
            "version": __version__,
            "status": "running"
        }

    @app.post("/api/v1/sessions/entry/", response_model=VehicleEntryResponse, status_code=HTTP_201_CREATED)
    async def vehicle_entry(
        request: Request,
        entry: VehicleEntryCreate,
        db: AsyncSession = Depends(get_db),
        service: ParkingService = Depends(get_service),
        gate: GateNotifier = Depends(get_gate)
    ):
        new_session, available_spots = await service.record_entry(
            db, entry.license_plate, entry.parking_spot
        )

        notify_gate(request.app, gate, "entry")

        return VehicleEntryResponse(
            message="Vehicle entry recorded",
            session=VehicleSessionResponse.model_validate(new_session),
            available_spots=available_spots
        )

    @app.put("/api/v1/sessions/exit/", response_model=PaymentResult)
    async def vehicle_exit(
        request: Request,
        exit_request: VehicleExitCreate,
        db: AsyncSession = Depends(get_db),
        service: ParkingService = Depends(get_service),
        gate: GateNotifier = Depends(get_gate)
    ):
        payment = await service.record_exit(db, exit_request.license_plate, exit_request.rate_per_hour)

        notify_gate(request.app, gate, "exit")

        return PaymentResult(
            message="Exit recorded, payment successful",
            **{**payment, "fee": float(payment["fee"])}
        )

    @app.get("/api/v1/sessions/{license_plate}", response_model=SessionHistoryResponse)
    async def session_history(
        license_plate: str,
        db: AsyncSession = Depends(get_db),
        service: ParkingService = Depends(get_service)
    ):
        sessions = await service.list_sessions(db, license_plate)
        return SessionHistoryResponse(
            license_plate=license_plate.strip(),
            sessions=[VehicleSessionResponse.model_validate(s) for s in sessions],
            count=len(sessions)
        )

    @app.get("/api/v1/lot/availability", response_model=AvailabilityResponse)
    async def availability(
        db: AsyncSession = Depends(get_db),
        service: ParkingService = Depends(get_service)
    ):
        return await service.get_availability(db)

    @app.put("/api/v1/lot/", response_model=AvailabilityResponse)
    async def setup_lot(
        lot: LotSetup,
        db: AsyncSession = Depends(get_db),
        service: ParkingService = Depends(get_service)
    ):
        return await service.setup_lot(db, lot.total_capacity)

    @app.get("/api/v1/health/")
    async def health_check(
        db: AsyncSession = Depends(get_db),
        service: ParkingService = Depends(get_service)
    ):
        consistency = await service.check_consistency(db)
        return {
            "status": "healthy" if consistency["consistent"] else "inconsistent",
            "service": "Parking Tracker",
            **consistency
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("parking_tracker.main:app", host="0.0.0.0", port=8000, reload=True)
