import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, load_settings
from database import build_engine, build_sessionmaker, init_db
from errors import BookingError, ValidationError
from schemas import (
    AppointmentCreate,
    AppointmentRead,
    CountMap,
    CountResponse,
    CountsQuery,
    DeleteAllResponse,
    SlotCatalogue,
    SlotOption,
)
from slots import CHILD_GRADES, ROOMS, slot_end, slot_room_ids, slot_starts
from store import BookingStore, get_store

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting server: port=%s environment=%s origins=%s",
            settings.port,
            settings.environment,
            settings.allowed_origins,
        )
        await init_db(app.state.engine)
        yield
        await app.state.engine.dispose()

    app = FastAPI(title="Uniform Fitting Booking API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url, echo=settings.sql_echo)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Error handlers: every failure is {"error": message} ---
    @app.exception_handler(BookingError)
    async def booking_error(request: Request, exc: BookingError):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})

    @app.exception_handler(Exception)
    async def general_error(request: Request, exc: Exception):
        logger.error("500 error on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error."})

    # --- Liveness ---
    @app.get("/health")
    async def health():
        return {
            "status": "OK",
            "timestamp": _now(),
            "port": settings.port,
            "environment": settings.environment,
        }

    @app.get("/")
    async def root():
        return {
            "message": "Uniform Shop API is running",
            "timestamp": _now(),
            "port": settings.port,
        }

    # --- Booking catalogue for the form ---
    @app.get("/api/slots", response_model=SlotCatalogue)
    async def get_slots():
        return SlotCatalogue(
            dates=list(settings.booking_dates),
            slots=[
                SlotOption(start=start, end=slot_end(start), rooms=list(ROOMS))
                for start in slot_starts()
            ],
            slot_ids=slot_room_ids(),
            grades=list(CHILD_GRADES),
        )

    # --- Appointments ---
    @app.post(
        "/api/appointment",
        response_model=AppointmentRead,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_appointment(
        appointment: AppointmentCreate,
        store: BookingStore = Depends(get_store),
    ):
        return await store.create(appointment)

    @app.post("/api/appointments", response_model=List[AppointmentRead])
    async def list_appointments(store: BookingStore = Depends(get_store)):
        return await store.list()

    @app.post("/api/appointments/counts", response_model=CountMap)
    async def appointment_counts(
        query: CountsQuery,
        store: BookingStore = Depends(get_store),
    ):
        if query.dates is None or query.hours is None:
            raise ValidationError("dates and hours must be arrays.")
        return await store.counts(query.dates, query.hours)

    @app.post("/api/appointments/delete-all", response_model=DeleteAllResponse)
    async def delete_all_appointments(store: BookingStore = Depends(get_store)):
        deleted = await store.delete_all()
        return DeleteAllResponse(success=True, deletedCount=deleted)

    @app.get("/api/appointments/count", response_model=CountResponse)
    async def appointment_count(store: BookingStore = Depends(get_store)):
        return CountResponse(count=await store.count())

    return app


settings = load_settings()
_setup_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
