from datetime import date
from typing import Annotated, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, status
from sqlalchemy.orm import Session

from common.auth import SERVICE_ACCOUNT_ROLE, STAFF_ROLES, require_roles
from common.logging_config import configure_logging
from common.responses import ApiResponse, PagedResponse, install_exception_handlers, respond

from . import schemas
from .database import Base, engine, get_db
from .room_client import HttpRoomClient, RoomClient
from .service import BookingService

# Create tables
Base.metadata.create_all(bind=engine)

SERVICE_NAME = "bookings"
configure_logging(SERVICE_NAME)

app = FastAPI(title="Bookings Service", version="1.0.0")
router = APIRouter(prefix="/api")
install_exception_handlers(app, SERVICE_NAME)


@app.get("/")
def root():
    """
    Health-check endpoint for the Bookings service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": SERVICE_NAME, "status": "running"}


staff = require_roles(*STAFF_ROLES)

viewer_roles = require_roles(
    *STAFF_ROLES,
    SERVICE_ACCOUNT_ROLE,  # read-only access for other services
)


# ---------- Dependencies ----------


def get_room_client() -> RoomClient:
    return HttpRoomClient()


def get_clock() -> Callable[[], date]:
    return date.today


def get_booking_service(
    db: Session = Depends(get_db),
    room_client: RoomClient = Depends(get_room_client),
    clock: Callable[[], date] = Depends(get_clock),
) -> BookingService:
    return BookingService(db, room_client, clock)


# ---------- Queries ----------
# Static paths are registered before "/bookings/{booking_id}".


@router.get("/bookings", response_model=PagedResponse[schemas.BookingRead])
def list_bookings(
    filters: Annotated[schemas.BookingFilter, Query()],
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    """
    List bookings with filtering, sorting and pagination.

    Parameters
    ----------
    filters : BookingFilter
        Search term, exact-match and range filters, sort key and order,
        page number and page size (capped server side).

    Returns
    -------
    PagedResponse[BookingRead]
        One page of bookings plus paging metadata.
    """
    return respond(service.list_bookings(filters), schemas.BookingRead)


@router.get("/bookings/upcoming", response_model=ApiResponse[List[schemas.BookingRead]])
def upcoming_bookings(
    days: int = Query(default=7, ge=1, le=365),
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    """
    Non-cancelled bookings checking in within the next ``days`` days.
    """
    return respond(service.get_upcoming_bookings(days), schemas.BookingRead)


@router.get("/bookings/active", response_model=ApiResponse[List[schemas.BookingRead]])
def active_bookings(
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    """
    Bookings of guests currently in house.
    """
    return respond(service.get_active_bookings(), schemas.BookingRead)


@router.get("/bookings/guest/{guest_id}", response_model=ApiResponse[List[schemas.BookingRead]])
def guest_bookings(
    guest_id: int,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    return respond(service.get_guest_bookings(guest_id), schemas.BookingRead)


@router.get("/bookings/room/{room_id}", response_model=ApiResponse[List[schemas.BookingRead]])
def room_bookings(
    room_id: int,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    return respond(service.get_room_bookings(room_id), schemas.BookingRead)


@router.post("/bookings/check-availability", response_model=ApiResponse[schemas.AvailabilityRead])
def check_availability(
    body: schemas.AvailabilityRequest,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    """
    Check if a room is free for a date range.

    Returns
    -------
    ApiResponse[AvailabilityRead]
        ``data.available`` plus a human-readable reason.
    """
    result = service.check_availability(body.room_id, body.check_in_date, body.check_out_date)
    return respond(result)


@router.get("/bookings/{booking_id}", response_model=ApiResponse[schemas.BookingRead])
def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(viewer_roles),
):
    return respond(service.get_booking(booking_id), schemas.BookingRead)


# ---------- Commands ----------


@router.post(
    "/bookings",
    response_model=ApiResponse[schemas.BookingRead],
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    booking_in: schemas.BookingCreate,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(staff),
):
    """
    Create a new booking.

    Behavior
    --------
    - Validates the date range.
    - Verifies the guest exists and looks the room up in the rooms service.
    - Rejects bookings that overlap existing non-cancelled bookings.
    - Stores the booking as pending with the room's current price.

    Returns
    -------
    ApiResponse[BookingRead]
        201 with the created booking, 400/404/502 otherwise.
    """
    result = service.create_booking(
        booking_in.guest_id,
        booking_in.room_id,
        booking_in.check_in_date,
        booking_in.check_out_date,
    )
    return respond(result, schemas.BookingRead, success_status=status.HTTP_201_CREATED)


@router.put("/bookings/{booking_id}", response_model=ApiResponse[schemas.BookingRead])
def update_booking(
    booking_id: int,
    update_data: schemas.BookingUpdate,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(staff),
):
    result = service.update_booking(
        booking_id,
        room_id=update_data.room_id,
        check_in=update_data.check_in_date,
        check_out=update_data.check_out_date,
    )
    return respond(result, schemas.BookingRead)


@router.post("/bookings/{booking_id}/cancel", response_model=ApiResponse[schemas.BookingRead])
def cancel_booking(
    booking_id: int,
    body: Optional[schemas.BookingCancel] = None,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(staff),
):
    """
    Cancel a booking (soft: the record is kept with status cancelled).
    """
    reason = body.reason if body is not None else None
    return respond(service.cancel_booking(booking_id, reason), schemas.BookingRead)


@router.post("/bookings/{booking_id}/confirm", response_model=ApiResponse[schemas.BookingRead])
def confirm_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(staff),
):
    return respond(service.confirm_booking(booking_id), schemas.BookingRead)


@router.post("/bookings/{booking_id}/checkin", response_model=ApiResponse[schemas.BookingRead])
def check_in_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(staff),
):
    return respond(service.check_in_booking(booking_id), schemas.BookingRead)


@router.post("/bookings/{booking_id}/checkout", response_model=ApiResponse[schemas.BookingRead])
def check_out_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    _: Dict = Depends(staff),
):
    return respond(service.check_out_booking(booking_id), schemas.BookingRead)


app.include_router(router)
