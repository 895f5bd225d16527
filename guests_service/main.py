from typing import Annotated, Dict

from fastapi import APIRouter, Depends, FastAPI, Query, status
from pydantic import EmailStr
from sqlalchemy.orm import Session

from bookings_service.database import Base, engine, get_db
from common.auth import SERVICE_ACCOUNT_ROLE, STAFF_ROLES, require_roles
from common.logging_config import configure_logging
from common.responses import ApiResponse, PagedResponse, install_exception_handlers, respond

from . import schemas
from .service import GuestService

# Guests share the reservations schema with bookings
Base.metadata.create_all(bind=engine)

SERVICE_NAME = "guests"
configure_logging(SERVICE_NAME)

app = FastAPI(title="Guests Service", version="1.0.0")
router = APIRouter(prefix="/api")
install_exception_handlers(app, SERVICE_NAME)


@app.get("/")
def root():
    return {"service": SERVICE_NAME, "status": "running"}


staff = require_roles(*STAFF_ROLES)
admin_or_manager = require_roles("admin", "manager")
viewer_roles = require_roles(*STAFF_ROLES, SERVICE_ACCOUNT_ROLE)


def get_guest_service(db: Session = Depends(get_db)) -> GuestService:
    return GuestService(db)


@router.get("/guests", response_model=PagedResponse[schemas.GuestRead])
def list_guests(
    filters: Annotated[schemas.GuestFilter, Query()],
    service: GuestService = Depends(get_guest_service),
    _: Dict = Depends(viewer_roles),
):
    """
    List guests with optional search over name, email and phone.

    Returns
    -------
    PagedResponse[GuestRead]
        One page of guests, newest first unless ``sort_by`` is given.
    """
    return respond(service.list_guests(filters), schemas.GuestRead)


@router.get("/guests/by-email", response_model=ApiResponse[schemas.GuestRead])
def get_guest_by_email(
    email: EmailStr,
    service: GuestService = Depends(get_guest_service),
    _: Dict = Depends(viewer_roles),
):
    return respond(service.get_guest_by_email(email), schemas.GuestRead)


@router.get("/guests/{guest_id}", response_model=ApiResponse[schemas.GuestRead])
def get_guest(
    guest_id: int,
    service: GuestService = Depends(get_guest_service),
    _: Dict = Depends(viewer_roles),
):
    return respond(service.get_guest(guest_id), schemas.GuestRead)


@router.post(
    "/guests",
    response_model=ApiResponse[schemas.GuestRead],
    status_code=status.HTTP_201_CREATED,
)
def create_guest(
    guest_in: schemas.GuestCreate,
    service: GuestService = Depends(get_guest_service),
    _: Dict = Depends(staff),
):
    """
    Register a new guest.

    Raises
    ------
    400
        If another guest already uses the email address.
    """
    return respond(service.create_guest(guest_in), schemas.GuestRead, success_status=status.HTTP_201_CREATED)


@router.put("/guests/{guest_id}", response_model=ApiResponse[schemas.GuestRead])
def update_guest(
    guest_id: int,
    update_data: schemas.GuestUpdate,
    service: GuestService = Depends(get_guest_service),
    _: Dict = Depends(staff),
):
    return respond(service.update_guest(guest_id, update_data), schemas.GuestRead)


@router.delete("/guests/{guest_id}", response_model=ApiResponse[None])
def delete_guest(
    guest_id: int,
    service: GuestService = Depends(get_guest_service),
    _: Dict = Depends(admin_or_manager),
):
    """
    Delete a guest. Guests with bookings are kept (400).
    """
    return respond(service.delete_guest(guest_id))


app.include_router(router)
