import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from common.auth import SERVICE_ACCOUNT_ROLE, STAFF_ROLES, require_roles
from common.cache import delete_key, get_cached_json, set_cached_json
from common.logging_config import configure_logging
from common.pagination import paginate
from common.responses import ApiResponse, PagedResponse, envelope, install_exception_handlers, respond_page

from . import models, schemas
from .database import Base, engine, get_db

Base.metadata.create_all(bind=engine)

SERVICE_NAME = "rooms"
configure_logging(SERVICE_NAME)
logger = logging.getLogger(__name__)

app = FastAPI(title="Rooms Service", version="1.0.0")
router = APIRouter(prefix="/api")
install_exception_handlers(app, SERVICE_NAME)

ROOM_CACHE_TTL_SECONDS = 300

SORT_COLUMNS = {
    schemas.RoomSortField.ROOM_NUMBER: models.Room.room_number,
    schemas.RoomSortField.PRICE: models.Room.price_per_night,
    schemas.RoomSortField.CAPACITY: models.Room.capacity,
    schemas.RoomSortField.TYPE: models.Room.room_type,
    schemas.RoomSortField.CREATED: models.Room.created_at,
}


@app.get("/")
def root():
    """
    Health-check endpoint for the Rooms service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": SERVICE_NAME, "status": "running"}


admin_or_manager = require_roles("admin", "manager")

viewer_roles = require_roles(
    *STAFF_ROLES,
    SERVICE_ACCOUNT_ROLE,  # bookings service looks rooms up with a service token
)


def room_cache_key(room_id: int) -> str:
    return f"room:{room_id}"


def get_room_or_404(db: Session, room_id: int) -> models.Room:
    """
    Load a room by ID or raise HTTP 404.
    """
    room = db.query(models.Room).filter(models.Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Room with ID {room_id} not found")
    return room


def ensure_room_number_free(db: Session, room_number: str, room_id: Optional[int] = None) -> None:
    existing = db.query(models.Room).filter(models.Room.room_number == room_number).first()
    if existing and existing.id != room_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Room number {room_number} already exists",
        )


def room_payload(room: models.Room) -> dict:
    return schemas.RoomRead.model_validate(room).model_dump(mode="json")


# ---------- Create room ----------


@router.post("/rooms", response_model=ApiResponse[schemas.RoomRead], status_code=status.HTTP_201_CREATED)
def create_room(
    room_in: schemas.RoomCreate,
    db: Session = Depends(get_db),
    _: dict = Depends(admin_or_manager),
):
    """
    Create a new hotel room.

    Access
    ------
    - Allowed roles: admin, manager.

    Behavior
    --------
    - Ensures that the room number is unique.

    Parameters
    ----------
    room_in : RoomCreate
        New room details.
    db : Session
        Database session.

    Returns
    -------
    ApiResponse[RoomRead]
        The created room.

    Raises
    ------
    HTTPException
        If a room with the same number already exists.
    """
    ensure_room_number_free(db, room_in.room_number)

    room = models.Room(**room_in.model_dump())
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Room %s created (number %s)", room.id, room.room_number)
    return envelope(True, "Room created successfully", room_payload(room), status_code=status.HTTP_201_CREATED)


# ---------- List / search rooms ----------


@router.get("/rooms", response_model=PagedResponse[schemas.RoomRead])
def list_rooms(
    filters: Annotated[schemas.RoomFilter, Query()],
    db: Session = Depends(get_db),
    _: dict = Depends(viewer_roles),
):
    """
    Retrieve rooms with optional filters, sorting and pagination.

    Behavior
    --------
    - Supports filtering by:
      * room number / description substring
      * room type
      * price range and minimum capacity
      * availability flag.
    - Default order is by room number.

    Returns
    -------
    PagedResponse[RoomRead]
        One page of rooms.
    """
    query = db.query(models.Room)

    if filters.search_term:
        term = f"%{filters.search_term.strip()}%"
        query = query.filter(
            or_(models.Room.room_number.ilike(term), models.Room.description.ilike(term))
        )
    if filters.room_type:
        query = query.filter(models.Room.room_type == filters.room_type)
    if filters.min_price is not None:
        query = query.filter(models.Room.price_per_night >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(models.Room.price_per_night <= filters.max_price)
    if filters.min_capacity is not None:
        query = query.filter(models.Room.capacity >= filters.min_capacity)
    if filters.is_available is not None:
        query = query.filter(models.Room.is_available.is_(filters.is_available))

    column = SORT_COLUMNS.get(filters.sort_by, models.Room.room_number)
    column = column.desc() if filters.sort_order == "desc" else column.asc()
    query = query.order_by(column, models.Room.id.asc())

    page = paginate(query, filters.page_number, filters.page_size)
    return respond_page(page, schemas.RoomRead, "Rooms retrieved successfully")


@router.get("/rooms/{room_id}", response_model=ApiResponse[schemas.RoomRead])
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    _: dict = Depends(viewer_roles),
):
    """
    Retrieve a single room by its ID.

    This is the endpoint the bookings service uses to validate rooms and
    snapshot their price.

    Raises
    ------
    HTTPException
        If the room does not exist.
    """
    cache_key = room_cache_key(room_id)
    cached = get_cached_json(cache_key)
    if cached is not None:
        return envelope(True, "Room retrieved successfully", cached)

    room = get_room_or_404(db, room_id)
    data = room_payload(room)
    set_cached_json(cache_key, data, ttl_seconds=ROOM_CACHE_TTL_SECONDS)
    return envelope(True, "Room retrieved successfully", data)


# ---------- Update / delete rooms (admin or manager) ----------


@router.put("/rooms/{room_id}", response_model=ApiResponse[schemas.RoomRead])
def update_room(
    room_id: int,
    update_data: schemas.RoomUpdate,
    db: Session = Depends(get_db),
    _: dict = Depends(admin_or_manager),
):
    """
    Update an existing room.

    Behavior
    --------
    - Only provided fields are changed.
    - Ensures that the new room number (if changed) remains unique.
    - Existing bookings keep the price they were made with.
    """
    room = get_room_or_404(db, room_id)

    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    if "room_number" in changes and changes["room_number"] != room.room_number:
        ensure_room_number_free(db, changes["room_number"], room.id)

    for field, value in changes.items():
        setattr(room, field, value)
    room.updated_at = models.utcnow()

    db.add(room)
    db.commit()
    db.refresh(room)
    delete_key(room_cache_key(room_id))
    return envelope(True, "Room updated successfully", room_payload(room))


@router.patch("/rooms/{room_id}/availability", response_model=ApiResponse[schemas.RoomRead])
def set_room_availability(
    room_id: int,
    body: schemas.RoomAvailabilityUpdate,
    db: Session = Depends(get_db),
    _: dict = Depends(require_roles(*STAFF_ROLES)),
):
    """
    Toggle the availability flag (e.g. room under maintenance).
    """
    room = get_room_or_404(db, room_id)
    room.is_available = body.is_available
    room.updated_at = models.utcnow()
    db.commit()
    db.refresh(room)
    delete_key(room_cache_key(room_id))
    return envelope(True, "Room availability updated successfully", room_payload(room))


@router.delete("/rooms/{room_id}", response_model=ApiResponse[None])
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    _: dict = Depends(admin_or_manager),
):
    """
    Delete a room.

    Bookings keep their room snapshot, so historical bookings stay readable.
    """
    room = get_room_or_404(db, room_id)
    db.delete(room)
    db.commit()
    delete_key(room_cache_key(room_id))
    logger.info("Room %s deleted", room_id)
    return envelope(True, "Room deleted successfully")


app.include_router(router)
