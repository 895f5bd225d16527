import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol

import httpx

from common.auth import make_service_account_token
from common.errors import RoomServiceUnavailable
from common.settings import ROOM_SERVICE_TIMEOUT, ROOM_SERVICE_URL

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_USERNAME = "bookings_service"


@dataclass(frozen=True)
class RoomSnapshot:
    """
    Room attributes copied onto a booking, plus the rooms-service
    availability flag (False while the room is out of service).
    """
    id: int
    room_number: str
    room_type: str
    price_per_night: Decimal
    is_available: bool = True


class RoomClient(Protocol):
    def get_room(self, room_id: int) -> Optional[RoomSnapshot]:
        ...


class HttpRoomClient:
    """
    Look rooms up through the rooms service REST API.

    Parameters
    ----------
    base_url : str
        Root URL of the rooms service.
    timeout : float
        Per-request timeout in seconds. Failed calls are not retried.
    transport : httpx.BaseTransport, optional
        Custom transport, mainly for tests.
    """

    def __init__(
        self,
        base_url: str = ROOM_SERVICE_URL,
        timeout: float = ROOM_SERVICE_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def get_room(self, room_id: int) -> Optional[RoomSnapshot]:
        """
        Fetch a room by id.

        Returns
        -------
        Optional[RoomSnapshot]
            The room, or None if the rooms service reports 404.

        Raises
        ------
        RoomServiceUnavailable
            If the rooms service cannot be reached or answers with an
            unexpected status or payload.
        """
        token = make_service_account_token(SERVICE_ACCOUNT_USERNAME)
        headers = {"Authorization": f"Bearer {token}"}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(f"{self.base_url}/api/rooms/{room_id}", headers=headers)
        except httpx.RequestError as exc:
            logger.warning("Rooms service unreachable while fetching room %s: %s", room_id, exc)
            raise RoomServiceUnavailable("Failed to contact rooms service")

        if resp.status_code == 404:
            return None

        if resp.status_code != 200:
            logger.warning("Rooms service returned %s for room %s", resp.status_code, room_id)
            raise RoomServiceUnavailable("Rooms service returned an error when fetching the room")

        try:
            data = resp.json()["data"]
            return RoomSnapshot(
                id=int(data["id"]),
                room_number=str(data["room_number"]),
                room_type=str(data["room_type"]),
                price_per_night=Decimal(str(data["price_per_night"])),
                is_available=bool(data["is_available"]),
            )
        except (ValueError, KeyError, TypeError, InvalidOperation) as exc:
            logger.warning("Malformed room payload for room %s: %s", room_id, exc)
            raise RoomServiceUnavailable("Rooms service returned an invalid room payload")
