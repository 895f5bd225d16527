import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bookings_service import models
from bookings_service.models import utcnow
from bookings_service.repository import GuestRepository
from common.errors import ConflictError, ErrorKind, NotFoundError, ServiceError
from common.pagination import paginate
from common.result import ServiceResult
from common.unit_of_work import UnitOfWork

from .schemas import GuestCreate, GuestFilter, GuestSortField, GuestUpdate

logger = logging.getLogger(__name__)

Guest = models.Guest

SORT_COLUMNS = {
    GuestSortField.FIRST_NAME: Guest.first_name,
    GuestSortField.LAST_NAME: Guest.last_name,
    GuestSortField.EMAIL: Guest.email,
    GuestSortField.CREATED: Guest.created_at,
}


class GuestService:
    """
    Guest registry operations. Mirrors BookingService's result contract.
    """

    def __init__(self, db: Session):
        self.guests = GuestRepository(db)
        self.uow = UnitOfWork(db)

    def _get_guest(self, guest_id: int) -> models.Guest:
        guest = self.guests.get_by_id(guest_id)
        if guest is None:
            raise NotFoundError("Guest", guest_id)
        return guest

    def _ensure_email_free(self, email: str, guest_id: Optional[int] = None) -> None:
        owner = self.guests.get_by_email(email)
        if owner is not None and owner.id != guest_id:
            raise ConflictError(f"A guest with email {email} already exists")

    def _run(self, operation: str, work, transactional: bool = True, **context) -> ServiceResult:
        if transactional:
            self.uow.begin_transaction()
        try:
            result = work()
            if transactional:
                self.uow.commit_transaction()
            return result
        except ServiceError as exc:
            self.uow.rollback_transaction()
            return ServiceResult.from_error(exc)
        except Exception as exc:
            self.uow.rollback_transaction()
            logger.exception("%s failed (%s)", operation, context)
            return ServiceResult.fail(
                f"An error occurred while trying to {operation}", [str(exc)], ErrorKind.INFRASTRUCTURE
            )

    def list_guests(self, filters: GuestFilter) -> ServiceResult:
        def work():
            q = self.guests.query()
            if filters.search_term:
                term = f"%{filters.search_term.strip()}%"
                q = q.filter(
                    or_(
                        Guest.first_name.ilike(term),
                        Guest.last_name.ilike(term),
                        Guest.email.ilike(term),
                        Guest.phone.ilike(term),
                    )
                )
            column = SORT_COLUMNS.get(filters.sort_by, Guest.created_at)
            if filters.sort_by is None:
                descending = filters.sort_order != "asc"
            else:
                descending = filters.sort_order == "desc"
            q = q.order_by(column.desc() if descending else column.asc(), Guest.id.asc())
            return ServiceResult.ok(
                paginate(q, filters.page_number, filters.page_size), "Guests retrieved successfully"
            )

        return self._run("retrieve guests", work, transactional=False)

    def get_guest(self, guest_id: int) -> ServiceResult:
        return self._run(
            "retrieve guest",
            lambda: ServiceResult.ok(self._get_guest(guest_id), "Guest retrieved successfully"),
            transactional=False,
            guest_id=guest_id,
        )

    def get_guest_by_email(self, email: str) -> ServiceResult:
        def work():
            guest = self.guests.get_by_email(email)
            if guest is None:
                raise NotFoundError("Guest", email)
            return ServiceResult.ok(guest, "Guest retrieved successfully")

        return self._run("retrieve guest", work, transactional=False, email=email)

    def create_guest(self, guest_in: GuestCreate) -> ServiceResult:
        def work():
            self._ensure_email_free(guest_in.email)
            guest = Guest(**guest_in.model_dump(), created_at=utcnow())
            self.guests.add(guest)
            self.uow.save_changes()
            logger.info("Guest %s created", guest.id)
            return ServiceResult.ok(guest, "Guest created successfully")

        return self._run("create guest", work, email=guest_in.email)

    def update_guest(self, guest_id: int, update_data: GuestUpdate) -> ServiceResult:
        def work():
            guest = self._get_guest(guest_id)
            changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
            if "email" in changes and changes["email"] != guest.email:
                self._ensure_email_free(changes["email"], guest.id)
            for field, value in changes.items():
                setattr(guest, field, value)
            guest.updated_at = utcnow()
            self.uow.save_changes()
            return ServiceResult.ok(guest, "Guest updated successfully")

        return self._run("update guest", work, guest_id=guest_id)

    def delete_guest(self, guest_id: int) -> ServiceResult:
        def work():
            guest = self._get_guest(guest_id)
            if self.guests.has_bookings(guest_id):
                raise ConflictError("Cannot delete a guest with existing bookings")
            self.guests.delete(guest)
            self.uow.save_changes()
            logger.info("Guest %s deleted", guest_id)
            return ServiceResult.ok(None, "Guest deleted successfully")

        return self._run("delete guest", work, guest_id=guest_id)
