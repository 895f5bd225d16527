# common/result.py
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from .errors import ErrorKind, ServiceError

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service operation.

    Services never let business failures escape as exceptions; callers
    inspect ``success`` and, on failure, ``kind`` to decide how to respond.
    """
    success: bool
    message: str
    data: Optional[T] = None
    errors: List[str] = field(default_factory=list)
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "Success") -> "ServiceResult[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(
        cls,
        message: str,
        errors: Optional[List[str]] = None,
        kind: ErrorKind = ErrorKind.VALIDATION,
    ) -> "ServiceResult[T]":
        return cls(success=False, message=message, errors=list(errors or [message]), kind=kind)

    @classmethod
    def from_error(cls, exc: ServiceError) -> "ServiceResult[T]":
        return cls.fail(exc.message, exc.errors, exc.kind)


@dataclass
class Page(Generic[T]):
    """
    One slice of a paginated query.
    """
    items: List[T]
    total_count: int
    page_number: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1
