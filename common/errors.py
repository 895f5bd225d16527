# common/errors.py
from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """
    Category of a failed operation, used to pick the HTTP status code.
    """
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"
    INFRASTRUCTURE = "infrastructure"


class ServiceError(Exception):
    """
    Base class for expected business failures raised inside a service.

    Attributes
    ----------
    message : str
        Human-readable summary.
    errors : List[str]
        Detail lines shown to the client.
    kind : ErrorKind
        Failure category.
    """
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors) if errors else [message]

    def __str__(self):
        return self.message


class ValidationFailed(ServiceError):
    kind = ErrorKind.VALIDATION


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with ID {identifier} not found")


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class InvalidStatusError(ConflictError):
    pass


class RoomServiceUnavailable(ServiceError):
    kind = ErrorKind.UPSTREAM
