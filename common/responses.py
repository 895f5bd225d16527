# common/responses.py
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .errors import ErrorKind
from .result import Page, ServiceResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UPSTREAM: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INFRASTRUCTURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ---------- Envelope schemas ----------

class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope returned by every endpoint.
    """
    success: bool
    message: str
    data: Optional[T] = None
    errors: List[str] = Field(default_factory=list)


class PagedResponse(ApiResponse[List[T]], Generic[T]):
    """
    Envelope for paginated listings.
    """
    page_number: int
    page_size: int
    total_count: int
    total_pages: int
    has_next: bool
    has_previous: bool


# ---------- Builders ----------

def _serialize(data: Any, schema: Optional[Type[BaseModel]]) -> Any:
    if schema is None or data is None:
        return data
    if isinstance(data, list):
        return [schema.model_validate(item) for item in data]
    return schema.model_validate(data)


def envelope(
    success: bool,
    message: str,
    data: Any = None,
    errors: Optional[List[str]] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    body = ApiResponse[Any](success=success, message=message, data=data, errors=errors or [])
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def respond(
    result: ServiceResult,
    schema: Optional[Type[BaseModel]] = None,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Render a ServiceResult as an HTTP response.

    Parameters
    ----------
    result : ServiceResult
        Outcome of a service call.
    schema : Optional[Type[BaseModel]]
        Read schema used to serialize ORM objects in ``result.data``.
    success_status : int
        Status code used when the result is successful.

    Returns
    -------
    JSONResponse
        Envelope with a status code derived from the failure kind.
    """
    if not result.success:
        code = STATUS_BY_KIND.get(result.kind, status.HTTP_400_BAD_REQUEST)
        return envelope(False, result.message, errors=result.errors, status_code=code)

    if isinstance(result.data, Page):
        return respond_page(result.data, schema, result.message)

    return envelope(True, result.message, _serialize(result.data, schema), status_code=success_status)


def respond_page(page: Page, schema: Optional[Type[BaseModel]], message: str = "Success") -> JSONResponse:
    body = PagedResponse[Any](
        success=True,
        message=message,
        data=_serialize(page.items, schema),
        errors=[],
        page_number=page.page_number,
        page_size=page.page_size,
        total_count=page.total_count,
        total_pages=page.total_pages,
        has_next=page.has_next,
        has_previous=page.has_previous,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(body))


# ---------- Exception handlers ----------

def install_exception_handlers(app: FastAPI, service_name: str) -> None:
    """
    Register handlers that render errors in the response envelope.
    """

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(ApiResponse[Any](success=False, message=detail, errors=[detail])),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(
                ApiResponse[Any](success=False, message="Validation failed", errors=errors)
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error in %s service: %s %s", service_name, request.method, request.url.path
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=jsonable_encoder(
                ApiResponse[Any](
                    success=False,
                    message="Internal server error",
                    errors=["Internal server error"],
                )
            ),
        )
