# backend/utils/errors.py
import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StockError(Exception):
    """Base class for errors raised by the stock services."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StockError):
    """User-correctable input problems, reported per field."""

    status_code = 422

    def __init__(self, errors: Dict[str, List[str]], message: str = "The given data was invalid."):
        super().__init__(message)
        self.errors = errors


class UnsupportedImage(StockError):
    status_code = 415


class TooManyPhotos(StockError):
    status_code = 409


class StorageError(StockError):
    status_code = 503


class StockItemNotFound(StockError):
    status_code = 404

    def __init__(self, item_id: int):
        super().__init__(f"Stock item {item_id} not found")
        self.item_id = item_id


def _error_body(message: str, errors: Optional[Dict[str, List[str]]] = None) -> dict:
    body = {"detail": message}
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts in front of the field
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts) or "request"


def request_errors_to_dict(raw_errors) -> Dict[str, List[str]]:
    """Group pydantic/FastAPI error dicts by field name."""
    errors: Dict[str, List[str]] = {}
    for err in raw_errors:
        errors.setdefault(_field_name(err.get("loc", ())), []).append(err.get("msg", "Invalid value"))
    return errors


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.errors))

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(StockError)
    async def handle_stock_error(request: Request, exc: StockError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body("The given data was invalid.", request_errors_to_dict(exc.errors())),
        )
