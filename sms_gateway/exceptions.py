from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional


class APIException(HTTPException):
    def __init__(self, status_code: int, detail: str, provider_error: Optional[str] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.provider_error = provider_error


def create_error_response(error_message: str, provider_error: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    body = {"error": error_message}
    if provider_error:
        body["providerError"] = provider_error
    return body


def error_response(status_code: int, error_message: str, provider_error: Optional[str] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=create_error_response(error_message, provider_error))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, "Not found")
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "provider_error", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON and wrong field types are plain 400s, not 422s"""
    return error_response(400, "Invalid request body")
