import logging
import traceback

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from faucet_api.utils.errors import FaucetError

logger = logging.getLogger(__name__)


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def register_exception_handlers(app, is_production: bool) -> None:
    @app.exception_handler(FaucetError)
    async def faucet_error_handler(request: Request, exc: FaucetError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = _describe(errors[0]) if errors else "Invalid request"
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content={
                "error": "Validation Error",
                "message": message,
                "statusCode": HTTP_400_BAD_REQUEST,
                "details": jsonable_encoder(errors),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error = {404: "Not Found", 405: "Method Not Allowed"}.get(exc.status_code, "Error")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": error, "message": str(exc.detail), "statusCode": exc.status_code},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        body = {
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "statusCode": HTTP_500_INTERNAL_SERVER_ERROR,
        }
        if not is_production:
            body["message"] = str(exc) or body["message"]
            body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content=body)
