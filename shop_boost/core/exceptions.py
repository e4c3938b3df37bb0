"""Exception handlers mapping errors onto the APIResponse envelope."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from shop_boost.core.domain_exceptions import DomainException
from shop_boost.core.error_codes import ErrorCode
from shop_boost.schemas.common import APIResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: ErrorCode, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse.fail(code.value, message).model_dump(mode="json"),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    code = ErrorCode.NOT_FOUND if exc.status_code == 404 else ErrorCode.VALIDATION_ERROR
    return _error_response(exc.status_code, code, str(exc.detail))


async def domain_exception_handler(request: Request, exc: DomainException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.code, exc.message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorCode.INTERNAL_ERROR, "Internal server error")
