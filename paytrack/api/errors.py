"""Map domain exceptions onto HTTP responses"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paytrack.api.dependencies import get_request_id
from paytrack.api.v1.schemas import fmt
from paytrack.domain.exceptions import (
    ConcurrentModification,
    ConversionError,
    DomainException,
    InvalidArgument,
    NotFound,
    OverpaymentRejected,
)

logger = logging.getLogger(__name__)


async def invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
    logger.warning(f"Invalid argument: {exc}", extra={"request_id": get_request_id(request)})
    return JSONResponse(status_code=422, content={"detail": str(exc), "error": "invalid_argument"})


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc), "error": "not_found"})


async def overpayment_handler(request: Request, exc: OverpaymentRejected) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "error": "overpayment_rejected",
            "max_acceptable": fmt(exc.max_acceptable),
        },
    )


async def conflict_handler(request: Request, exc: ConcurrentModification) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "error": "concurrent_modification", "retryable": True},
    )


async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    logger.warning(f"Conversion rejected: {exc}", extra={"request_id": get_request_id(request)})
    return JSONResponse(status_code=409, content={"detail": str(exc), "error": "conversion_error"})


async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
    # subclasses without their own handler
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "domain_error"})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)}, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidArgument, invalid_argument_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(OverpaymentRejected, overpayment_handler)
    app.add_exception_handler(ConcurrentModification, conflict_handler)
    app.add_exception_handler(ConversionError, conversion_error_handler)
    app.add_exception_handler(DomainException, domain_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
