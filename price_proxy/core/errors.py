from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

logger = logging.getLogger("price_proxy.errors")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PriceProxyError(Exception):
    """Base for errors that map onto a structured JSON error body."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class InvalidAmount(PriceProxyError):
    code = "invalid_amount"


class MissingFields(PriceProxyError):
    code = "missing_fields"

    def __init__(self, fields: Iterable[str]):
        names = list(fields)
        super().__init__(
            f"missing required fields: {', '.join(names)}", extra={"fields": names}
        )


class InvalidRate(PriceProxyError):
    code = "invalid_rate"


class Unauthorized(PriceProxyError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class UpstreamUnavailable(PriceProxyError):
    """Rate provider failure. Recovered by the rate cache, never sent to clients."""

    code = "upstream_unavailable"
    status_code = status.HTTP_502_BAD_GATEWAY


class PersistenceFailure(PriceProxyError):
    code = "persistence_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class MalformedPersistedState(PriceProxyError):
    """On-disk price document failed to parse. Recovered with the default document."""

    code = "malformed_persisted_state"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidSwapRequest(PriceProxyError):
    code = "invalid_swap_request"


class SwapRelayError(PriceProxyError):
    code = "swap_relay_unavailable"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


def error_body(code: str, detail: Any, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": code, "detail": detail}
    body.update(extra)
    body["timestamp"] = utc_now_iso()
    return body


def price_proxy_error_handler(request: Request, exc: PriceProxyError):  # type: ignore
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    else:
        logger.info("rejected %s %s: %s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, **exc.extra),
    )


def not_found_handler(request: Request, exc):  # type: ignore
    if exc.status_code != status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("http_error", exc.detail),
        )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=error_body(
            "not_found", f"No route for {request.method} {request.url.path}"
        ),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("validation_error", jsonable_errors(exc)),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.error("unhandled exception", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("internal_error", "An unexpected error occurred."),
    )
