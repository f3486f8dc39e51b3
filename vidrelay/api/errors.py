import functools
import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidrelay.core.errors import ApiError
from vidrelay.core.logging import log_error, log_warning
from vidrelay.i18n import i18n
from vidrelay.services.proxy import CORS_HEADERS
from vidrelay.utils.locale import get_locale

logger = logging.getLogger(__name__)

DEFAULT_DETAIL_KEYS = {
    404: "error.not_found",
    405: "error.method_not_allowed",
}


def translator(request: Request):
    locale = get_locale(request.headers.get("accept-language"))
    return functools.partial(i18n.get, locale=locale)


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": ..., "message"?: ...}``."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            log_error(request, f"{exc.error}: {exc.message}")
        else:
            log_warning(request, f"{exc.error}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(translator(request)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        _ = translator(request)
        detail = exc.detail
        try:
            default_phrase = HTTPStatus(exc.status_code).phrase
        except ValueError:
            default_phrase = None
        if detail == default_phrase and exc.status_code in DEFAULT_DETAIL_KEYS:
            detail = _(DEFAULT_DETAIL_KEYS[exc.status_code])
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        _ = translator(request)
        log_warning(request, f"Validation error: {exc.errors()}")
        message = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": _("error.invalid_params"), "message": message},
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": translator(request)("error.internal")},
            headers=CORS_HEADERS,
        )
