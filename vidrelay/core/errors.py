from typing import Any, Dict, Optional


class ApiError(Exception):
    """
    Error surfaced to the caller as ``{"error": ..., "message"?: ...}``.

    ``error`` may be an i18n key (``"error.not_found"``); it is translated
    with ``params`` for the caller's locale when rendered. Extra keyword
    arguments are merged into the JSON body.
    """

    status_code = 500

    def __init__(
        self,
        error: str,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
        **extra: Any
    ):
        super().__init__(message or error)
        self.error = error
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.params = params or {}
        self.extra = extra

    def to_response(self, translate=None) -> Dict[str, Any]:
        error = translate(self.error, **self.params) if translate else self.error
        body: Dict[str, Any] = {"error": error}
        if self.message:
            body["message"] = self.message
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body


class BadRequestError(ApiError):
    status_code = 400


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class UpstreamError(ApiError):
    """
    Upstream failure tagged with its kind:
    network, status, parse or timeout.
    """

    status_code = 502

    def __init__(
        self,
        error: str,
        message: Optional[str] = None,
        kind: str = "network",
        status_code: Optional[int] = None,
        **extra: Any
    ):
        super().__init__(error, message, status_code=status_code, **extra)
        self.kind = kind
