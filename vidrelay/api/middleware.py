import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from vidrelay.api.errors import translator
from vidrelay.services.proxy import CORS_HEADERS

ALLOWED_METHODS = ("GET", "OPTIONS")


def register_middleware(app: FastAPI) -> None:
    """
    Edge policy applied before routing: every response carries the CORS
    headers, OPTIONS is answered with an empty 200, and only GET reaches
    the routers.
    """

    @app.middleware("http")
    async def edge_policy(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        if request.method not in ALLOWED_METHODS:
            _ = translator(request)
            return JSONResponse(
                status_code=405,
                content={"error": _("error.method_not_allowed")},
                headers={**CORS_HEADERS, "Allow": ", ".join(ALLOWED_METHODS)},
            )

        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    # Added last so it wraps edge_policy and ids are set before anything logs
    @app.middleware("http")
    async def request_id(request: Request, call_next):
        request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response
