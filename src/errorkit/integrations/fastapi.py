"""FastAPI / Starlette adapter.

    app = FastAPI()
    install(app, dispatcher)

Every unhandled exception is reported and rendered by the dispatcher in
``ErrorKitMiddleware``; the response is returned, not re-raised.
Starlette's ``HTTPException`` (raised by routing for 404/405 and by user
code) is translated to ``HttpError`` first, so it keeps its status and
headers and is not reported unless ``stop_ignoring(HttpError)`` was called.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from errorkit.exceptions import HttpError
from errorkit.responses import ErrorResponse

if TYPE_CHECKING:
    from fastapi import FastAPI

    from errorkit.dispatch import ExceptionDispatcher


def to_starlette(response: ErrorResponse) -> Response:
    if response.is_json:
        return JSONResponse(
            content=dict(response.body),  # type: ignore[arg-type]
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )
    return Response(
        content=response.body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )


def from_starlette_exception(exc: StarletteHTTPException) -> HttpError:
    error = HttpError(exc.status_code, str(exc.detail) if exc.detail is not None else None, exc.headers)
    error.__cause__ = exc
    return error


class ErrorKitMiddleware(BaseHTTPMiddleware):
    """
    Reports and renders any exception the app leaves unhandled.

    Sits inside Starlette's ``ServerErrorMiddleware``, so the error is turned
    into a response here and never reaches the server: ignored kinds and
    duplicates stay silent instead of being logged again by the server.
    """

    def __init__(self, app: ASGIApp, dispatcher: ExceptionDispatcher) -> None:
        super().__init__(app)
        self.dispatcher = dispatcher

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return to_starlette(self.dispatcher.handle(exc, request))


def install(app: FastAPI, dispatcher: ExceptionDispatcher) -> None:
    """Route the app's unhandled exceptions and HTTP exceptions through ``dispatcher``.

    Call it during setup, before the app starts serving.
    """

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
        return to_starlette(dispatcher.handle(from_starlette_exception(exc), request))

    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_middleware(ErrorKitMiddleware, dispatcher=dispatcher)
