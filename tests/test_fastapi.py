"""Tests for errorkit.integrations.fastapi."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from errorkit.config import ErrorKitConfig
from errorkit.dispatch import ExceptionDispatcher
from errorkit.exceptions import abort
from errorkit.integrations.fastapi import install
from errorkit.registry import ErrorRegistry
from errorkit.responses import ErrorResponse


class ClientGone(Exception):
    pass


class OrderNotFound(Exception):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"order {order_id} not found")
        self.order_id = order_id


@pytest.fixture
def app_and_sink(registry: ErrorRegistry, config: ErrorKitConfig, sink) -> tuple[FastAPI, Any]:
    registry.dont_report(ClientGone)
    registry.renderable(
        OrderNotFound,
        lambda e, request: ErrorResponse(status_code=404, body={"message": str(e), "path": request.url.path}),
    )
    dispatcher = ExceptionDispatcher(registry, config, sink=sink)

    app = FastAPI()
    install(app, dispatcher)

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str) -> dict:
        raise OrderNotFound(order_id)

    @app.get("/crash")
    async def crash() -> dict:
        raise RuntimeError("database unreachable")

    @app.get("/forbidden")
    async def forbidden() -> dict:
        abort(403, "Admins only", headers={"X-Reason": "role"})
        return {}

    @app.get("/gone")
    async def gone() -> dict:
        raise ClientGone("bye")

    @app.get("/starlette")
    async def starlette_error() -> dict:
        raise HTTPException(status_code=409, detail="Conflict here")

    return app, sink


def client_for(app: FastAPI) -> TestClient:
    # Server exceptions are re-raised by the test client, so any error that
    # escapes the middleware fails the test
    return TestClient(app)


def test_render_rule_response(app_and_sink) -> None:
    app, sink = app_and_sink
    response = client_for(app).get("/orders/42", headers={"accept": "application/json"})

    assert response.status_code == 404
    assert response.json() == {"message": "order 42 not found", "path": "/orders/42"}
    assert len(sink.records) == 1


def test_unhandled_error_is_500_html(app_and_sink) -> None:
    app, sink = app_and_sink
    response = client_for(app).get("/crash", headers={"accept": "text/html"})

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("text/html")
    assert "database unreachable" not in response.text
    assert sink.records[0].message == "database unreachable"


def test_unhandled_error_as_json(app_and_sink) -> None:
    app, _ = app_and_sink
    response = client_for(app).get("/crash", headers={"accept": "application/json"})
    assert response.status_code == 500
    assert response.json() == {"message": "Internal Server Error"}


def test_abort_keeps_status_and_headers(app_and_sink) -> None:
    app, sink = app_and_sink
    response = client_for(app).get("/forbidden", headers={"accept": "application/json"})

    assert response.status_code == 403
    assert response.json() == {"message": "Admins only"}
    assert response.headers["x-reason"] == "role"
    assert sink.records == []


def test_starlette_http_exception_translated(app_and_sink) -> None:
    app, sink = app_and_sink
    response = client_for(app).get("/starlette", headers={"accept": "application/json"})

    assert response.status_code == 409
    assert response.json() == {"message": "Conflict here"}
    assert sink.records == []


def test_unknown_route_uses_status_page(app_and_sink) -> None:
    app, _ = app_and_sink
    response = client_for(app).get("/nope", headers={"accept": "text/html"})

    assert response.status_code == 404
    assert "Not Found" in response.text


def test_ignored_error_is_rendered_without_reaching_the_server(app_and_sink) -> None:
    app, sink = app_and_sink
    response = client_for(app).get("/gone", headers={"accept": "application/json"})

    assert response.status_code == 500
    assert response.json() == {"message": "Internal Server Error"}
    assert sink.records == []
