"""Tests for errorkit.responses."""

from types import SimpleNamespace

from errorkit.exceptions import HttpError
from errorkit.responses import (
    ErrorResponse,
    default_response,
    generic_response,
    status_phrase,
    wants_json,
)


class TestErrorResponse:
    def test_media_type_inferred(self) -> None:
        assert ErrorResponse(status_code=500, body="<p>x</p>").media_type == "text/html; charset=utf-8"
        assert ErrorResponse(status_code=500, body={"message": "x"}).media_type == "application/json"

    def test_explicit_media_type_kept(self) -> None:
        response = ErrorResponse(status_code=500, body="x", media_type="text/plain")
        assert response.media_type == "text/plain"
        assert not response.is_json

    def test_with_headers_merges(self) -> None:
        response = ErrorResponse(status_code=404, headers={"A": "1"}).with_headers({"B": "2"})
        assert response.headers == {"A": "1", "B": "2"}


class TestWantsJson:
    def test_none(self) -> None:
        assert wants_json(None) is False

    def test_request_object_with_headers(self) -> None:
        request = SimpleNamespace(headers={"accept": "application/problem+json"})
        assert wants_json(request) is True

    def test_html_accept(self) -> None:
        assert wants_json({"accept": "text/html"}) is False


class TestDefaultResponse:
    def test_server_error_hides_message(self) -> None:
        response = default_response(RuntimeError("db password is hunter2"), json=True)
        assert response.status_code == 500
        assert response.body == {"message": "Internal Server Error"}

    def test_http_error_message_is_public(self) -> None:
        response = default_response(HttpError(404, "Order not found"), json=True)
        assert response.body == {"message": "Order not found"}

    def test_html_escapes_message(self) -> None:
        response = default_response(HttpError(400, "<script>alert(1)</script>"))
        assert "<script>alert" not in response.body
        assert "&lt;script&gt;" in response.body

    def test_debug_html_includes_trace(self) -> None:
        try:
            raise ValueError("kaboom")
        except ValueError as e:
            response = default_response(e, debug=True)
        assert "kaboom" in response.body
        assert "Traceback" in response.body


def test_generic_response() -> None:
    assert generic_response(503, json=True).body == {"message": "Service Unavailable"}
    assert "503" in generic_response(503).body


def test_status_phrase_unknown() -> None:
    assert status_phrase(299) == "Error"
