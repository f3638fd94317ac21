from __future__ import annotations

import html
import traceback
from string import Template
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any

from errorkit.exceptions import HttpError

_GENERIC_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{status_code} {title}</title>
<style>
body{{margin:0;font-family:system-ui,sans-serif;background:#f7f7f7;color:#333;
  display:flex;align-items:center;justify-content:center;min-height:100vh}}
.box{{text-align:center;padding:2rem}}
.box h1{{margin:0;font-size:1.25rem;font-weight:600}}
.box p{{color:#777}}
.trace{{text-align:left;background:#222;color:#ddd;padding:1rem;overflow-x:auto;
  font-size:0.8rem;white-space:pre;max-width:960px}}
</style>
</head>
<body>
<div class="box">
  <h1>{status_code} | {title}</h1>
  <p>{message}</p>
  {details}
</div>
</body>
</html>
"""


@dataclass(frozen=True)
class ErrorResponse:
    """Framework-neutral HTTP response produced by rendering an error.

    ``body`` is either a string (HTML or plain text) or a JSON-able mapping.
    """

    status_code: int
    body: str | Mapping[str, Any] = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    media_type: str | None = None

    def __post_init__(self) -> None:
        if self.media_type is None:
            media_type = "text/html; charset=utf-8" if isinstance(self.body, str) else "application/json"
            object.__setattr__(self, "media_type", media_type)

    @property
    def is_json(self) -> bool:
        return not isinstance(self.body, str)

    def with_headers(self, headers: Mapping[str, str]) -> ErrorResponse:
        return replace(self, headers={**self.headers, **headers})


def status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def status_of(error: BaseException) -> int:
    if isinstance(error, HttpError):
        return error.status_code
    return 500


def wants_json(request: Any) -> bool:
    """Default content negotiation: True when the client accepts JSON.

    Works with any request object exposing a ``headers`` mapping
    (Starlette, Flask, ``httpx.Request``) or with a plain mapping of headers.
    """
    if request is None:
        return False
    headers = getattr(request, "headers", request)
    if not isinstance(headers, Mapping) and not hasattr(headers, "get"):
        return False
    accept = headers.get("accept") or headers.get("Accept") or ""
    requested_with = headers.get("x-requested-with") or headers.get("X-Requested-With") or ""
    if requested_with.lower() == "xmlhttprequest":
        return True
    return "json" in accept.lower()


def _public_message(error: BaseException, status_code: int, debug: bool) -> str:
    if debug:
        return str(error) or status_phrase(status_code)
    if isinstance(error, HttpError):
        return error.message
    # Server errors never leak their message outside debug mode
    return status_phrase(status_code)


def _headers_of(error: BaseException) -> dict[str, str]:
    if isinstance(error, HttpError):
        return dict(error.headers)
    return {}


def _find_page(pages: Mapping[str, str], status_code: int) -> str | None:
    exact = pages.get(str(status_code))
    if exact is not None:
        return exact
    return pages.get(f"{status_code // 100}xx")


def json_response(error: BaseException, *, debug: bool = False) -> ErrorResponse:
    status_code = status_of(error)
    body: dict[str, Any] = {"message": _public_message(error, status_code, debug)}
    if debug:
        body["exception"] = type(error).__qualname__
        body["trace"] = traceback.format_exception(type(error), error, error.__traceback__)
    return ErrorResponse(status_code=status_code, body=body, headers=_headers_of(error))


def html_response(
    error: BaseException,
    *,
    debug: bool = False,
    pages: Mapping[str, str] | None = None,
) -> ErrorResponse:
    """Render an HTML status page.

    Lookup order: a page registered for the exact status ("404"), then the
    status class ("4xx"), then the built-in generic page. Custom pages are
    ``string.Template`` strings receiving ``$status_code``, ``$title`` and
    ``$message``, so braces in inline CSS or scripts need no escaping.
    """
    status_code = status_of(error)
    title = status_phrase(status_code)
    message = html.escape(_public_message(error, status_code, debug))
    page = _find_page(pages or {}, status_code)

    if page is not None:
        body = Template(page).safe_substitute(status_code=status_code, title=title, message=message)
    else:
        details = ""
        if debug:
            trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            details = f'<div class="trace">{html.escape(trace)}</div>'
        body = _GENERIC_PAGE.format(
            status_code=status_code,
            title=html.escape(title),
            message=message,
            details=details,
        )
    return ErrorResponse(status_code=status_code, body=body, headers=_headers_of(error))


def default_response(
    error: BaseException,
    *,
    json: bool = False,
    debug: bool = False,
    pages: Mapping[str, str] | None = None,
) -> ErrorResponse:
    """Map an error to its generic response: ``HttpError`` keeps its status, the rest are 500."""
    if json:
        return json_response(error, debug=debug)
    return html_response(error, debug=debug, pages=pages)


def generic_response(status_code: int = 500, *, json: bool = False) -> ErrorResponse:
    """Bare response for ``status_code`` that exposes nothing about the error."""
    title = status_phrase(status_code)
    if json:
        return ErrorResponse(status_code=status_code, body={"message": title})
    body = _GENERIC_PAGE.format(status_code=status_code, title=html.escape(title), message="", details="")
    return ErrorResponse(status_code=status_code, body=body)
