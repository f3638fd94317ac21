from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus


class ErrorKitError(Exception):
    """Base class for errors raised by errorkit itself."""


class RegistryFrozenError(ErrorKitError):
    """Raised when a rule is registered after the registry was frozen.

    The registry is frozen once the dispatcher starts serving errors.
    Rules, ignores and levels are fixed from that point on.
    """


class ConfigError(ErrorKitError, ValueError):
    """Invalid configuration value (bad level name, negative bound, ...)."""


class HttpError(Exception):
    """An error that carries its own HTTP status.

    Not reported by default. Rendered with ``status_code`` and ``headers``.
    """

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        headers: Mapping[str, str] | None = None,
    ):
        if message is None:
            message = _phrase(status_code)
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.headers = dict(headers or {})


def abort(
    status_code: int,
    message: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> None:
    """Raise an ``HttpError`` for ``status_code``."""
    raise HttpError(status_code, message, headers)


def _phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"
