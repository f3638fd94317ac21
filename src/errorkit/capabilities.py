"""Capabilities an exception may implement to take part in its own handling.

These are structural protocols: an exception opts in by defining the method,
no base class required.

    class PaymentDeclined(Exception):
        def context(self) -> dict[str, Any]:
            return {"order_id": self.order_id}

        def render(self, request: Any) -> ErrorResponse | None:
            return ErrorResponse(status_code=402, body={"message": str(self)})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from errorkit.responses import ErrorResponse


@runtime_checkable
class Reportable(Protocol):
    """Reports itself.

    Returning ``False`` hands the error back to the dispatcher's rules and
    default log write. Any other result means reporting is done.
    """

    def report(self) -> bool | None: ...


@runtime_checkable
class Renderable(Protocol):
    """Renders itself. Returning ``None`` falls through to the default."""

    def render(self, request: Any) -> ErrorResponse | None: ...


@runtime_checkable
class ProvidesContext(Protocol):
    """Adds per-error context to the logged record."""

    def context(self) -> Mapping[str, Any]: ...
