from __future__ import annotations

import logging
import traceback
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

from errorkit.models import ErrorRecord
from errorkit.settings import LOGGER_NAME
from errorkit.throttle import kind_name


class LogSink(Protocol):
    """Where the default report goes once rules have run."""

    def write(self, record: ErrorRecord, error: BaseException) -> None: ...


def build_record(error: BaseException, level: int, context: Mapping[str, Any]) -> ErrorRecord:
    tb = None
    if error.__traceback__ is not None:
        tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return ErrorRecord(
        kind=kind_name(error),
        message=str(error),
        level=level,
        level_name=logging.getLevelName(level),
        context=dict(context),
        timestamp=datetime.now(UTC),
        traceback=tb,
    )


class LoggingSink:
    """Writes reports through stdlib ``logging``.

    The merged context is attached to the log record as
    ``record.errorkit_context`` so formatters and handlers can pick it up.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def write(self, record: ErrorRecord, error: BaseException) -> None:
        self._logger.log(
            record.level,
            "%s: %s",
            record.kind,
            record.message,
            exc_info=(type(error), error, error.__traceback__),
            extra={"errorkit_context": record.context},
        )
