from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar

from errorkit.capabilities import ProvidesContext, Renderable, Reportable
from errorkit.config import ErrorKitConfig
from errorkit.dedupe import DedupeTracker
from errorkit.models import ErrorRecord
from errorkit.registry import ErrorRegistry
from errorkit.responses import (
    ErrorResponse,
    default_response,
    generic_response,
    status_of,
    wants_json,
)
from errorkit.sinks import LoggingSink, LogSink, build_record
from errorkit.throttle import Throttler, kind_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordReporter(Protocol):
    """Receives every record written by the default report path."""

    def __call__(self, record: ErrorRecord) -> None: ...


class ExceptionDispatcher:
    """
    Reports and renders exceptions according to an ``ErrorRegistry``.

    Creating the dispatcher freezes the registry: setup is over and the rules
    are read-only from here on. ``report`` and ``render`` may be called from
    many threads or tasks at once.

        dispatcher = ExceptionDispatcher(registry, ErrorKitConfig(debug=True))
        try:
            ...
        except Exception as e:
            response = dispatcher.handle(e, request)
    """

    def __init__(
        self,
        registry: ErrorRegistry,
        config: ErrorKitConfig | None = None,
        sink: LogSink | None = None,
        reporters: Sequence[RecordReporter] = (),
        throttler: Throttler | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or ErrorKitConfig()
        self._sink = sink or LoggingSink()
        self._reporters = list(reporters)
        self._throttler = throttler or Throttler()
        self._dedupe: DedupeTracker | None = None
        if self._config.dedupe_enabled:
            self._dedupe = DedupeTracker(self._config.dedupe_max_entries)

        registry.freeze()

    @property
    def registry(self) -> ErrorRegistry:
        return self._registry

    @property
    def config(self) -> ErrorKitConfig:
        return self._config

    @property
    def dedupe(self) -> DedupeTracker | None:
        return self._dedupe

    # ----- reporting -----

    def report(self, error: BaseException) -> bool:
        """
        Report ``error``. Returns True if anything was reported.

        Order: ignored kinds, duplicate instances and throttled errors are
        dropped; a ``Reportable`` error reports itself; otherwise the first
        matching report rule runs, followed by the default log write unless
        the rule stops it. Failures inside hooks are logged, never raised.
        """
        return self._report(error, self._registry.map_error(error))

    def _report(self, error: BaseException, mapped: BaseException) -> bool:
        if self._registry.is_ignored(mapped):
            return False

        if self._dedupe is not None and self._dedupe.check_and_add(error):
            return False

        if not self._throttle_allows(mapped):
            return False

        if isinstance(mapped, Reportable):
            try:
                handled = mapped.report()
            except Exception:
                logger.exception("[errorkit] report() of %s failed", kind_name(mapped))
                handled = False
            if handled is not False:
                return True

        rule = self._registry.report_rule_for(mapped)
        if rule is not None:
            try:
                result = rule.action(mapped)
            except Exception:
                logger.exception("[errorkit] report action for %s failed", kind_name(mapped))
                result = None
            if rule.stop or result is False:
                return True

        self._write(mapped)
        return True

    def _throttle_allows(self, error: BaseException) -> bool:
        try:
            decision = self._registry.throttle_for(error)
        except Exception:
            logger.exception("[errorkit] throttle policy failed for %s", kind_name(error))
            return True
        return self._throttler.allow(error, decision)

    def context_for(self, error: BaseException) -> dict[str, Any]:
        """Global context merged with the error's own context (error keys win)."""
        context: dict[str, Any] = {}
        for provider in self._registry.context_providers:
            try:
                context.update(provider())
            except Exception:
                logger.exception("[errorkit] context provider failed")
        # The protocol check also matches a plain ``context`` data attribute
        if isinstance(error, ProvidesContext) and callable(error.context):
            try:
                context.update(error.context())
            except Exception:
                logger.exception("[errorkit] context() of %s failed", kind_name(error))
        return context

    def _write(self, error: BaseException) -> None:
        level = self._registry.level_for(error, self._config.default_level)
        record = build_record(error, level, self.context_for(error))
        try:
            self._sink.write(record, error)
        except Exception:
            logger.exception("[errorkit] log sink failed for %s", record.kind)

        for reporter in self._reporters:
            try:
                reporter(record)
            except Exception:
                logger.exception("[errorkit] reporter %r failed for %s", reporter, record.kind)

    # ----- rendering -----

    def render(self, error: BaseException, request: Any = None) -> ErrorResponse:
        """
        Render ``error`` into an ``ErrorResponse``.

        A ``Renderable`` error renders itself first; ``None`` from it falls
        through to the render rules, then to the default status mapping.
        If rendering itself raises, a bare response carrying the error's
        status is returned.
        """
        return self._render(self._registry.map_error(error), request)

    def _render(self, mapped: BaseException, request: Any) -> ErrorResponse:
        json = self._wants_json(request, mapped)

        try:
            response = self._render_custom(mapped, request)
            if response is None:
                response = default_response(
                    mapped,
                    json=json,
                    debug=self._config.debug,
                    pages=self._config.error_pages,
                )
        except Exception:
            logger.exception("[errorkit] rendering %s failed", kind_name(mapped))
            response = generic_response(status_of(mapped), json=json)

        for hook in self._registry.response_hooks:
            try:
                response = hook(response, mapped, request)
            except Exception:
                logger.exception("[errorkit] response hook failed for %s", kind_name(mapped))
        return response

    def _render_custom(self, error: BaseException, request: Any) -> ErrorResponse | None:
        if isinstance(error, Renderable):
            response = error.render(request)
            if response is not None:
                return response

        for rule in self._registry.render_rules:
            if not rule.matches(error):
                continue
            response = rule.action(error, request)
            if response is not None:
                return response
        return None

    def _wants_json(self, request: Any, error: BaseException) -> bool:
        predicates = self._registry.json_predicates
        if not predicates:
            return wants_json(request)
        try:
            return any(predicate(request, error) for predicate in predicates)
        except Exception:
            logger.exception("[errorkit] JSON predicate failed")
            return wants_json(request)

    # ----- helpers -----

    def handle(self, error: BaseException, request: Any = None) -> ErrorResponse:
        """Report then render; the error is mapped once and both steps see the same instance."""
        mapped = self._registry.map_error(error)
        self._report(error, mapped)
        return self._render(mapped, request)

    def rescue(
        self,
        fn: Callable[..., T],
        *args: Any,
        default: T | Callable[[BaseException], T] | None = None,
        report: bool = True,
        **kwargs: Any,
    ) -> T | None:
        """Call ``fn``; on failure report the error and return ``default``.

        A callable ``default`` is called with the error.
        """
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            if report:
                self.report(e)
            if callable(default):
                return default(e)
            return default

    def close(self) -> None:
        if self._dedupe is not None:
            self._dedupe.clear()
