from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from errorkit.config import parse_level
from errorkit.exceptions import HttpError, RegistryFrozenError
from errorkit.responses import ErrorResponse
from errorkit.throttle import Limit, Sample, ThrottlePolicy

Kind = type[BaseException] | Callable[[BaseException], bool]
ReportAction = Callable[[BaseException], Any]
RenderAction = Callable[[BaseException, Any], ErrorResponse | None]
ContextProvider = Callable[[], Mapping[str, Any]]
JsonPredicate = Callable[[Any, BaseException], bool]
ResponseHook = Callable[[ErrorResponse, BaseException, Any], ErrorResponse]

# Not reported unless stop_ignoring() is called for them
INTERNAL_DONT_REPORT: tuple[type[BaseException], ...] = (HttpError,)


def _matcher(kind: Kind) -> Callable[[BaseException], bool]:
    if isinstance(kind, type):
        if not issubclass(kind, BaseException):
            raise TypeError(f"{kind!r} is not an exception class")
        return lambda error: isinstance(error, kind)
    if callable(kind):
        return kind
    raise TypeError(f"Expected an exception class or predicate, got {kind!r}")


def _kind_label(kind: Kind) -> str:
    return getattr(kind, "__qualname__", repr(kind))


@dataclass(frozen=True, slots=True)
class ReportRule:
    kind: Kind
    action: ReportAction
    stop: bool = False

    def matches(self, error: BaseException) -> bool:
        return _matcher(self.kind)(error)


@dataclass(frozen=True, slots=True)
class RenderRule:
    kind: Kind
    action: RenderAction

    def matches(self, error: BaseException) -> bool:
        return _matcher(self.kind)(error)


@dataclass(frozen=True, slots=True)
class MapRule:
    kind: Kind
    factory: Callable[[BaseException], BaseException]

    def matches(self, error: BaseException) -> bool:
        return _matcher(self.kind)(error)


class ErrorRegistry:
    """
    Holds the exception handling configuration for one application.

    Built during startup, then frozen; after ``freeze()`` it is read-only and
    can be shared by concurrent dispatches without locking. Rules are checked
    in registration order and the first match wins.

        registry = ErrorRegistry()
        registry.reportable(PaymentDeclined, notify_billing, stop=True)
        registry.dont_report(ClientDisconnected)
        registry.level(CacheMiss, "warning")
        registry.freeze()
    """

    def __init__(self) -> None:
        self._report_rules: list[ReportRule] = []
        self._render_rules: list[RenderRule] = []
        self._map_rules: list[MapRule] = []
        self._ignored: dict[type[BaseException], None] = dict.fromkeys(INTERNAL_DONT_REPORT)
        self._levels: dict[type[BaseException], int] = {}
        self._context_providers: list[ContextProvider] = []
        self._throttle_policies: list[ThrottlePolicy] = []
        self._json_predicates: list[JsonPredicate] = []
        self._response_hooks: list[ResponseHook] = []
        self._frozen = False

    # ----- lifecycle -----

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """End the setup phase. Later registrations raise ``RegistryFrozenError``."""
        self._frozen = True

    def _check_open(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Registry is frozen; register handlers during startup")

    # ----- registration -----

    def reportable(self, kind: Kind, action: ReportAction | None = None, *, stop: bool = False) -> Any:
        """
        Register a report rule for ``kind``.

        ``action(error)`` runs for the first matching rule. Default logging
        still happens afterwards unless ``stop=True`` or the action returns
        ``False``. Usable as a decorator when ``action`` is omitted.
        """
        self._check_open()
        _matcher(kind)
        if action is None:

            def decorator(fn: ReportAction) -> ReportAction:
                self.reportable(kind, fn, stop=stop)
                return fn

            return decorator

        rule = ReportRule(kind=kind, action=action, stop=stop)
        self._report_rules.append(rule)
        return rule

    def renderable(self, kind: Kind, action: RenderAction | None = None) -> Any:
        """
        Register a render rule for ``kind``.

        ``action(error, request)`` returns an ``ErrorResponse``, or ``None`` to
        let the next rule (or the default mapping) handle it. Usable as a
        decorator when ``action`` is omitted.
        """
        self._check_open()
        _matcher(kind)
        if action is None:

            def decorator(fn: RenderAction) -> RenderAction:
                self.renderable(kind, fn)
                return fn

            return decorator

        rule = RenderRule(kind=kind, action=action)
        self._render_rules.append(rule)
        return rule

    def dont_report(self, *kinds: type[BaseException]) -> None:
        """Never report these kinds (or their subclasses). They are still rendered."""
        self._check_open()
        for kind in kinds:
            if not (isinstance(kind, type) and issubclass(kind, BaseException)):
                raise TypeError(f"{kind!r} is not an exception class")
            self._ignored[kind] = None

    def stop_ignoring(self, *kinds: type[BaseException]) -> None:
        """Undo ``dont_report``, including for kinds ignored out of the box."""
        self._check_open()
        for kind in kinds:
            self._ignored.pop(kind, None)

    def level(self, kind: type[BaseException], level: int | str) -> None:
        """Report ``kind`` at ``level`` (a logging level number or name)."""
        self._check_open()
        if not (isinstance(kind, type) and issubclass(kind, BaseException)):
            raise TypeError(f"{kind!r} is not an exception class")
        self._levels[kind] = parse_level(level)

    def context(self, provider: ContextProvider) -> ContextProvider:
        """Add a global context provider, merged into every report."""
        self._check_open()
        self._context_providers.append(provider)
        return provider

    def throttle(self, policy: ThrottlePolicy) -> ThrottlePolicy:
        """Add a throttle policy returning ``Limit``, ``Sample`` or ``None`` per error."""
        self._check_open()
        self._throttle_policies.append(policy)
        return policy

    def map(self, kind: Kind, factory: Callable[[BaseException], BaseException]) -> MapRule:
        """Translate errors of ``kind`` into another exception before handling."""
        self._check_open()
        _matcher(kind)
        rule = MapRule(kind=kind, factory=factory)
        self._map_rules.append(rule)
        return rule

    def should_render_json_when(self, predicate: JsonPredicate) -> JsonPredicate:
        """Override content negotiation: ``predicate(request, error)`` decides JSON vs HTML."""
        self._check_open()
        self._json_predicates.append(predicate)
        return predicate

    def respond_using(self, hook: ResponseHook) -> ResponseHook:
        """Post-process every rendered response: ``hook(response, error, request)``."""
        self._check_open()
        self._response_hooks.append(hook)
        return hook

    # ----- lookups -----

    @property
    def report_rules(self) -> tuple[ReportRule, ...]:
        return tuple(self._report_rules)

    @property
    def render_rules(self) -> tuple[RenderRule, ...]:
        return tuple(self._render_rules)

    @property
    def context_providers(self) -> tuple[ContextProvider, ...]:
        return tuple(self._context_providers)

    @property
    def json_predicates(self) -> tuple[JsonPredicate, ...]:
        return tuple(self._json_predicates)

    @property
    def response_hooks(self) -> tuple[ResponseHook, ...]:
        return tuple(self._response_hooks)

    @property
    def ignored(self) -> frozenset[type[BaseException]]:
        return frozenset(self._ignored)

    def report_rule_for(self, error: BaseException) -> ReportRule | None:
        for rule in self._report_rules:
            if rule.matches(error):
                return rule
        return None

    def is_ignored(self, error: BaseException) -> bool:
        return any(cls in self._ignored for cls in type(error).__mro__)

    def level_for(self, error: BaseException, default: int) -> int:
        """Most specific configured level along the error's class hierarchy."""
        for cls in type(error).__mro__:
            if cls in self._levels:
                return self._levels[cls]
        return default

    def throttle_for(self, error: BaseException) -> Limit | Sample | None:
        for policy in self._throttle_policies:
            decision = policy(error)
            if decision is not None:
                return decision
        return None

    def map_error(self, error: BaseException) -> BaseException:
        for rule in self._map_rules:
            if rule.matches(error):
                mapped = rule.factory(error)
                if mapped is not error and mapped.__cause__ is None:
                    mapped.__cause__ = error
                return mapped
        return error

    def __repr__(self) -> str:
        kinds = ", ".join(_kind_label(rule.kind) for rule in self._report_rules)
        return f"<ErrorRegistry report=[{kinds}] render={len(self._render_rules)} frozen={self._frozen}>"
