from __future__ import annotations

import logging
import types
from collections.abc import Callable, Hashable
from typing import TYPE_CHECKING, Generic, TypeVar

from .metrics import DispatchMetrics

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .config import DispatcherSettings

PayloadT = TypeVar("PayloadT")

Handler = Callable[[PayloadT], object]
UniversalHandler = Callable[[str, PayloadT], object]

log = logging.getLogger(__name__)


def handler_key(handler: object) -> Hashable:
    """Identity key for a handler.

    Any value is accepted, hashable or not, and handlers that merely compare
    equal stay distinct. Bound methods are keyed by their instance and
    function so a freshly looked-up ``obj.method`` finds an earlier one.
    """
    if isinstance(handler, types.MethodType):
        return (id(handler.__self__), id(handler.__func__))
    if isinstance(handler, types.BuiltinMethodType) and not isinstance(
        handler.__self__, (types.ModuleType, type(None))
    ):
        return (id(handler.__self__), handler.__name__)
    return id(handler)


class Dispatcher(Generic[PayloadT]):
    """Synchronous publish/subscribe dispatcher.

    Handlers are registered for event names and called with the payload when
    a matching event is emitted. Universal handlers see every emission and
    receive the raw event name along with the payload.

    When ``name_prefix`` is set, emitted names are always resolved to
    ``"<prefix>:<name>"``. Registration only applies the prefix when
    ``auto_prefix`` is true or the call passes ``use_prefix=True``.

    Registration methods return the dispatcher so calls can be chained::

        dispatcher.register("a", on_a).register_once("b", on_b).emit("a", 1)

    or, with the handler omitted, act as a decorator::

        @dispatcher.register("a")
        def on_a(payload): ...

    Every emission iterates a snapshot of the matching handlers. Handlers added
    while an emission is running are first called on the next emission, and
    every handler in the snapshot is called even if an earlier one removes it.
    The exception is a single-shot handler: once it has been removed, by its
    own call in a nested emission or by ``unregister``, it is skipped.
    """

    def __init__(self, name_prefix: str = "", auto_prefix: bool = False) -> None:
        self._name_prefix = name_prefix
        self._auto_prefix = auto_prefix
        # identity key -> handler; the stored value keeps the keyed ids alive
        self._handlers: dict[str, dict[Hashable, Handler[PayloadT]]] = {}
        self._once: dict[str, dict[Hashable, Handler[PayloadT]]] = {}
        self._universal: dict[Hashable, UniversalHandler[PayloadT]] = {}
        self.metrics = DispatchMetrics()

    @classmethod
    def from_settings(cls, settings: DispatcherSettings | None = None) -> Dispatcher[PayloadT]:
        """Build a dispatcher from :class:`DispatcherSettings` (env/.env by default)."""
        from .config import get_settings

        settings = settings or get_settings()
        return cls(name_prefix=settings.name_prefix, auto_prefix=settings.auto_prefix)

    @property
    def name_prefix(self) -> str:
        return self._name_prefix

    @property
    def auto_prefix(self) -> bool:
        return self._auto_prefix

    def resolve_name(self, raw_name: str, use_prefix: bool | None = None) -> str:
        if use_prefix is None:
            use_prefix = self._auto_prefix
        if self._name_prefix and use_prefix:
            return f"{self._name_prefix}:{raw_name}"
        return raw_name

    # Registration ------------------------------------------------------------

    def register(
        self,
        raw_name: str,
        handler: Handler[PayloadT] | None = None,
        *,
        use_prefix: bool | None = None,
    ) -> Dispatcher[PayloadT] | Callable[[Handler[PayloadT]], Handler[PayloadT]]:
        """Add ``handler`` to the handlers for ``raw_name``.

        Registering the same handler twice for a name has no further effect.
        If ``handler`` is ``None`` this functions as a decorator factory.
        """

        if handler is None:
            return self._decorator(self.register, raw_name, use_prefix)

        name = self.resolve_name(raw_name, use_prefix)
        self._handlers.setdefault(name, {})[handler_key(handler)] = handler
        self._handlers_changed("register", raw_name, name)
        return self

    def unregister(
        self, raw_name: str, handler: Handler[PayloadT], *, use_prefix: bool | None = None
    ) -> Dispatcher[PayloadT]:
        name = self.resolve_name(raw_name, use_prefix)
        handlers = self._handlers.get(name)
        if handlers is None:
            return self
        key = handler_key(handler)
        handlers.pop(key, None)
        # a once-marker never outlives its registration
        self._once.get(name, {}).pop(key, None)
        self._handlers_changed("unregister", raw_name, name)
        return self

    def register_exclusive(
        self,
        raw_name: str,
        handler: Handler[PayloadT] | None = None,
        *,
        use_prefix: bool | None = None,
    ) -> Dispatcher[PayloadT] | Callable[[Handler[PayloadT]], Handler[PayloadT]]:
        """Make ``handler`` the only handler for ``raw_name``.

        Previously registered handlers and their once-markers are discarded.
        """

        if handler is None:
            return self._decorator(self.register_exclusive, raw_name, use_prefix)

        name = self.resolve_name(raw_name, use_prefix)
        self._handlers[name] = {handler_key(handler): handler}
        self._once.pop(name, None)
        self._handlers_changed("register_exclusive", raw_name, name)
        return self

    def register_once(
        self,
        raw_name: str,
        handler: Handler[PayloadT] | None = None,
        *,
        use_prefix: bool | None = None,
    ) -> Dispatcher[PayloadT] | Callable[[Handler[PayloadT]], Handler[PayloadT]]:
        """Register ``handler`` and remove it right after its next call."""

        if handler is None:
            return self._decorator(self.register_once, raw_name, use_prefix)

        name = self.resolve_name(raw_name, use_prefix)
        self._handlers.setdefault(name, {})[handler_key(handler)] = handler
        self._once.setdefault(name, {})[handler_key(handler)] = handler
        self._handlers_changed("register_once", raw_name, name)
        return self

    def register_universal(
        self, handler: UniversalHandler[PayloadT] | None = None
    ) -> (
        Dispatcher[PayloadT]
        | Callable[[UniversalHandler[PayloadT]], UniversalHandler[PayloadT]]
    ):
        if handler is None:

            def decorator(func: UniversalHandler[PayloadT]) -> UniversalHandler[PayloadT]:
                self.register_universal(func)
                return func

            return decorator

        self._universal[handler_key(handler)] = handler
        log.debug("register_universal", extra={"universal_count": len(self._universal)})
        return self

    def unregister_universal(self, handler: UniversalHandler[PayloadT]) -> Dispatcher[PayloadT]:
        self._universal.pop(handler_key(handler), None)
        log.debug("unregister_universal", extra={"universal_count": len(self._universal)})
        return self

    # Original event-emitter vocabulary
    on = register
    off = unregister
    one = register_exclusive
    once = register_once
    on_all = register_universal
    off_all = unregister_universal

    # Emission ----------------------------------------------------------------

    def emit(self, raw_name: str, payload: PayloadT | None = None) -> Dispatcher[PayloadT]:
        """Notify universal handlers, then every handler for ``raw_name``.

        The prefix is always applied here, whatever ``auto_prefix`` says.
        Handler exceptions propagate to the caller; handlers after the failing
        one are not called.
        """

        name = self.resolve_name(raw_name, use_prefix=True)
        self.metrics.emits_total.inc()
        with self.metrics.emit_ms.time():
            universal = tuple(self._universal.values())
            log.debug(
                "emit",
                extra={
                    "event_name": raw_name,
                    "resolved_name": name,
                    "handler_count": len(self._handlers.get(name, ())),
                    "universal_count": len(universal),
                },
            )
            for callback in universal:
                self.metrics.handler_calls_total.inc()
                callback(raw_name, payload)

            pending = tuple(self._handlers.get(name, {}).items())
            single_shot = set(self._once.get(name, ()))
            for key, handler in pending:
                # a single-shot handler may already have fired in a nested emit
                if key in single_shot and key not in self._handlers.get(name, {}):
                    continue
                self.metrics.handler_calls_total.inc()
                handler(payload)
                once = self._once.get(name)
                if once and key in once:
                    del once[key]
                    self._handlers.get(name, {}).pop(key, None)
                    self.metrics.once_removals_total.inc()
                    self._handlers_changed("once_removed", raw_name, name)
        return self

    # Introspection -----------------------------------------------------------

    def handlers(
        self, raw_name: str, *, use_prefix: bool | None = None
    ) -> tuple[Handler[PayloadT], ...]:
        handlers = self._handlers.get(self.resolve_name(raw_name, use_prefix), {})
        return tuple(handlers.values())

    def universal_handlers(self) -> tuple[UniversalHandler[PayloadT], ...]:
        return tuple(self._universal.values())

    def is_once(
        self, raw_name: str, handler: Handler[PayloadT], *, use_prefix: bool | None = None
    ) -> bool:
        return handler_key(handler) in self._once.get(self.resolve_name(raw_name, use_prefix), {})

    def event_names(self) -> tuple[str, ...]:
        """Resolved names that currently have at least one handler."""
        return tuple(name for name, handlers in self._handlers.items() if handlers)

    # Internals ---------------------------------------------------------------

    def _decorator(
        self,
        method: Callable[..., object],
        raw_name: str,
        use_prefix: bool | None,
    ) -> Callable[[Handler[PayloadT]], Handler[PayloadT]]:
        def decorator(func: Handler[PayloadT]) -> Handler[PayloadT]:
            method(raw_name, func, use_prefix=use_prefix)
            return func

        return decorator

    def _handlers_changed(self, action: str, raw_name: str, name: str) -> None:
        self.metrics.registered_handlers.set(sum(len(h) for h in self._handlers.values()))
        log.debug(
            action,
            extra={
                "event_name": raw_name,
                "resolved_name": name,
                "handler_count": len(self._handlers.get(name, ())),
            },
        )
