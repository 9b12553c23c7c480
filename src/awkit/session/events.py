"""Event bus for decoupling session logic from host UI chrome.

Hosts subscribe to these events to refresh status lines, show notices or
repaint previews without the controller knowing about them.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all session events."""

    pass


# =============================================================================
# Session Events
# =============================================================================


@dataclass(slots=True)
class SessionStarted(Event):
    """Emitted once the prompt line and ranges exist.

    Attributes:
        document_key: Identity of the document hosting the session.
        example_text: First line of the selected region.
    """

    document_key: str
    example_text: str


@dataclass(slots=True)
class RunCompleted(Event):
    """Emitted when a run's result has been applied to the previews.

    Attributes:
        document_key: Identity of the document hosting the session.
        code: The command text that was run.
        exit_code: The tool's exit status.
    """

    document_key: str
    code: str
    exit_code: int


@dataclass(slots=True)
class SessionCommitted(Event):
    """Emitted after a commit action was applied."""

    document_key: str
    action: str
    length: int = 0


@dataclass(slots=True)
class SessionEnded(Event):
    """Emitted when a session is torn down.

    Attributes:
        document_key: Identity of the document hosting the session.
        aborted: ``True`` when the session ended through ``abort``.
    """

    document_key: str
    aborted: bool = False


@dataclass(slots=True)
class NoticePosted(Event):
    """Emitted when a recoverable problem should be shown to the user."""

    document_key: str
    message: str
    error_code: str = ""


class EventBus(Generic[E]):
    """Publish-subscribe hub for session events.

    A subscription names an event class and receives that class and its
    subclasses, so subscribing to :class:`Event` sees everything. Passing
    ``document_key`` narrows a subscription to one document's sessions.
    Bound-method handlers are held weakly and disappear with their owner.
    Publish from the session's control thread only.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        event_type: type[E],
        handler: Handler[E],
        *,
        document_key: str | None = None,
    ) -> Callable[[], None]:
        """Register ``handler`` and return a callable that removes it again."""

        subscription = _Subscription(event_type, _weaken(handler), document_key)
        self._subscriptions.append(subscription)
        logger.debug("%s subscribed to %s", _describe(handler), event_type.__name__)

        def _cancel() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return _cancel

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the oldest matching registration; unknown handlers are ignored."""

        for subscription in self._subscriptions:
            if subscription.event_type is event_type and subscription.target() == handler:
                self._subscriptions.remove(subscription)
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` to every interested handler in subscription order.

        A failing handler is logged and does not stop delivery.
        """

        document_key = getattr(event, "document_key", None)
        stale: list[_Subscription] = []
        for subscription in list(self._subscriptions):
            if not isinstance(event, subscription.event_type):
                continue
            if subscription.document_key is not None and subscription.document_key != document_key:
                continue
            handler = subscription.target()
            if handler is None:
                stale.append(subscription)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("%s failed handling %s", _describe(handler), type(event).__name__)
        for subscription in stale:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def clear(self) -> None:
        self._subscriptions.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Count live registrations, optionally for exactly ``event_type``."""

        self._subscriptions = [s for s in self._subscriptions if s.target() is not None]
        if event_type is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions if s.event_type is event_type)


@dataclass(slots=True, eq=False)
class _Subscription:
    event_type: type[Event]
    target: Callable[[], Handler | None]
    document_key: str | None = None


def _weaken(handler: Handler) -> Callable[[], Handler | None]:
    if inspect.ismethod(handler):
        return WeakMethod(handler)
    return lambda: handler


def _describe(handler: Handler) -> str:
    if inspect.ismethod(handler):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__qualname__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "SessionStarted",
    "RunCompleted",
    "SessionCommitted",
    "SessionEnded",
    "NoticePosted",
]
