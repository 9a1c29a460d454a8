"""Per-request notification state and delivery to the item source."""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Union

from serp_trust.errors import NotificationDeliveryError
from serp_trust.models import Delivery, InjectBadge, ShowLoading

logger = logging.getLogger(__name__)

Event = Union[ShowLoading, InjectBadge]


class Notifier(ABC):
    """Channel back to the collaborator that submitted a request."""

    @abstractmethod
    async def deliver(self, event: Event) -> Delivery:
        """Send *event* and report whether the caller received it.

        Implementations return :attr:`Delivery.UNREACHABLE` instead of
        raising when the caller has gone away.
        """


class CallbackNotifier(Notifier):
    """Notifier wrapping a plain callable that takes the wire message.

    Parameters
    ----------
    send : Callable[[dict], Any]
        Sync or async callable. Raising :class:`NotificationDeliveryError`
        or :class:`ConnectionError` marks the caller unreachable.
    """

    def __init__(self, send: Callable[[dict[str, Any]], Any]) -> None:
        self._send = send

    async def deliver(self, event: Event) -> Delivery:
        try:
            outcome = self._send(event.to_message())
            if inspect.isawaitable(outcome):
                await outcome
        except (NotificationDeliveryError, ConnectionError) as exc:
            logger.warning("Could not deliver %s for %s: %s", event.kind, event.id, exc)
            return Delivery.UNREACHABLE
        return Delivery.DELIVERED


class ChannelNotifier(Notifier):
    """Notifier that puts wire messages on an :class:`asyncio.Queue`.

    Once :meth:`close` is called every delivery reports ``UNREACHABLE``,
    mirroring a tab that has been closed.
    """

    def __init__(self, queue: asyncio.Queue | None = None) -> None:
        self.queue: asyncio.Queue = queue if queue is not None else asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def deliver(self, event: Event) -> Delivery:
        if self._closed:
            return Delivery.UNREACHABLE
        await self.queue.put(event.to_message())
        return Delivery.DELIVERED


@dataclass
class LifecycleState:
    """Notification progress of one in-flight request."""

    loading_sent: bool = False
    final_sent: bool = False


class RequestLifecycleTracker:
    """Track which notifications each in-flight request has received.

    A state is created by :meth:`open` and destroyed when the final
    notification has been attempted or the request is abandoned. Delivery
    failures are absorbed here and never reach the orchestrator as
    exceptions.
    """

    def __init__(self) -> None:
        self._states: dict[str, LifecycleState] = {}

    def open(self, request_id: str) -> LifecycleState | None:
        """Start tracking *request_id*.

        Returns
        -------
        LifecycleState | None
            ``None`` if the id is already in flight.
        """
        if request_id in self._states:
            logger.info("Request %s is already in flight; ignoring duplicate", request_id)
            return None
        state = LifecycleState()
        self._states[request_id] = state
        return state

    def state(self, request_id: str) -> LifecycleState | None:
        return self._states.get(request_id)

    def in_flight(self) -> list[str]:
        """Return the ids currently tracked, in arrival order."""
        return list(self._states)

    def abandon(self, request_id: str) -> None:
        """Drop *request_id* without sending anything further."""
        if self._states.pop(request_id, None) is not None:
            logger.info("Abandoned request %s", request_id)

    async def send_loading(self, notifier: Notifier, request_id: str) -> bool:
        """Deliver ``SHOW_LOADING`` for *request_id*.

        Returns
        -------
        bool
            ``True`` if delivered. On failure the request is abandoned.
        """
        state = self._states.setdefault(request_id, LifecycleState())
        delivery = await self._deliver(notifier, ShowLoading(id=request_id))
        if delivery is Delivery.UNREACHABLE:
            logger.warning("Caller unreachable for %s; skipping analysis", request_id)
            self.abandon(request_id)
            return False
        state.loading_sent = True
        return True

    async def send_final(self, notifier: Notifier, event: InjectBadge) -> Delivery:
        """Deliver the final badge for ``event.id`` at most once.

        The tracked state is released whatever the outcome.
        """
        state = self._states.get(event.id)
        if state is not None and state.final_sent:
            logger.debug("Final notification for %s already attempted", event.id)
            return Delivery.UNREACHABLE
        if state is not None:
            state.final_sent = True
        try:
            delivery = await self._deliver(notifier, event)
        finally:
            self._states.pop(event.id, None)
        if delivery is Delivery.UNREACHABLE:
            logger.error("Could not send %s for %s: caller unreachable", event.kind, event.id)
        return delivery

    @staticmethod
    async def _deliver(notifier: Notifier, event: Event) -> Delivery:
        try:
            return await notifier.deliver(event)
        except (NotificationDeliveryError, ConnectionError) as exc:
            logger.warning("Delivery of %s for %s failed: %s", event.kind, event.id, exc)
            return Delivery.UNREACHABLE
        except Exception:
            logger.exception("Notifier raised while delivering %s for %s", event.kind, event.id)
            return Delivery.UNREACHABLE
