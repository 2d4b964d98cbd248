"""
In-app error notifications.

Holds the toasts shown to users, newest first. Low-severity notifications
dismiss themselves after a few seconds; everything else stays until the
user dismisses it.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from aula_resilience.exception.base import AppError
from aula_resilience.exception.categories import ErrorContext, Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationAction:
    """Button attached to a notification."""

    label: str
    action: Callable[[], object]
    variant: Literal["default", "destructive", "outline"] = "default"


@dataclass
class ErrorNotification:
    """A notification shown to the user."""

    id: str
    error: AppError
    context: ErrorContext
    dismissed: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    actions: list[NotificationAction] | None = None
    dismiss_at: float | None = None
    """Clock reading after which the notification dismisses itself (low severity only)."""


NotificationListener = Callable[[list[ErrorNotification]], None]


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class ErrorNotificationManager:
    """
    Notification list with subscribers.

    Auto-dismiss is checked against ``clock`` on every read and mutation,
    and, when an event loop is running, also pushed by a timer so
    subscribers hear about it without polling.
    """

    def __init__(
        self,
        max_notifications: int = 10,
        auto_dismiss_seconds: float = 5.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_notifications = max_notifications
        self._auto_dismiss_seconds = auto_dismiss_seconds
        self._clock = clock
        self._notifications: list[ErrorNotification] = []
        self._listeners: list[NotificationListener] = []
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def notify(
        self,
        error: AppError,
        context: ErrorContext | str = ErrorContext.PUBLIC,
        actions: list[NotificationAction] | None = None,
    ) -> str:
        """Add a notification and return its id."""
        notification = ErrorNotification(
            id=_new_id("error"),
            error=error,
            context=ErrorContext(context),
            actions=actions or None,
        )
        if error.severity == Severity.LOW:
            notification.dismiss_at = self._clock() + self._auto_dismiss_seconds
            self._schedule_dismiss(notification.id)

        self._notifications.insert(0, notification)
        for dropped in self._notifications[self._max_notifications:]:
            self._cancel_timer(dropped.id)
        del self._notifications[self._max_notifications:]

        logger.debug(
            f"[Notifications] {error.code} ({error.severity.value}) -> {notification.id}",
            extra={"event": "notification.added"},
        )
        self._notify_listeners()
        return notification.id

    def dismiss(self, notification_id: str) -> None:
        self._cancel_timer(notification_id)
        for notification in self._notifications:
            if notification.id == notification_id and not notification.dismissed:
                notification.dismissed = True
                self._notify_listeners()
                return

    def get_notifications(
        self,
        context: ErrorContext | str | None = None,
    ) -> list[ErrorNotification]:
        """Active notifications, newest first, optionally for one context."""
        if self._expire():
            self._notify_listeners()
        return self._active(ErrorContext(context) if context is not None else None)

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        for notification_id in list(self._timers):
            self._cancel_timer(notification_id)
        self._notifications = []
        self._notify_listeners()

    def _active(self, context: ErrorContext | None = None) -> list[ErrorNotification]:
        return [
            n
            for n in self._notifications
            if not n.dismissed and (context is None or n.context == context)
        ]

    def _expire(self) -> bool:
        now = self._clock()
        expired = False
        for notification in self._notifications:
            if (
                not notification.dismissed
                and notification.dismiss_at is not None
                and now >= notification.dismiss_at
            ):
                notification.dismissed = True
                self._cancel_timer(notification.id)
                expired = True
        return expired

    def _schedule_dismiss(self, notification_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[notification_id] = loop.call_later(
            self._auto_dismiss_seconds,
            self._auto_dismiss,
            notification_id,
        )

    def _auto_dismiss(self, notification_id: str) -> None:
        self._timers.pop(notification_id, None)
        self.dismiss(notification_id)

    def _cancel_timer(self, notification_id: str) -> None:
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()

    def _notify_listeners(self) -> None:
        self._expire()
        active = self._active()
        for listener in list(self._listeners):
            try:
                listener(list(active))
            except Exception as e:
                logger.error(f"[Notifications] listener failed: {getattr(listener, '__name__', listener)}, error: {e}")
