"""
Ephemeral user-facing notices.

Informational notices describe work in progress and stay until replaced.
Success and error notices are terminal and clear themselves after a fixed
display duration. A success notice also clears any informational notice.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum


class NoticeKind(Enum):
    """What a notice reports."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    """One notice."""

    kind: NoticeKind
    message: str
    signature: str | None = None
    """Transaction id attached to a success notice."""


NoticeListener = Callable[["NoticeBoard"], None]


@dataclass(slots=True)
class NoticeBoard:
    """The notices currently on display."""

    duration: float = 5.0
    """Seconds a terminal notice stays up."""

    info: Notice | None = None
    success: Notice | None = None
    error: Notice | None = None

    _timers: dict[NoticeKind, asyncio.TimerHandle] = field(default_factory=dict)
    _listeners: list[NoticeListener] = field(default_factory=list)

    def on_change(self, listener: NoticeListener) -> None:
        """Register a listener called after every change."""
        self._listeners.append(listener)

    def show_info(self, message: str) -> Notice:
        """Show a work-in-progress message."""
        self.info = Notice(NoticeKind.INFO, message)
        self._changed()
        return self.info

    def clear_info(self) -> None:
        """Remove the work-in-progress message."""
        if self.info is not None:
            self.info = None
            self._changed()

    def show_success(self, message: str, signature: str | None = None) -> Notice:
        """Show a success notice and clear any informational notice."""
        self.info = None
        self.success = Notice(NoticeKind.SUCCESS, message, signature)
        self._schedule_clear(NoticeKind.SUCCESS)
        self._changed()
        return self.success

    def show_error(self, message: str) -> Notice:
        """Show an error notice."""
        self.error = Notice(NoticeKind.ERROR, message)
        self._schedule_clear(NoticeKind.ERROR)
        self._changed()
        return self.error

    def clear(self) -> None:
        """Remove every notice and cancel pending timers."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self.info = self.success = self.error = None
        self._changed()

    def _schedule_clear(self, kind: NoticeKind) -> None:
        """Clear a terminal notice after the display duration."""
        previous = self._timers.pop(kind, None)
        if previous is not None:
            previous.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside an event loop nothing can expire the notice.
            return
        self._timers[kind] = loop.call_later(self.duration, self._expire, kind)

    def _expire(self, kind: NoticeKind) -> None:
        self._timers.pop(kind, None)
        if kind is NoticeKind.SUCCESS:
            self.success = None
        else:
            self.error = None
        self._changed()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)
