"""Console Shell State.

Navigation, status line, readiness and the notification feed shared by every
page. Notifications are kept in a bounded tuple so the feed cannot grow
without limit.
"""

from __future__ import annotations

import itertools
import time
from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from console.shared.core.actions import Action, create_action

from .getters import Getter
from .immutable import same
from .segment import Segment

SHELL_SEGMENT = "shell"

NotificationLevel = Literal["info", "success", "error", "warning"]

_notification_ids = itertools.count(1)


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    level: NotificationLevel = "info"
    title: str = ""
    text: str = ""
    ts: float = Field(default_factory=time.time)


class ShellState(BaseModel):
    """Immutable state of the console shell."""
    model_config = ConfigDict(frozen=True)

    nav_selected: str = "dashboard"
    status_text: str = "System Initializing..."
    is_ready: bool = False
    notifications: Tuple[Notification, ...] = ()


class ShellActionType(str, Enum):
    NAV_SELECT = "SHELL_NAV_SELECT"
    STATUS_TEXT = "SHELL_STATUS_TEXT"
    READY = "SHELL_READY"
    NOTIFICATION_ADD = "SHELL_NOTIFICATION_ADD"
    NOTIFICATION_DISMISS = "SHELL_NOTIFICATION_DISMISS"


# --- Action creators ---

def select_nav(route_id: str) -> Action:
    """Change the selected navigation route."""
    return create_action(ShellActionType.NAV_SELECT, route_id)


def set_status(text: str) -> Action:
    return create_action(ShellActionType.STATUS_TEXT, text)


def set_ready(ready: bool = True) -> Action:
    return create_action(ShellActionType.READY, ready)


def show_notification(text: str, title: str = "", level: NotificationLevel = "info") -> Action:
    """Push a notification; ids are unique for the process lifetime."""
    notification = Notification(id=next(_notification_ids), level=level, title=title, text=text)
    return create_action(ShellActionType.NOTIFICATION_ADD, notification)


def show_success(text: str, title: str = "") -> Action:
    return show_notification(text, title, "success")


def show_error(text: str, title: str = "") -> Action:
    return show_notification(text, title, "error")


def show_info(text: str, title: str = "") -> Action:
    return show_notification(text, title, "info")


def dismiss_notification(notification_id: int) -> Action:
    return create_action(ShellActionType.NOTIFICATION_DISMISS, notification_id)


# --- Segment ---

def _replace(state: ShellState, **changes) -> ShellState:
    """``model_copy`` only when a field actually changes."""
    if all(same(getattr(state, name), value) for name, value in changes.items()):
        return state
    return state.model_copy(update=changes)


def create_shell_segment(max_notifications: int = 50, initial: Optional[ShellState] = None) -> Segment[ShellState]:
    """Build the shell segment.

    Args:
        max_notifications: Oldest notifications are dropped past this count
        initial: Starting state, defaults to ``ShellState()``
    """
    segment: Segment[ShellState] = Segment(initial or ShellState())

    @segment.on(ShellActionType.NAV_SELECT)
    def _nav_select(state: ShellState, route_id: str) -> ShellState:
        if not route_id:
            return state
        return _replace(state, nav_selected=str(route_id))

    @segment.on(ShellActionType.STATUS_TEXT)
    def _status_text(state: ShellState, text: str) -> ShellState:
        if not text:
            return state
        return _replace(state, status_text=str(text))

    @segment.on(ShellActionType.READY)
    def _ready(state: ShellState, ready: bool) -> ShellState:
        return _replace(state, is_ready=bool(ready))

    @segment.on(ShellActionType.NOTIFICATION_ADD)
    def _add(state: ShellState, notification: Notification) -> ShellState:
        feed = (state.notifications + (notification,))[-max_notifications:]
        return state.model_copy(update={"notifications": feed})

    @segment.on(ShellActionType.NOTIFICATION_DISMISS)
    def _dismiss(state: ShellState, notification_id: int) -> ShellState:
        feed = tuple(n for n in state.notifications if n.id != notification_id)
        if len(feed) == len(state.notifications):
            return state
        return state.model_copy(update={"notifications": feed})

    return segment


# --- Getters ---

nav_selected = Getter((SHELL_SEGMENT, "nav_selected"))
status_text = Getter((SHELL_SEGMENT, "status_text"))
is_ready = Getter((SHELL_SEGMENT, "is_ready"))
notifications = Getter((SHELL_SEGMENT, "notifications"))

error_notifications = Getter(
    notifications,
    compute=lambda feed: tuple(n for n in feed if n.level == "error"),
    name="error_notifications",
)
