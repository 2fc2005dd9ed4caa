"""Named views and modal visibility for the main window."""

from __future__ import annotations

from enum import Enum
from typing import Callable


class ActiveView(str, Enum):
    HOME = "home"
    HISTORY = "history"
    ROUTES = "routes"
    PROFILE = "profile"
    ADMIN = "admin"


class Modal(str, Enum):
    RECHARGE = "recharge"
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"
    ADMIN_LOGIN = "admin_login"
    DOWNLOAD = "download"


# Views reachable from the bottom navigation bar.
NAVIGATION_VIEWS = (ActiveView.HOME, ActiveView.HISTORY, ActiveView.ROUTES, ActiveView.PROFILE)

Listener = Callable[[ActiveView], None]


class ViewRouter:
    """Track the active view and which modals are open.

    Listeners registered with :meth:`subscribe` are called with the new view
    whenever it changes.
    """

    def __init__(self, initial: ActiveView = ActiveView.HOME) -> None:
        self._active = initial
        self._open_modals: set[Modal] = set()
        self._listeners: list[Listener] = []

    @property
    def active_view(self) -> ActiveView:
        return self._active

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def navigate(self, view: ActiveView) -> None:
        if view == self._active:
            return
        self._active = view
        for listener in list(self._listeners):
            listener(view)

    def leave_admin(self, fallback: ActiveView = ActiveView.PROFILE) -> None:
        if self._active == ActiveView.ADMIN:
            self.navigate(fallback)

    def open_modal(self, modal: Modal) -> None:
        self._open_modals.add(modal)

    def close_modal(self, modal: Modal) -> None:
        self._open_modals.discard(modal)

    def is_open(self, modal: Modal) -> bool:
        return modal in self._open_modals

    @property
    def open_modals(self) -> frozenset[Modal]:
        return frozenset(self._open_modals)

