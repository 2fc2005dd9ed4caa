"""Session and card state for the BUS2go companion.

``SessionManager`` is the single source of truth for who is using the app and
with which card. Every mutation goes through the injected :class:`DataService`
and the manager applies the returned result to its own copies of the data.

Action methods never raise for expected failures; they return an
:class:`~bus2go.models.ActionResult`. A ``DataServiceError`` raised by the
service during an action is logged and reported as a failed result. Only
:meth:`SessionManager.load` deals with initialisation failures, which leave the
previously published state untouched.

Methods are re-entrant: calling one twice concurrently performs the request
twice. Preventing duplicate submissions is left to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional, TypeVar, Union

from .data_service import DataService, DataServiceError
from .history import merge_history, recent_activity
from .models import (
    ActionResult,
    AdminStats,
    AuthResult,
    Card,
    HistoryItem,
    PaymentMethod,
    Recharge,
    Route,
    Trip,
    User,
)
from .navigation import ActiveView, Modal, ViewRouter
from .validation import validate_recharge_amount

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_KEY = "ADMIN123"
GENERIC_FAILURE = "Something went wrong. Please try again."

T = TypeVar("T")


class SessionManager:
    """Hold the current user, admin flag, active card and loaded collections."""

    def __init__(
        self,
        service: DataService,
        *,
        router: Optional[ViewRouter] = None,
        admin_key: str = DEFAULT_ADMIN_KEY,
    ) -> None:
        self.service = service
        self.router = router or ViewRouter()
        # Placeholder gate only; a deployed build needs a server-side check.
        self._admin_key = admin_key

        self.card: Optional[Card] = None
        self.original_card: Optional[Card] = None
        self.trips: list[Trip] = []
        self.recharges: list[Recharge] = []
        self.routes: list[Route] = []
        self.current_user: Optional[User] = None
        self.is_admin = False
        self.is_loading = False
        self.last_synced = "Never"
        self.admin_stats: Optional[AdminStats] = None

    @property
    def is_logged_in(self) -> bool:
        return self.current_user is not None

    # Initialisation ------------------------------------------------------
    async def load(self) -> bool:
        """Fetch card, trips, recharges and routes together.

        Returns ``True`` once all four collections are published. Any failure
        is logged and leaves the previous state in place.
        """

        self.is_loading = True
        try:
            card, trips, recharges, routes = await asyncio.gather(
                self.service.fetch_card(),
                self.service.fetch_trips(),
                self.service.fetch_recharges(),
                self.service.fetch_routes(),
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to fetch initial data")
            return False
        finally:
            self.is_loading = False

        self.card = replace(card)
        self.original_card = replace(card)
        self.trips = list(trips)
        self.recharges = list(recharges)
        self.routes = list(routes)
        logger.info(
            "Loaded card %s with %d trips, %d recharges and %d routes",
            card.card_number,
            len(self.trips),
            len(self.recharges),
            len(self.routes),
        )
        return True

    async def _call(self, action: str, request: Callable[[], Awaitable[T]]) -> Union[T, ActionResult]:
        try:
            return await request()
        except DataServiceError:
            logger.exception("%s request failed", action)
            return ActionResult.fail(GENERIC_FAILURE)

    # Card actions --------------------------------------------------------
    async def recharge(
        self, amount: float, payment_method: Union[PaymentMethod, str]
    ) -> ActionResult:
        """Top up the card and refresh the recharge history.

        The balance is replaced by the value the service reports. The history
        refresh runs only after the recharge has completed.
        """

        problem = validate_recharge_amount(amount)
        if problem:
            return ActionResult.fail(problem)
        try:
            method = PaymentMethod.parse(payment_method)
        except ValueError as exc:
            return ActionResult.fail(str(exc))

        if self.card is None:
            return ActionResult.fail("No card is loaded yet.")

        result = await self._call("Recharge", lambda: self.service.recharge(amount, method))
        if isinstance(result, ActionResult):
            return result
        if not result.success:
            return ActionResult.fail("Recharge failed. Please try again.")

        self.card = replace(self.card, balance=result.new_balance)
        logger.info("Recharged %.2f via %s; balance now %.2f", amount, method.value, result.new_balance)

        recharges = await self._call("Recharge history refresh", self.service.fetch_recharges)
        if not isinstance(recharges, ActionResult):
            self.recharges = list(recharges)
        return ActionResult.ok()

    async def link_new_card(self, card_number: str) -> ActionResult:
        """Replace the active card with the one the service links.

        Format checks are left to the service, which is stricter than the
        form (length and alphanumeric).
        """

        result = await self._call("Card link", lambda: self.service.link_card(card_number))
        if isinstance(result, ActionResult):
            return result
        if not result.success or result.card is None:
            logger.warning("Card link rejected: %s", result.message)
            return ActionResult.fail(result.message or "Failed to link card. Please try again.")
        self.card = replace(result.card)
        logger.info("Linked card %s", self.card.card_number)
        return ActionResult.ok()

    # Authentication ------------------------------------------------------
    async def sign_in(self, email: str, password: str) -> ActionResult:
        result = await self._call("Sign-in", lambda: self.service.sign_in(email, password))
        return self._apply_auth(result, closing=Modal.SIGN_IN)

    async def sign_up(self, name: str, email: str, password: str) -> ActionResult:
        """Register a user and treat the new account as signed in."""

        result = await self._call("Sign-up", lambda: self.service.sign_up(name, email, password))
        return self._apply_auth(result, closing=None)

    def _apply_auth(
        self, result: Union[AuthResult, ActionResult], *, closing: Optional[Modal]
    ) -> ActionResult:
        if isinstance(result, ActionResult):
            return result
        if not result.success or result.user is None:
            return ActionResult.fail(result.message or "An unknown error occurred.")
        self.current_user = result.user.public()
        if self.card is not None:
            self.card = replace(self.card, holder_name=self.current_user.name)
        if closing is not None:
            self.router.close_modal(closing)
        logger.info("User %s signed in", self.current_user.user_id)
        return ActionResult.ok()

    def sign_out(self) -> None:
        """Forget the user and admin flag, and restore the card's holder name."""

        if self.current_user is not None:
            logger.info("User %s signed out", self.current_user.user_id)
        self.current_user = None
        self.is_admin = False
        self.admin_stats = None
        self.router.leave_admin()
        if self.original_card is None:
            return
        if self.card is None:
            self.card = replace(self.original_card)
        else:
            self.card = replace(self.card, holder_name=self.original_card.holder_name)

    def admin_login(self, key: str) -> ActionResult:
        if key != self._admin_key:
            logger.warning("Rejected admin unlock attempt")
            return ActionResult.fail("Invalid Admin Key.")
        self.is_admin = True
        self.router.close_modal(Modal.ADMIN_LOGIN)
        self.router.navigate(ActiveView.ADMIN)
        logger.info("Admin mode unlocked")
        return ActionResult.ok()

    def navigate(self, view: ActiveView) -> bool:
        """Switch views; the admin view stays closed without the admin flag."""

        if view == ActiveView.ADMIN and not self.is_admin:
            return False
        self.router.navigate(view)
        return True

    # Extras --------------------------------------------------------------
    async def sync_with_cloud(self) -> ActionResult:
        result = await self._call("Cloud sync", self.service.sync_with_cloud)
        if isinstance(result, ActionResult):
            return result
        if not result.success:
            return ActionResult.fail("Sync failed. Please try again.")
        self.last_synced = result.last_synced
        return ActionResult.ok(result.last_synced)

    async def load_admin_stats(self) -> ActionResult:
        if not self.is_admin:
            return ActionResult.fail("Admin access required.")
        result = await self._call("Admin statistics", self.service.fetch_admin_stats)
        if isinstance(result, ActionResult):
            return result
        self.admin_stats = result
        return ActionResult.ok()

    # Derived views -------------------------------------------------------
    def history(self) -> list[HistoryItem]:
        return merge_history(self.trips, self.recharges)

    def recent_activity(self) -> list[HistoryItem]:
        return recent_activity(self.trips, self.recharges)
