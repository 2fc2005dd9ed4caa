"""PyQt6 companion for BUS2go RFID fare cards.

The window lets a passenger check their card balance, top it up, browse trip
and recharge history, search bus routes and manage their account. Staff can
unlock an admin dashboard with ridership statistics.

All data flows through :class:`~bus2go.session.SessionManager`. Its coroutines
run on a single-threaded ``QThreadPool`` so only one action touches the session
at a time; results come back to the GUI thread through worker signals.

Configuration
-------------
Window size, simulated latency and recharge presets live in ``settings.json``
inside the per-user data directory. ``BUS2GO_ADMIN_KEY`` and
``BUS2GO_LOG_LEVEL`` are read from the environment or a ``.env`` file.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import numpy as np
import pyqtgraph as pg
from dotenv import load_dotenv
from PyQt6.QtCore import QObject, QRunnable, QThreadPool, QTimer, Qt, pyqtSignal, QRegularExpression
from PyQt6.QtGui import QColor, QFont, QRegularExpressionValidator
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QButtonGroup,
    QDialog,
    QFileDialog,
    QFormLayout,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QStackedLayout,
    QTabWidget,
    QTableWidget,
    QTableWidgetItem,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from .config import SETTINGS_FILE, AppConfig, SettingsManager, load_app_config
from .data_service import CARD_NUMBER_LENGTH, MockDataService
from .formatting import (
    describe,
    format_currency,
    format_datetime,
    format_signed_currency,
    holder_initial,
)
from .models import ActionResult, AdminStats, HistoryItem, PaymentMethod, Route
from .navigation import NAVIGATION_VIEWS, ActiveView, Modal
from .routes import describe_stops, filter_routes
from .session import SessionManager
from .utils.exporter import CSV_FILENAME, PDF_FILENAME, export_history_csv, export_history_pdf
from .validation import (
    parse_custom_amount,
    validate_admin_key,
    validate_card_number,
    validate_recharge_amount,
    validate_sign_in,
    validate_sign_up,
)

logger = logging.getLogger(__name__)

pg.setConfigOptions(antialias=True, background=None, foreground="#374151")

APP_BUNDLE_ROOT = Path(__file__).resolve().parent
STYLE_FILE = APP_BUNDLE_ROOT / "resources" / "style.qss"

_VIEW_LABELS = {
    ActiveView.HOME: "Home",
    ActiveView.HISTORY: "History",
    ActiveView.ROUTES: "Routes",
    ActiveView.PROFILE: "Profile",
}


class WorkerSignals(QObject):
    """Signals available from a running background worker."""

    finished = pyqtSignal(object)
    error = pyqtSignal(str)


class Worker(QRunnable):
    """Runs a coroutine function to completion on the thread pool."""

    def __init__(self, fn: Callable, *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    def run(self) -> None:  # pragma: no cover - executed in a worker thread
        try:
            result = asyncio.run(self.fn(*self.args, **self.kwargs))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Background task %s failed", getattr(self.fn, "__name__", self.fn))
            self.signals.error.emit(str(exc))
        else:
            self.signals.finished.emit(result)


def _refresh_widget_style(widget: QWidget) -> None:
    style = widget.style()
    style.unpolish(widget)
    style.polish(widget)
    widget.update()


class InlineFeedbackBanner(QFrame):
    """Inline message shown next to the control that triggered it."""

    _ICONS: dict[str, str] = {
        "info": "ℹ",
        "success": "✔",
        "warning": "⚠",
        "error": "⛔",
    }

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("InlineFeedbackBanner")
        self.setProperty("severity", "info")
        self.setVisible(False)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)

        self._message = ""
        self._severity = "info"

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(10)

        self._icon_label = QLabel(self._ICONS["info"], self)
        layout.addWidget(self._icon_label, 0, Qt.AlignmentFlag.AlignTop)

        self._message_label = QLabel("", self)
        self._message_label.setWordWrap(True)
        layout.addWidget(self._message_label, 1)

    def show_message(self, message: str, *, severity: str = "info") -> None:
        cleaned = message.strip()
        if not cleaned:
            self.clear()
            return
        self._message = cleaned
        self._severity = severity
        self.setProperty("severity", severity)
        self._icon_label.setText(self._ICONS.get(severity, self._ICONS["info"]))
        self._message_label.setText(cleaned)
        _refresh_widget_style(self)
        self.setVisible(True)

    def clear(self) -> None:
        self._message = ""
        self._severity = "info"
        self._message_label.clear()
        self.setProperty("severity", "info")
        _refresh_widget_style(self)
        self.setVisible(False)

    @property
    def message(self) -> str:
        return self._message

    @property
    def severity(self) -> str:
        return self._severity


class CollapsibleSection(QWidget):
    """Profile section with a header button that shows or hides its body."""

    toggled = pyqtSignal(bool)

    def __init__(self, title: str, *, expanded: bool = False, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._toggle = QToolButton(self)
        self._toggle.setCheckable(True)
        self._toggle.setChecked(expanded)
        self._toggle.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self._toggle.setArrowType(Qt.ArrowType.DownArrow if expanded else Qt.ArrowType.RightArrow)
        self._toggle.setText(title)
        self._toggle.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self._toggle.toggled.connect(self._on_toggled)

        self._content_frame = QFrame(self)
        self._content_frame.setProperty("card", True)
        self._content_layout = QVBoxLayout(self._content_frame)
        self._content_layout.setContentsMargins(12, 12, 12, 12)
        self._content_layout.setSpacing(10)
        self._content_frame.setVisible(expanded)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)
        layout.addWidget(self._toggle)
        layout.addWidget(self._content_frame)

    def add_content_widget(self, widget: QWidget) -> None:
        self._content_layout.addWidget(widget)

    def set_expanded(self, expanded: bool) -> None:
        self._toggle.setChecked(expanded)

    def is_expanded(self) -> bool:
        return self._toggle.isChecked()

    def _on_toggled(self, checked: bool) -> None:
        self._toggle.setArrowType(Qt.ArrowType.DownArrow if checked else Qt.ArrowType.RightArrow)
        self._content_frame.setVisible(checked)
        self.toggled.emit(checked)


def _history_list_item(item: HistoryItem) -> QListWidgetItem:
    amount = format_signed_currency(item.signed_amount)
    widget_item = QListWidgetItem(
        f"{describe(item)}\n{format_datetime(item.timestamp)}    {amount}"
    )
    colour = "#dc2626" if item.signed_amount < 0 else "#16a34a"
    widget_item.setForeground(QColor(colour))
    widget_item.setData(Qt.ItemDataRole.UserRole, item.item_id)
    return widget_item


def _set_table_item(table: QTableWidget, row: int, column: int, text: str) -> None:
    cell = QTableWidgetItem(text)
    cell.setFlags(Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable)
    table.setItem(row, column, cell)


def _make_table(headers: Sequence[str]) -> QTableWidget:
    table = QTableWidget(0, len(headers))
    table.setHorizontalHeaderLabels(list(headers))
    table.verticalHeader().setVisible(False)
    table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
    table.setSelectionMode(QTableWidget.SelectionMode.NoSelection)
    table.setAlternatingRowColors(True)
    table.setVerticalScrollMode(QAbstractItemView.ScrollMode.ScrollPerPixel)
    table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
    return table


class HeaderBar(QFrame):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("HeaderBar")
        layout = QHBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)

        self.title_label = QLabel("BUS2go")
        self.title_label.setProperty("role", "appTitle")
        layout.addWidget(self.title_label)
        layout.addStretch(1)

        self.avatar_label = QLabel("👤")
        self.avatar_label.setObjectName("Avatar")
        self.avatar_label.setFixedSize(40, 40)
        self.avatar_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.avatar_label)

    def update_state(self, session: SessionManager) -> None:
        if session.is_logged_in and session.card is not None:
            self.avatar_label.setText(holder_initial(session.card.holder_name))
        else:
            self.avatar_label.setText("👤")


class BottomNav(QFrame):
    """Bottom navigation bar with one checkable button per main view."""

    view_selected = pyqtSignal(str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("BottomNav")
        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 6, 8, 6)
        self._group = QButtonGroup(self)
        self._group.setExclusive(True)
        self.buttons: dict[ActiveView, QPushButton] = {}
        for view in NAVIGATION_VIEWS:
            button = QPushButton(_VIEW_LABELS[view])
            button.setCheckable(True)
            button.setCursor(Qt.CursorShape.PointingHandCursor)
            button.clicked.connect(lambda _checked, v=view: self.view_selected.emit(v.value))
            self._group.addButton(button)
            layout.addWidget(button)
            self.buttons[view] = button
        self.buttons[ActiveView.HOME].setChecked(True)

    def set_active(self, view: ActiveView) -> None:
        button = self.buttons.get(view)
        if button is None:
            # The admin view has no tab; leave every button unchecked.
            self._group.setExclusive(False)
            for candidate in self.buttons.values():
                candidate.setChecked(False)
            self._group.setExclusive(True)
            return
        button.setChecked(True)


class HomeView(QWidget):
    recharge_requested = pyqtSignal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(16)

        self.balance_card = QFrame()
        self.balance_card.setObjectName("BalanceCard")
        card_layout = QVBoxLayout(self.balance_card)
        card_layout.setContentsMargins(20, 18, 20, 18)
        self.holder_label = QLabel("—")
        self.card_number_label = QLabel("")
        caption = QLabel("Current Balance")
        self.balance_label = QLabel(format_currency(0))
        self.balance_label.setProperty("role", "metricValue")
        for widget in (self.holder_label, self.card_number_label, caption, self.balance_label):
            card_layout.addWidget(widget)
        self.recharge_button = QPushButton("Quick Recharge")
        self.recharge_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self.recharge_button.clicked.connect(self.recharge_requested.emit)
        card_layout.addWidget(self.recharge_button)
        layout.addWidget(self.balance_card)

        heading = QLabel("Recent Activity")
        heading.setProperty("role", "title")
        layout.addWidget(heading)
        self.activity_list = QListWidget()
        self.activity_list.setSelectionMode(QAbstractItemView.SelectionMode.NoSelection)
        layout.addWidget(self.activity_list, 1)

    def refresh(self, session: SessionManager) -> None:
        card = session.card
        self.balance_card.setVisible(card is not None)
        if card is not None:
            self.holder_label.setText(card.holder_name)
            self.card_number_label.setText(card.card_number)
            self.balance_label.setText(format_currency(card.balance))
        self.activity_list.clear()
        for item in session.recent_activity():
            self.activity_list.addItem(_history_list_item(item))


class HistoryView(QWidget):
    download_requested = pyqtSignal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        header = QHBoxLayout()
        title = QLabel("History")
        title.setProperty("role", "title")
        header.addWidget(title)
        header.addStretch(1)
        self.download_button = QPushButton("Download")
        self.download_button.clicked.connect(self.download_requested.emit)
        header.addWidget(self.download_button)
        layout.addLayout(header)

        self.tabs = QTabWidget()
        self.trips_table = _make_table(["Date", "Route", "Fare", "Status"])
        self.recharges_table = _make_table(["Date", "Method", "Amount", "Status"])
        self.tabs.addTab(self.trips_table, "Trips")
        self.tabs.addTab(self.recharges_table, "Recharges")
        layout.addWidget(self.tabs, 1)

    def refresh(self, session: SessionManager) -> None:
        self.trips_table.setRowCount(len(session.trips))
        for row, trip in enumerate(session.trips):
            _set_table_item(self.trips_table, row, 0, format_datetime(trip.timestamp))
            _set_table_item(self.trips_table, row, 1, f"{trip.origin} to {trip.destination}")
            _set_table_item(self.trips_table, row, 2, format_signed_currency(-trip.fare))
            _set_table_item(self.trips_table, row, 3, trip.status.value)

        self.recharges_table.setRowCount(len(session.recharges))
        for row, recharge in enumerate(session.recharges):
            _set_table_item(self.recharges_table, row, 0, format_datetime(recharge.timestamp))
            _set_table_item(self.recharges_table, row, 1, recharge.payment_method.value)
            _set_table_item(self.recharges_table, row, 2, format_signed_currency(recharge.amount))
            _set_table_item(self.recharges_table, row, 3, recharge.status.value)
        self.download_button.setEnabled(bool(session.trips or session.recharges))


class RoutesView(QWidget):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._routes: list[Route] = []
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        title = QLabel("Bus Routes")
        title.setProperty("role", "title")
        layout.addWidget(title)
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search route no. or location")
        self.search_input.setClearButtonEnabled(True)
        self.search_input.textChanged.connect(self._apply_filter)
        layout.addWidget(self.search_input)
        self.routes_list = QListWidget()
        self.routes_list.setWordWrap(True)
        layout.addWidget(self.routes_list, 1)
        self.empty_label = QLabel("No routes match your search.")
        self.empty_label.setProperty("role", "hint")
        self.empty_label.setVisible(False)
        layout.addWidget(self.empty_label)

    def set_routes(self, routes: Sequence[Route]) -> None:
        self._routes = list(routes)
        self._apply_filter(self.search_input.text())

    def _apply_filter(self, query: str) -> None:
        matches = filter_routes(self._routes, query)
        self.routes_list.clear()
        for route in matches:
            entry = QListWidgetItem(
                f"{route.route_number}  ·  {route.origin} → {route.destination}"
                f"  ·  ₹{route.base_fare:g}+\n{describe_stops(route)}"
            )
            entry.setData(Qt.ItemDataRole.UserRole, route.route_id)
            self.routes_list.addItem(entry)
        self.empty_label.setVisible(bool(self._routes) and not matches)


class ProfileView(QWidget):
    """Account, card management and sync controls."""

    sign_in_requested = pyqtSignal()
    sign_up_requested = pyqtSignal()
    sign_out_requested = pyqtSignal()
    admin_login_requested = pyqtSignal()
    admin_panel_requested = pyqtSignal()
    link_card_requested = pyqtSignal(str)
    sync_requested = pyqtSignal()

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        outer.addWidget(scroll)
        body = QWidget()
        scroll.setWidget(body)
        layout = QVBoxLayout(body)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(14)

        title = QLabel("Profile")
        title.setProperty("role", "title")
        layout.addWidget(title)

        # Signed-out panel
        self.guest_panel = QFrame()
        self.guest_panel.setProperty("card", True)
        guest_layout = QVBoxLayout(self.guest_panel)
        prompt = QLabel("Sign in to manage your card and account.")
        prompt.setWordWrap(True)
        guest_layout.addWidget(prompt)
        self.sign_in_button = QPushButton("Sign In")
        self.sign_in_button.setProperty("primary", True)
        self.sign_in_button.clicked.connect(self.sign_in_requested.emit)
        self.sign_up_button = QPushButton("Sign Up")
        self.sign_up_button.clicked.connect(self.sign_up_requested.emit)
        guest_layout.addWidget(self.sign_in_button)
        guest_layout.addWidget(self.sign_up_button)
        layout.addWidget(self.guest_panel)

        # Signed-in panel
        self.account_panel = QWidget()
        account_layout = QVBoxLayout(self.account_panel)
        account_layout.setContentsMargins(0, 0, 0, 0)
        account_layout.setSpacing(10)
        self.name_label = QLabel("")
        self.name_label.setProperty("role", "title")
        self.email_label = QLabel("")
        self.email_label.setProperty("role", "hint")
        account_layout.addWidget(self.name_label)
        account_layout.addWidget(self.email_label)

        self.account_section = CollapsibleSection("Account", expanded=True)
        self.admin_panel_button = QPushButton("Go to Admin Panel")
        self.admin_panel_button.clicked.connect(self.admin_panel_requested.emit)
        self.sign_out_button = QPushButton("Sign Out")
        self.sign_out_button.clicked.connect(self.sign_out_requested.emit)
        self.account_section.add_content_widget(self.admin_panel_button)
        self.account_section.add_content_widget(self.sign_out_button)
        account_layout.addWidget(self.account_section)

        self.card_section = CollapsibleSection("Manage Card")
        card_body = QWidget()
        card_form = QFormLayout(card_body)
        card_form.setContentsMargins(0, 0, 0, 0)
        self.card_number_label = QLabel("—")
        self.card_balance_label = QLabel("—")
        card_form.addRow("Card Number", self.card_number_label)
        card_form.addRow("Current Balance", self.card_balance_label)
        self.link_input = QLineEdit()
        self.link_input.setPlaceholderText("New 8-character card number")
        self.link_input.setMaxLength(CARD_NUMBER_LENGTH)
        self.link_input.textEdited.connect(self._on_link_text_edited)
        card_form.addRow("Link New Card", self.link_input)
        self.link_button = QPushButton("Link Card")
        self.link_button.clicked.connect(self._on_link_clicked)
        card_form.addRow(self.link_button)
        self.link_banner = InlineFeedbackBanner()
        card_form.addRow(self.link_banner)
        self.card_section.add_content_widget(card_body)
        account_layout.addWidget(self.card_section)

        self.sync_section = CollapsibleSection("Data & Sync")
        self.last_synced_label = QLabel("Last synced: Never")
        self.sync_button = QPushButton("Sync with Cloud")
        self.sync_button.clicked.connect(self.sync_requested.emit)
        self.sync_section.add_content_widget(self.last_synced_label)
        self.sync_section.add_content_widget(self.sync_button)
        account_layout.addWidget(self.sync_section)
        layout.addWidget(self.account_panel)

        self.admin_login_button = QPushButton("Admin Login")
        self.admin_login_button.clicked.connect(self.admin_login_requested.emit)
        layout.addWidget(self.admin_login_button)
        layout.addStretch(1)

    def refresh(self, session: SessionManager) -> None:
        user = session.current_user
        self.guest_panel.setVisible(user is None)
        self.account_panel.setVisible(user is not None)
        if user is not None:
            self.name_label.setText(user.name)
            self.email_label.setText(user.email)
        self.admin_panel_button.setVisible(session.is_admin)
        self.admin_login_button.setVisible(not session.is_admin)
        card = session.card
        self.card_number_label.setText(card.card_number if card else "—")
        self.card_balance_label.setText(format_currency(card.balance) if card else "—")
        self.last_synced_label.setText(f"Last synced: {session.last_synced}")

    def _on_link_text_edited(self, text: str) -> None:
        upper = text.upper()
        if upper != text:
            self.link_input.setText(upper)

    def _on_link_clicked(self) -> None:
        number = self.link_input.text().strip()
        problem = validate_card_number(number)
        if problem:
            self.link_banner.show_message(problem, severity="warning")
            return
        self.link_banner.clear()
        self.link_card_requested.emit(number)

    def set_link_busy(self, busy: bool) -> None:
        self.link_button.setEnabled(not busy)
        self.link_button.setText("Linking..." if busy else "Link Card")

    def show_link_result(self, result: ActionResult) -> None:
        self.set_link_busy(False)
        if result.success:
            self.link_input.clear()
            self.link_banner.show_message("Card linked.", severity="success")
        else:
            self.link_banner.show_message(
                "Failed to link card. Please try again.", severity="error"
            )

    def set_sync_busy(self, busy: bool) -> None:
        self.sync_button.setEnabled(not busy)
        self.sync_button.setText("Syncing..." if busy else "Sync with Cloud")


class AdminView(QWidget):
    """Ridership dashboard shown after the admin key is accepted."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._axis_pen = pg.mkPen(QColor("#9ca3af"), width=1)
        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        outer.addWidget(scroll)
        body = QWidget()
        scroll.setWidget(body)
        layout = QVBoxLayout(body)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(14)

        title = QLabel("Admin Dashboard")
        title.setProperty("role", "title")
        layout.addWidget(title)

        self.stack = QStackedLayout()
        self.loading_label = QLabel("Loading statistics...")
        self.loading_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.loading_label.setProperty("role", "hint")
        content = QWidget()
        content_layout = QVBoxLayout(content)
        content_layout.setContentsMargins(0, 0, 0, 0)
        content_layout.setSpacing(14)

        metrics = QGridLayout()
        metrics.setHorizontalSpacing(10)
        self.metric_labels: dict[str, QLabel] = {}
        for column, (key, caption) in enumerate(
            (("users", "Total Users"), ("trips", "Trips Today"), ("revenue", "Revenue Today"))
        ):
            card, value = self._create_metric_card(caption)
            self.metric_labels[key] = value
            metrics.addWidget(card, 0, column)
        content_layout.addLayout(metrics)

        self.revenue_plot = self._create_plot("Daily Revenue (₹)")
        self.trips_plot = self._create_plot("Daily Trips")
        self.growth_plot = self._create_plot("User Growth")
        for plot in (self.revenue_plot, self.trips_plot, self.growth_plot):
            content_layout.addWidget(plot)

        self.stack.addWidget(content)
        self.stack.addWidget(self.loading_label)
        layout.addLayout(self.stack)
        layout.addStretch(1)
        self.stack.setCurrentIndex(1)

    @staticmethod
    def _create_metric_card(caption: str) -> tuple[QFrame, QLabel]:
        card = QFrame()
        card.setProperty("card", True)
        card_layout = QVBoxLayout(card)
        card_layout.setContentsMargins(14, 12, 14, 12)
        title_label = QLabel(caption)
        title_label.setProperty("role", "metricTitle")
        value_label = QLabel("—")
        value_label.setProperty("role", "metricValue")
        card_layout.addWidget(title_label)
        card_layout.addWidget(value_label)
        return card, value_label

    def _create_plot(self, title: str) -> pg.PlotWidget:
        plot = pg.PlotWidget(title=title)
        plot.setBackground("#ffffff")
        plot.setMenuEnabled(False)
        plot.setMouseEnabled(x=False, y=False)
        plot.hideButtons()
        plot.setMinimumHeight(220)
        plot.showGrid(x=False, y=True, alpha=0.2)
        for axis in ("left", "bottom"):
            plot.getAxis(axis).setPen(self._axis_pen)
        return plot

    def show_loading(self) -> None:
        self.loading_label.setText("Loading statistics...")
        self.stack.setCurrentIndex(1)

    def show_error(self, message: str) -> None:
        self.loading_label.setText(message)
        self.stack.setCurrentIndex(1)

    def set_stats(self, stats: AdminStats) -> None:
        self.metric_labels["users"].setText(str(stats.total_users))
        self.metric_labels["trips"].setText(str(stats.total_trips_today))
        self.metric_labels["revenue"].setText(format_currency(stats.revenue_today))

        self._plot_line(self.revenue_plot, stats.daily_revenue, "#8884d8")
        self._plot_bars(self.trips_plot, stats.daily_trips, "#82ca9d")
        self._plot_line(self.growth_plot, stats.user_growth, "#ffc658")
        self.stack.setCurrentIndex(0)

    def _plot_line(self, plot: pg.PlotWidget, series, colour: str) -> None:
        plot.clear()
        x_values = np.arange(len(series))
        y_values = np.array([point.value for point in series], dtype=float)
        plot.plot(
            x_values,
            y_values,
            pen=pg.mkPen(QColor(colour), width=2),
            symbol="o",
            symbolSize=6,
            symbolBrush=QColor(colour),
        )
        plot.getAxis("bottom").setTicks([[(i, p.label) for i, p in enumerate(series)]])

    def _plot_bars(self, plot: pg.PlotWidget, series, colour: str) -> None:
        plot.clear()
        heights = np.array([point.value for point in series], dtype=float)
        plot.addItem(
            pg.BarGraphItem(x=np.arange(len(series)), height=heights, width=0.6, brush=colour)
        )
        plot.getAxis("bottom").setTicks([[(i, p.label) for i, p in enumerate(series)]])


# Dialogs ------------------------------------------------------------------
class _ActionDialog(QDialog):
    """Modal form with an inline banner and a primary submit button."""

    def __init__(self, title: str, submit_text: str, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        self.setMinimumWidth(360)
        self._submit_text = submit_text

        self._layout = QVBoxLayout(self)
        self._layout.setContentsMargins(20, 20, 20, 20)
        self._layout.setSpacing(12)
        heading = QLabel(title)
        heading.setProperty("role", "title")
        self._layout.addWidget(heading)
        self.form = QFormLayout()
        self._layout.addLayout(self.form)
        self.banner = InlineFeedbackBanner(self)
        self._layout.addWidget(self.banner)
        self.submit_button = QPushButton(submit_text)
        self.submit_button.setProperty("primary", True)
        self.submit_button.setDefault(True)
        self.submit_button.clicked.connect(self._on_submit)
        self._layout.addWidget(self.submit_button)

    def _on_submit(self) -> None:  # pragma: no cover - overridden
        raise NotImplementedError

    def set_busy(self, busy: bool) -> None:
        self.submit_button.setEnabled(not busy)
        self.submit_button.setText("Processing..." if busy else self._submit_text)

    def show_result(self, result: ActionResult) -> None:
        self.set_busy(False)
        if result.success:
            self.accept()
        else:
            self.banner.show_message(result.message or "An unknown error occurred.", severity="error")


class SignInDialog(_ActionDialog):
    submitted = pyqtSignal(str, str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__("Sign In", "Sign In", parent)
        self.email_input = QLineEdit()
        self.email_input.setPlaceholderText("you@example.com")
        self.password_input = QLineEdit()
        self.password_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.form.addRow("Email Address", self.email_input)
        self.form.addRow("Password", self.password_input)

    def _on_submit(self) -> None:
        email = self.email_input.text().strip()
        password = self.password_input.text()
        problem = validate_sign_in(email, password)
        if problem:
            self.banner.show_message(problem, severity="warning")
            return
        self.banner.clear()
        self.set_busy(True)
        self.submitted.emit(email, password)


class SignUpDialog(_ActionDialog):
    submitted = pyqtSignal(str, str, str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__("Create Account", "Create Account", parent)
        self.name_input = QLineEdit()
        self.name_input.setPlaceholderText("John Doe")
        self.email_input = QLineEdit()
        self.email_input.setPlaceholderText("you@example.com")
        self.password_input = QLineEdit()
        self.password_input.setPlaceholderText("8+ characters")
        self.password_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.form.addRow("Full Name", self.name_input)
        self.form.addRow("Email Address", self.email_input)
        self.form.addRow("Password", self.password_input)

    def _on_submit(self) -> None:
        name = self.name_input.text().strip()
        email = self.email_input.text().strip()
        password = self.password_input.text()
        problem = validate_sign_up(name, email, password)
        if problem:
            self.banner.show_message(problem, severity="warning")
            return
        self.banner.clear()
        self.set_busy(True)
        self.submitted.emit(name, email, password)

    def show_result(self, result: ActionResult) -> None:
        if not result.success:
            super().show_result(result)
            return
        self.set_busy(False)
        self.submit_button.setEnabled(False)
        self.banner.show_message("Account created! You are now signed in.", severity="success")
        QTimer.singleShot(1500, self.accept)


class AdminLoginDialog(_ActionDialog):
    submitted = pyqtSignal(str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__("Admin Access", "Enter Admin Panel", parent)
        self.key_input = QLineEdit()
        self.key_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.key_input.setPlaceholderText("••••••••")
        self.form.addRow("Admin Key", self.key_input)

    def _on_submit(self) -> None:
        key = self.key_input.text()
        problem = validate_admin_key(key)
        if problem:
            self.banner.show_message(problem, severity="warning")
            return
        self.banner.clear()
        self.set_busy(True)
        self.submitted.emit(key)


class RechargeDialog(_ActionDialog):
    """Top-up form with preset amounts, a custom amount and a payment method."""

    submitted = pyqtSignal(float, str)

    def __init__(
        self,
        current_balance: float,
        presets: Sequence[int],
        default_method: PaymentMethod = PaymentMethod.UPI,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__("Recharge Card", "Pay", parent)
        self._amount = int(presets[0]) if presets else 0
        self.balance_label = QLabel(format_currency(current_balance))
        self.form.addRow("Current Balance", self.balance_label)

        preset_row = QHBoxLayout()
        self._preset_group = QButtonGroup(self)
        self.preset_buttons: dict[int, QPushButton] = {}
        for preset in presets:
            button = QPushButton(format_currency(preset).replace(".00", ""))
            button.setCheckable(True)
            button.clicked.connect(lambda _checked, value=int(preset): self._select_preset(value))
            self._preset_group.addButton(button)
            preset_row.addWidget(button)
            self.preset_buttons[int(preset)] = button
        preset_holder = QWidget()
        preset_holder.setLayout(preset_row)
        self.form.addRow("Select Amount", preset_holder)

        self.custom_input = QLineEdit()
        self.custom_input.setPlaceholderText("e.g., 300")
        self.custom_input.setValidator(
            QRegularExpressionValidator(QRegularExpression(r"\d{0,6}"), self.custom_input)
        )
        self.custom_input.textChanged.connect(self._on_custom_changed)
        self.form.addRow("Or Enter Custom Amount", self.custom_input)

        method_row = QHBoxLayout()
        self._method_group = QButtonGroup(self)
        self.method_buttons: dict[PaymentMethod, QPushButton] = {}
        for method in PaymentMethod:
            button = QPushButton(method.value)
            button.setCheckable(True)
            button.setChecked(method == default_method)
            self._method_group.addButton(button)
            method_row.addWidget(button)
            self.method_buttons[method] = button
        method_holder = QWidget()
        method_holder.setLayout(method_row)
        self.form.addRow("Payment Method", method_holder)

        if self._amount in self.preset_buttons:
            self.preset_buttons[self._amount].setChecked(True)
        self._update_submit()

    @property
    def amount(self) -> int:
        return self._amount

    @property
    def payment_method(self) -> PaymentMethod:
        for method, button in self.method_buttons.items():
            if button.isChecked():
                return method
        return PaymentMethod.UPI

    def _select_preset(self, value: int) -> None:
        self.custom_input.blockSignals(True)
        self.custom_input.clear()
        self.custom_input.blockSignals(False)
        self._amount = value
        self._update_submit()

    def _on_custom_changed(self, text: str) -> None:
        try:
            self._amount = parse_custom_amount(text)
        except ValueError:
            self._amount = 0
        self._preset_group.setExclusive(False)
        for button in self.preset_buttons.values():
            button.setChecked(False)
        self._preset_group.setExclusive(True)
        self._update_submit()

    def _update_submit(self) -> None:
        self._submit_text = f"Pay {format_currency(self._amount).replace('.00', '')}"
        self.submit_button.setText(self._submit_text)
        self.submit_button.setEnabled(validate_recharge_amount(self._amount) is None)

    def _on_submit(self) -> None:
        problem = validate_recharge_amount(self._amount)
        if problem:
            self.banner.show_message(problem, severity="warning")
            return
        self.banner.clear()
        self.set_busy(True)
        self.submitted.emit(float(self._amount), self.payment_method.value)

    def set_busy(self, busy: bool) -> None:
        super().set_busy(busy)
        if not busy:
            self._update_submit()

    def show_result(self, result: ActionResult) -> None:
        self.set_busy(False)
        if result.success:
            self.submit_button.setEnabled(False)
            self.banner.show_message("Recharge successful!", severity="success")
            QTimer.singleShot(1500, self.accept)
        else:
            self.banner.show_message(
                result.message or "Recharge failed. Please try again.", severity="error"
            )


class DownloadDialog(QDialog):
    """Ask whether the statement should be saved as PDF or CSV."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Download Statement")
        self.setModal(True)
        self.chosen_format: Optional[str] = None
        layout = QVBoxLayout(self)
        layout.setContentsMargins(20, 20, 20, 20)
        prompt = QLabel("Choose a format for your transaction statement.")
        prompt.setWordWrap(True)
        layout.addWidget(prompt)
        self.pdf_button = QPushButton("Download as PDF")
        self.csv_button = QPushButton("Download as CSV")
        self.pdf_button.clicked.connect(lambda: self._choose("pdf"))
        self.csv_button.clicked.connect(lambda: self._choose("csv"))
        layout.addWidget(self.pdf_button)
        layout.addWidget(self.csv_button)

    def _choose(self, fmt: str) -> None:
        self.chosen_format = fmt
        self.accept()


class Bus2GoApp(QMainWindow):
    """Main window: header, one page per view, bottom navigation and modals."""

    def __init__(
        self,
        session: SessionManager,
        settings_manager: SettingsManager,
        config: AppConfig,
    ) -> None:
        super().__init__()
        self.session = session
        self.router = session.router
        self.settings_manager = settings_manager
        self.config = config
        self.thread_pool = QThreadPool()
        self.thread_pool.setMaxThreadCount(1)
        self._dialogs: dict[Modal, QDialog] = {}

        self.setWindowTitle("BUS2go")
        window_size = self.settings_manager.data.get("window_size", {})
        self.resize(int(window_size.get("width", 460)), int(window_size.get("height", 820)))

        body = QWidget(self)
        layout = QVBoxLayout(body)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.header = HeaderBar()
        layout.addWidget(self.header)
        self.status_banner = InlineFeedbackBanner()
        layout.addWidget(self.status_banner)

        self.home_view = HomeView()
        self.history_view = HistoryView()
        self.routes_view = RoutesView()
        self.profile_view = ProfileView()
        self.admin_view = AdminView()
        self.views: dict[ActiveView, QWidget] = {
            ActiveView.HOME: self.home_view,
            ActiveView.HISTORY: self.history_view,
            ActiveView.ROUTES: self.routes_view,
            ActiveView.PROFILE: self.profile_view,
            ActiveView.ADMIN: self.admin_view,
        }
        self.loading_page = QLabel("Loading your card...")
        self.loading_page.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.loading_page.setProperty("role", "hint")

        self.stack = QStackedLayout()
        for view in self.views.values():
            self.stack.addWidget(view)
        self.stack.addWidget(self.loading_page)
        layout.addLayout(self.stack, 1)

        self.bottom_nav = BottomNav()
        layout.addWidget(self.bottom_nav)
        self.setCentralWidget(body)

        self.router.subscribe(self._on_view_changed)
        self.bottom_nav.view_selected.connect(self._on_nav_selected)
        self.home_view.recharge_requested.connect(self.open_recharge_dialog)
        self.history_view.download_requested.connect(self.open_download_dialog)
        self.profile_view.sign_in_requested.connect(self.open_sign_in_dialog)
        self.profile_view.sign_up_requested.connect(self.open_sign_up_dialog)
        self.profile_view.admin_login_requested.connect(self.open_admin_login_dialog)
        self.profile_view.sign_out_requested.connect(self._on_sign_out)
        self.profile_view.admin_panel_requested.connect(
            lambda: self.session.navigate(ActiveView.ADMIN)
        )
        self.profile_view.link_card_requested.connect(self._on_link_card)
        self.profile_view.sync_requested.connect(self._on_sync)

        self.refresh_views()

    # Background execution ------------------------------------------------
    def _run(
        self,
        fn: Callable,
        *args: Any,
        on_finished: Callable[[Any], None],
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        worker = Worker(fn, *args)
        worker.signals.finished.connect(on_finished)
        worker.signals.error.connect(on_error or self._on_worker_error)
        self.thread_pool.start(worker)

    def _on_worker_error(self, message: str) -> None:
        self.status_banner.show_message(f"Unexpected error: {message}", severity="error")
        self.refresh_views()

    # State -----------------------------------------------------------------
    def start(self) -> None:
        self.session.is_loading = True
        self.refresh_views()
        self._run(self.session.load, on_finished=self._on_loaded)

    def _on_loaded(self, loaded: bool) -> None:
        if not loaded:
            self.status_banner.show_message(
                "We couldn't load your card details. Please restart the app.", severity="error"
            )
        self.refresh_views()

    def refresh_views(self) -> None:
        session = self.session
        self.header.update_state(session)
        self.home_view.refresh(session)
        self.history_view.refresh(session)
        self.routes_view.set_routes(session.routes)
        self.profile_view.refresh(session)
        if session.is_loading:
            self.stack.setCurrentWidget(self.loading_page)
        else:
            self.stack.setCurrentWidget(self.views[self.router.active_view])
        self.bottom_nav.set_active(self.router.active_view)

    def _on_nav_selected(self, value: str) -> None:
        self.session.navigate(ActiveView(value))

    def _on_view_changed(self, view: ActiveView) -> None:
        if not self.session.is_loading:
            self.stack.setCurrentWidget(self.views[view])
        self.bottom_nav.set_active(view)
        if view == ActiveView.ADMIN:
            self.admin_view.show_loading()
            self._run(self.session.load_admin_stats, on_finished=self._on_admin_stats)

    def _on_admin_stats(self, result: ActionResult) -> None:
        if result.success and self.session.admin_stats is not None:
            self.admin_view.set_stats(self.session.admin_stats)
        else:
            self.admin_view.show_error(result.message or "Statistics are unavailable.")

    # Modals ----------------------------------------------------------------
    def _show_modal(self, modal: Modal, dialog: QDialog) -> None:
        self.router.open_modal(modal)
        self._dialogs[modal] = dialog
        dialog.finished.connect(lambda _code, m=modal: self._on_modal_closed(m))
        dialog.open()

    def _on_modal_closed(self, modal: Modal) -> None:
        self.router.close_modal(modal)
        self._dialogs.pop(modal, None)

    def open_recharge_dialog(self) -> None:
        if self.session.card is None:
            return
        dialog = RechargeDialog(
            self.session.card.balance,
            self.config.recharge_presets,
            self.config.default_payment_method,
            parent=self,
        )
        dialog.submitted.connect(self._on_recharge_submitted)
        self._show_modal(Modal.RECHARGE, dialog)

    def _on_recharge_submitted(self, amount: float, method: str) -> None:
        self._run(self.session.recharge, amount, method, on_finished=self._on_recharge_done)

    def _on_recharge_done(self, result: ActionResult) -> None:
        dialog = self._dialogs.get(Modal.RECHARGE)
        if isinstance(dialog, RechargeDialog):
            dialog.show_result(result)
        self.refresh_views()

    def open_sign_in_dialog(self) -> None:
        dialog = SignInDialog(self)
        dialog.submitted.connect(
            lambda email, password: self._run(
                self.session.sign_in, email, password, on_finished=self._on_sign_in_done
            )
        )
        self._show_modal(Modal.SIGN_IN, dialog)

    def _on_sign_in_done(self, result: ActionResult) -> None:
        dialog = self._dialogs.get(Modal.SIGN_IN)
        if isinstance(dialog, SignInDialog):
            dialog.show_result(result)
        self.refresh_views()

    def open_sign_up_dialog(self) -> None:
        dialog = SignUpDialog(self)
        dialog.submitted.connect(
            lambda name, email, password: self._run(
                self.session.sign_up, name, email, password, on_finished=self._on_sign_up_done
            )
        )
        self._show_modal(Modal.SIGN_UP, dialog)

    def _on_sign_up_done(self, result: ActionResult) -> None:
        dialog = self._dialogs.get(Modal.SIGN_UP)
        if isinstance(dialog, SignUpDialog):
            dialog.show_result(result)
        self.refresh_views()

    def open_admin_login_dialog(self) -> None:
        dialog = AdminLoginDialog(self)
        dialog.submitted.connect(self._on_admin_key_submitted)
        self._show_modal(Modal.ADMIN_LOGIN, dialog)

    def _on_admin_key_submitted(self, key: str) -> None:
        dialog = self._dialogs.get(Modal.ADMIN_LOGIN)
        result = self.session.admin_login(key)
        if isinstance(dialog, AdminLoginDialog):
            dialog.show_result(result)
        self.refresh_views()

    def open_download_dialog(self) -> None:
        dialog = DownloadDialog(self)
        dialog.accepted.connect(lambda: self.export_history(dialog.chosen_format or "pdf"))
        self._show_modal(Modal.DOWNLOAD, dialog)

    # Account actions -------------------------------------------------------
    def _on_sign_out(self) -> None:
        self.session.sign_out()
        self.refresh_views()

    def _on_link_card(self, number: str) -> None:
        self.profile_view.set_link_busy(True)
        self._run(self.session.link_new_card, number, on_finished=self._on_link_done)

    def _on_link_done(self, result: ActionResult) -> None:
        self.profile_view.show_link_result(result)
        self.refresh_views()

    def _on_sync(self) -> None:
        self.profile_view.set_sync_busy(True)
        self._run(self.session.sync_with_cloud, on_finished=self._on_sync_done)

    def _on_sync_done(self, _result: ActionResult) -> None:
        self.profile_view.set_sync_busy(False)
        self.refresh_views()

    # Export ----------------------------------------------------------------
    def export_history(self, fmt: str) -> Optional[Path]:
        items = self.session.history()
        if not items:
            QMessageBox.information(
                self, "Nothing to Export", "There are no trips or recharges to export yet."
            )
            return None

        if fmt == "csv":
            default_path = self.config.export_directory / CSV_FILENAME
            file_filter = "CSV Files (*.csv)"
            exporter = export_history_csv
        else:
            default_path = self.config.export_directory / PDF_FILENAME
            file_filter = "PDF Files (*.pdf)"
            exporter = export_history_pdf
        file_name, _ = QFileDialog.getSaveFileName(
            self, "Save Statement", str(default_path), file_filter
        )
        if not file_name:
            return None

        try:
            result_path = exporter(file_name, items)
        except (OSError, RuntimeError, ValueError) as exc:
            logger.exception("Statement export failed")
            QMessageBox.critical(
                self,
                "Export Failed",
                f"The statement could not be exported.\n\nDetails: {exc}",
            )
            return None

        QMessageBox.information(
            self, "Export Complete", f"Statement saved to:\n{result_path}"
        )
        return result_path

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.settings_manager.update(
            {"window_size": {"width": self.width(), "height": self.height()}}
        )
        self.thread_pool.waitForDone(3000)
        super().closeEvent(event)


def load_stylesheet() -> str:
    if STYLE_FILE.exists():
        return STYLE_FILE.read_text(encoding="utf-8")
    return ""


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def bootstrap_app() -> int:
    """Configure the QApplication and start the GUI loop.

    Returns the exit code produced by ``QApplication.exec``.
    Raises ``ConfigurationError`` if the settings cannot be used.
    """

    load_dotenv()
    settings_manager = SettingsManager(SETTINGS_FILE)
    config = load_app_config(settings_manager.data)
    configure_logging(config.log_level)

    service = MockDataService(latency=config.latency)
    session = SessionManager(service, admin_key=config.admin_key)

    app = QApplication.instance() or QApplication(sys.argv)
    app.setFont(QFont("Segoe UI", 10))
    stylesheet = load_stylesheet()
    if stylesheet:
        app.setStyleSheet(stylesheet)

    window = Bus2GoApp(session, settings_manager, config)
    window.show()
    window.start()
    return app.exec()
