import asyncio
from pathlib import Path

import pytest
from PyQt6.QtWidgets import QApplication

from bus2go import bus2go_app
from bus2go.bus2go_app import (
    AdminLoginDialog,
    Bus2GoApp,
    RechargeDialog,
    SignInDialog,
    SignUpDialog,
)
from bus2go.config import SettingsManager, load_app_config
from bus2go.data_service import MockDataService
from bus2go.models import ActionResult, PaymentMethod
from bus2go.navigation import ActiveView, Modal
from bus2go.session import SessionManager


@pytest.fixture(scope="module")
def qapp():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


def _run_inline(fn, *args, on_finished, on_error=None):
    on_finished(asyncio.run(fn(*args)))


@pytest.fixture
def window(qapp, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Bus2GoApp:
    settings = SettingsManager(tmp_path / "settings.json")
    config = load_app_config(settings.data, environ={})
    session = SessionManager(MockDataService())
    asyncio.run(session.load())
    app_window = Bus2GoApp(session, settings, config)
    monkeypatch.setattr(app_window, "_run", _run_inline)
    app_window.refresh_views()
    yield app_window
    app_window.deleteLater()


def test_home_view_shows_balance_and_recent_activity(window: Bus2GoApp) -> None:
    assert window.home_view.balance_label.text() == "₹250.75"
    assert window.home_view.holder_label.text() == "John Doe"
    assert window.home_view.activity_list.count() == 3
    assert window.header.avatar_label.text() == "👤"


def test_history_tables_list_every_entry(window: Bus2GoApp) -> None:
    assert window.history_view.trips_table.rowCount() == 4
    assert window.history_view.recharges_table.rowCount() == 3
    assert window.history_view.trips_table.item(0, 2).text() == "-₹15.00"
    assert window.history_view.recharges_table.item(0, 2).text() == "+₹200.00"


def test_route_search_filters_list(window: Bus2GoApp) -> None:
    routes = window.routes_view
    assert routes.routes_list.count() == 3

    routes.search_input.setText("airport")
    assert routes.routes_list.count() == 1

    routes.search_input.setText("zzz")
    assert routes.routes_list.count() == 0
    assert not routes.empty_label.isHidden()


def test_bottom_nav_switches_pages(window: Bus2GoApp) -> None:
    window.bottom_nav.buttons[ActiveView.HISTORY].click()

    assert window.router.active_view == ActiveView.HISTORY
    assert window.stack.currentWidget() is window.history_view


def test_recharge_flow_updates_balance(window: Bus2GoApp, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(bus2go_app.QTimer, "singleShot", staticmethod(lambda _ms, callback: callback()))
    window.open_recharge_dialog()
    dialog = window._dialogs[Modal.RECHARGE]
    assert window.router.is_open(Modal.RECHARGE)

    dialog.custom_input.setText("300")
    dialog.submit_button.click()

    assert window.session.card.balance == pytest.approx(550.75)
    assert window.home_view.balance_label.text() == "₹550.75"
    assert window.history_view.recharges_table.rowCount() == 4
    assert not window.router.is_open(Modal.RECHARGE)


def test_recharge_dialog_disables_pay_for_zero(qapp) -> None:
    dialog = RechargeDialog(100.0, (100, 200, 500), PaymentMethod.CARD)
    assert dialog.amount == 100
    assert dialog.submit_button.isEnabled()
    assert dialog.payment_method is PaymentMethod.CARD

    dialog.custom_input.setText("0")
    assert not dialog.submit_button.isEnabled()

    dialog.preset_buttons[500].click()
    assert dialog.amount == 500
    assert dialog.custom_input.text() == ""
    assert dialog.submit_button.text() == "Pay ₹500"


def test_sign_in_dialog_validates_before_submitting(qapp) -> None:
    dialog = SignInDialog()
    submitted = []
    dialog.submitted.connect(lambda email, password: submitted.append(email))

    dialog.submit_button.click()

    assert submitted == []
    assert dialog.banner.message == "Please fill in both fields."


def test_sign_up_dialog_checks_password_length(qapp) -> None:
    dialog = SignUpDialog()
    dialog.name_input.setText("Ann")
    dialog.email_input.setText("ann@example.com")
    dialog.password_input.setText("short")

    dialog.submit_button.click()

    assert dialog.banner.message == "Password must be at least 8 characters long."


def test_sign_in_and_out_through_profile(window: Bus2GoApp) -> None:
    window.open_sign_in_dialog()
    dialog = window._dialogs[Modal.SIGN_IN]
    dialog.email_input.setText("john.doe@example.com")
    dialog.password_input.setText("password123")
    dialog.submit_button.click()

    assert window.session.is_logged_in
    assert window.header.avatar_label.text() == "J"
    assert window.profile_view.guest_panel.isHidden()
    assert window.profile_view.name_label.text() == "John Doe"

    window.profile_view.sign_out_button.click()
    assert not window.session.is_logged_in
    assert not window.profile_view.guest_panel.isHidden()


def test_failed_sign_in_shows_message(window: Bus2GoApp) -> None:
    window.open_sign_in_dialog()
    dialog = window._dialogs[Modal.SIGN_IN]
    dialog.email_input.setText("john.doe@example.com")
    dialog.password_input.setText("nope")
    dialog.submit_button.click()

    assert dialog.banner.message == "Invalid email or password."
    assert dialog.submit_button.isEnabled()


def test_admin_login_opens_dashboard(window: Bus2GoApp) -> None:
    window.open_admin_login_dialog()
    dialog = window._dialogs[Modal.ADMIN_LOGIN]
    assert isinstance(dialog, AdminLoginDialog)

    dialog.key_input.setText("wrong")
    dialog.submit_button.click()
    assert dialog.banner.message == "Invalid Admin Key."
    assert window.router.active_view != ActiveView.ADMIN

    dialog.key_input.setText("ADMIN123")
    dialog.submit_button.click()

    assert window.router.active_view == ActiveView.ADMIN
    assert window.stack.currentWidget() is window.admin_view
    assert window.admin_view.metric_labels["trips"].text() == "238"
    assert window.admin_view.stack.currentIndex() == 0


def test_link_card_from_profile(window: Bus2GoApp) -> None:
    profile = window.profile_view
    profile.link_input.setText("ABC")
    profile.link_button.click()
    assert profile.link_banner.message == "Card number must be 8 characters."

    profile.link_input.setText("ABCD1234")
    profile.link_button.click()

    assert window.session.card.card_number == "ABCD1234"
    assert profile.card_number_label.text() == "ABCD1234"
    assert profile.link_banner.severity == "success"


def test_sync_updates_label(window: Bus2GoApp) -> None:
    window.profile_view.sync_button.click()

    assert window.profile_view.last_synced_label.text() != "Last synced: Never"
    assert window.profile_view.sync_button.isEnabled()


def test_export_csv_writes_chosen_file(
    window: Bus2GoApp, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "statement.csv"
    shown = {}
    monkeypatch.setattr(
        bus2go_app.QFileDialog,
        "getSaveFileName",
        staticmethod(lambda *args, **kwargs: (str(target), "CSV Files (*.csv)")),
    )
    monkeypatch.setattr(
        bus2go_app.QMessageBox,
        "information",
        staticmethod(lambda _parent, title, text: shown.setdefault("title", title)),
    )

    result = window.export_history("csv")

    assert result == target
    assert target.read_text(encoding="utf-8").startswith("Date,Type,Description")
    assert shown["title"] == "Export Complete"


def test_failed_action_result_keeps_dialog_open(qapp) -> None:
    dialog = AdminLoginDialog()
    dialog.show_result(ActionResult.fail("Invalid Admin Key."))

    assert dialog.banner.severity == "error"
    assert dialog.result() == 0
