from bus2go.navigation import ActiveView, Modal, ViewRouter


def test_listeners_fire_only_on_change() -> None:
    router = ViewRouter()
    seen = []
    router.subscribe(seen.append)

    router.navigate(ActiveView.HOME)
    router.navigate(ActiveView.ROUTES)
    router.navigate(ActiveView.ROUTES)

    assert seen == [ActiveView.ROUTES]
    assert router.active_view == ActiveView.ROUTES


def test_leave_admin_only_moves_from_admin() -> None:
    router = ViewRouter(initial=ActiveView.HISTORY)
    router.leave_admin()
    assert router.active_view == ActiveView.HISTORY

    router.navigate(ActiveView.ADMIN)
    router.leave_admin()
    assert router.active_view == ActiveView.PROFILE


def test_modal_tracking() -> None:
    router = ViewRouter()
    router.open_modal(Modal.RECHARGE)
    router.open_modal(Modal.DOWNLOAD)
    router.close_modal(Modal.RECHARGE)
    router.close_modal(Modal.SIGN_IN)

    assert router.open_modals == frozenset({Modal.DOWNLOAD})
    assert router.is_open(Modal.DOWNLOAD)
