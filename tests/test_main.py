import json
from pathlib import Path
from typing import Dict

import pytest
from PyQt6.QtWidgets import QApplication, QMessageBox

from bus2go import bus2go_app
from bus2go.main import main


def _patch_startup(monkeypatch: pytest.MonkeyPatch, settings_file: Path) -> None:
    def fake_load_dotenv(*args, **kwargs):  # pragma: no cover - simple shim
        return True

    monkeypatch.setattr(bus2go_app, "load_dotenv", fake_load_dotenv)
    monkeypatch.setattr(bus2go_app, "SETTINGS_FILE", settings_file)
    monkeypatch.setattr(bus2go_app.QApplication, "exec", staticmethod(lambda: 0))
    monkeypatch.setattr(bus2go_app.Bus2GoApp, "start", lambda self: None)


def test_main_exits_cleanly(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    settings_file = tmp_path / "settings.json"
    _patch_startup(monkeypatch, settings_file)

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 0
    assert settings_file.exists()

    app = QApplication.instance()
    if app is not None:
        app.quit()


def test_main_reports_bad_configuration(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Invalid settings end the process with a critical message box."""

    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"recharge_presets": []}), encoding="utf-8")
    _patch_startup(monkeypatch, settings_file)

    captured: Dict[str, str] = {}

    def fake_critical(parent, title, text):
        captured["title"] = title
        captured["text"] = text
        return QMessageBox.StandardButton.Ok

    monkeypatch.setattr(QMessageBox, "critical", staticmethod(fake_critical))

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 1
    assert captured["title"] == "BUS2go Configuration"
    assert "Recharge presets" in captured["text"]
