import json
from pathlib import Path

import pytest

from bus2go.config import ConfigurationError, SettingsManager, load_app_config
from bus2go.models import PaymentMethod


def test_settings_file_created_with_defaults(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"

    manager = SettingsManager(path)

    assert path.exists()
    assert manager.data["recharge_presets"] == [100, 200, 500]


def test_settings_merge_partial_overrides(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"window_size": {"width": 600}}), encoding="utf-8")

    manager = SettingsManager(path)

    assert manager.data["window_size"] == {"width": 600, "height": 820}


def test_corrupt_settings_are_replaced(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    manager = SettingsManager(path)

    assert json.loads(path.read_text(encoding="utf-8")) == manager.data


def test_update_persists(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsManager(path).update({"window_size": {"height": 700}})

    assert SettingsManager(path).data["window_size"]["height"] == 700


def test_app_config_from_defaults(tmp_path: Path) -> None:
    config = load_app_config(SettingsManager(tmp_path / "s.json").data, environ={})

    assert config.admin_key == "ADMIN123"
    assert config.latency == (0.5, 1.0)
    assert config.recharge_presets == (100, 200, 500)
    assert config.default_payment_method is PaymentMethod.UPI
    assert config.export_directory == Path.home()
    assert config.log_level == "INFO"


def test_environment_overrides(tmp_path: Path) -> None:
    settings = SettingsManager(tmp_path / "s.json").data
    config = load_app_config(
        settings, environ={"BUS2GO_ADMIN_KEY": "letmein", "BUS2GO_LOG_LEVEL": "debug"}
    )

    assert config.admin_key == "letmein"
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "override",
    [
        {"simulated_latency": {"min_seconds": 2, "max_seconds": 1}},
        {"simulated_latency": {"min_seconds": -1, "max_seconds": 1}},
        {"recharge_presets": []},
        {"recharge_presets": [100, 0]},
        {"default_payment_method": "Cash"},
    ],
)
def test_invalid_settings_raise(tmp_path: Path, override) -> None:
    settings = SettingsManager(tmp_path / "s.json").data
    settings.update(override)

    with pytest.raises(ConfigurationError):
        load_app_config(settings, environ={})
