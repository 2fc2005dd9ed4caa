"""Settings file handling and runtime configuration.

Settings live in a small JSON file in the per-user data directory. Secrets and
log verbosity come from the environment, optionally seeded from a ``.env`` file
next to the working directory::

    BUS2GO_ADMIN_KEY=change-me
    BUS2GO_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .models import PaymentMethod
from .session import DEFAULT_ADMIN_KEY


def _resolve_data_directory() -> Path:
    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData/Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library/Application Support"
    else:
        base = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share"))
    return base / "Bus2Go"


APP_DATA_DIR = _resolve_data_directory()
SETTINGS_FILE = APP_DATA_DIR / "settings.json"


class ConfigurationError(RuntimeError):
    """Raised when settings or environment values cannot be used."""


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class SettingsManager:
    """Load and persist the JSON settings file."""

    DEFAULTS: dict[str, Any] = {
        "window_size": {"width": 460, "height": 820},
        "simulated_latency": {"min_seconds": 0.5, "max_seconds": 1.0},
        "recharge_presets": [100, 200, 500],
        "default_payment_method": PaymentMethod.UPI.value,
        "export_directory": "",
    }

    def __init__(self, path: Path) -> None:
        self.path = path
        self.data = json.loads(json.dumps(self.DEFAULTS))  # deep copy
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            self.save()
            return
        try:
            loaded = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            self.save()
            return
        if isinstance(loaded, dict):
            self.data = _deep_merge(self.data, loaded)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2), encoding="utf-8")

    def update(self, updates: dict[str, Any]) -> None:
        self.data = _deep_merge(self.data, updates)
        self.save()


@dataclass(frozen=True)
class AppConfig:
    admin_key: str
    latency: tuple[float, float]
    recharge_presets: tuple[int, ...]
    default_payment_method: PaymentMethod
    export_directory: Path
    log_level: str


def load_app_config(
    settings: Mapping[str, Any], environ: Mapping[str, str] | None = None
) -> AppConfig:
    """Validate *settings* and the environment into an :class:`AppConfig`."""

    env = os.environ if environ is None else environ

    latency = settings.get("simulated_latency", {})
    try:
        low = float(latency.get("min_seconds", 0.0))
        high = float(latency.get("max_seconds", 0.0))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Simulated latency must be numeric: {exc}") from exc
    if low < 0 or high < 0:
        raise ConfigurationError("Simulated latency cannot be negative.")
    if low > high:
        raise ConfigurationError("Simulated latency minimum exceeds the maximum.")

    try:
        presets = tuple(int(value) for value in settings.get("recharge_presets", []))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Recharge presets must be whole numbers: {exc}") from exc
    if not presets or any(value <= 0 for value in presets):
        raise ConfigurationError("Recharge presets must be a non-empty list of positive amounts.")

    try:
        method = PaymentMethod.parse(settings.get("default_payment_method", "UPI"))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    export_dir = str(settings.get("export_directory", "")).strip()
    admin_key = env.get("BUS2GO_ADMIN_KEY", "").strip() or DEFAULT_ADMIN_KEY
    log_level = env.get("BUS2GO_LOG_LEVEL", "").strip().upper() or "INFO"

    return AppConfig(
        admin_key=admin_key,
        latency=(low, high),
        recharge_presets=presets,
        default_payment_method=method,
        export_directory=Path(export_dir).expanduser() if export_dir else Path.home(),
        log_level=log_level,
    )
