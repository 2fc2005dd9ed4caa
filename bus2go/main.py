"""Main entry point for the BUS2go companion application."""

from __future__ import annotations

import sys
from importlib import import_module
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QMessageBox

if __package__ in (None, ""):
    package_root = Path(__file__).resolve().parent.parent
    if str(package_root) not in sys.path:
        sys.path.insert(0, str(package_root))
    _bus2go = import_module("bus2go.bus2go_app")
    _config = import_module("bus2go.config")
else:  # pragma: no cover - import path depends on runtime context
    _bus2go = import_module(".bus2go_app", package=__package__)
    _config = import_module(".config", package=__package__)

ConfigurationError = _config.ConfigurationError
bootstrap_app = _bus2go.bootstrap_app


def main() -> None:
    """Launch the PyQt6 BUS2go GUI."""
    try:
        exit_code = bootstrap_app()
    except ConfigurationError as exc:
        app = QApplication.instance() or QApplication(sys.argv)
        QMessageBox.critical(None, "BUS2go Configuration", str(exc))
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
