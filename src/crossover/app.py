"""Application bootstrap helpers for the CrossOver overlay."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from . import __version__
from .backend import OverlayBackend
from .preferences import CrosshairCatalog, Preferences, PreferencesFile
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


@dataclass(slots=True)
class OverlayRuntime:
    """The owner plus the windows built on top of it."""

    backend: OverlayBackend
    platform: Any
    primary: Any


def configure_logging(debug: bool = False, *, preferences_path: Path | None = None, force: bool = False) -> Path:
    """Configure logging beside the preferences file and return the log file path."""

    level = logging.DEBUG if debug else logging.INFO
    log_path = logging_utils.setup_logging(level, log_dir=logging_utils.log_dir_for(preferences_path), force=force)
    _LOGGER.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(level))
    _install_qt_message_handler()
    return log_path


def load_preferences(
    path: Optional[Path] = None,
    *,
    store: PreferencesFile | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Preferences:
    """Load persisted preferences or fall back to defaults."""

    active_store = store or PreferencesFile(path)
    try:
        preferences = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load preferences from %s: %s", active_store.path, exc)
        preferences = Preferences()
    return preferences


def create_qapp() -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    try:  # Local import keeps the headless modules importable without Qt.
        from PySide6.QtWidgets import QApplication
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError("PySide6 must be installed to launch the CrossOver overlay.") from exc

    try:
        from qasync import QEventLoop
    except ImportError as exc:  # pragma: no cover - depends on env setup
        raise RuntimeError("qasync is required to run the async Qt event loop.") from exc

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("CrossOver")
    app.setApplicationDisplayName("CrossOver")
    app.setApplicationVersion(__version__)
    app.setQuitOnLastWindowClosed(False)

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    try:
        app.aboutToQuit.connect(loop.stop)  # type: ignore[attr-defined]
    except AttributeError:  # pragma: no cover - in case of mock QApplication
        pass
    return QtRuntime(app=app, loop=loop)


def build_overlay(
    preferences: Preferences,
    *,
    store: PreferencesFile | None = None,
    catalog: CrosshairCatalog | None = None,
) -> OverlayRuntime:
    """Wire the owner, the Qt window platform and the primary overlay."""

    from .ui.platform import QtWindowPlatform

    active_catalog = catalog or CrosshairCatalog()
    backend = OverlayBackend(preferences, store=store, catalog=active_catalog)
    platform = QtWindowPlatform(backend, backend.bus, active_catalog)
    backend.attach_platform(platform)
    primary = platform.open_primary((preferences.position_x, preferences.position_y))
    if preferences.locked:
        platform.set_click_through("main", True)
    if not preferences.visible:
        platform.set_visible("main", False)
    return OverlayRuntime(backend=backend, platform=platform, primary=primary)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `crossover` console script."""

    args, passthrough = _parse_cli_args(argv)
    _rewrite_sys_argv(passthrough)

    preferences_path = args.preferences_path or os.environ.get("CROSSOVER_PREFERENCES_PATH")
    resolved_path = Path(preferences_path).expanduser() if preferences_path else None
    store = PreferencesFile(resolved_path)
    log_path = configure_logging(_env_flag("CROSSOVER_DEBUG", default=False), preferences_path=store.path)

    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    preferences = load_preferences(resolved_path, store=store, overrides=cli_overrides or None)
    custom_dir = Path(args.crosshairs_dir).expanduser() if args.crosshairs_dir else None
    catalog = CrosshairCatalog(custom_dir=custom_dir)

    if args.dump_preferences:
        _dump_preferences(preferences, store, catalog, overrides=cli_overrides, log_path=log_path)
        return

    runtime = create_qapp()
    overlay = build_overlay(preferences, store=store, catalog=catalog)

    from .ui.tray import create_tray

    tray = create_tray(overlay.backend, overlay.primary, on_quit=runtime.app.quit)
    _LOGGER.info("CrossOver %s started (tray=%s)", __version__, tray is not None)

    loop = runtime.loop
    loop.create_task(overlay.primary.hydrate())
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(_shutdown_overlay(overlay))
        _drain_event_loop(loop)
        loop.close()


async def _shutdown_overlay(overlay: OverlayRuntime) -> None:
    """Flush pending requests, persist the aggregate and close every surface."""

    for label in overlay.platform.labels:
        controller = overlay.platform.controller(label)
        if controller is not None:
            await controller.drain()
    try:
        await overlay.backend.save_preferences()
    except OSError as exc:
        _LOGGER.error("Failed to save preferences on quit: %s", exc)
    overlay.platform.close_all()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shutdown async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = None
        with contextlib.suppress(RuntimeError):
            current_task = asyncio.current_task(loop=loop)

        tasks = [task for task in asyncio.all_tasks(loop) if not task.done() and task is not current_task]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - defensive guard
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack when available."""

    try:
        from PySide6.QtCore import QtMsgType, qInstallMessageHandler
    except ImportError:  # pragma: no cover - PySide6 optional during tests
        return

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        level = level_map.get(mode, logging.INFO)
        logging.getLogger("PySide6").log(level, message)

    qInstallMessageHandler(_handler)


def _parse_cli_args(argv: Sequence[str] | None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(
        prog="crossover",
        add_help=True,
        description="Launch the CrossOver crosshair overlay or inspect its preferences.",
    )
    parser.add_argument(
        "--dump-preferences",
        action="store_true",
        help="Print the effective preferences and crosshair catalog, then exit.",
    )
    parser.add_argument(
        "--preferences-path",
        metavar="PATH",
        help="Override the default ~/.crossover/preferences.json path.",
    )
    parser.add_argument(
        "--crosshairs-dir",
        metavar="DIR",
        help="Directory holding imported crosshairs (default ~/.crossover/crosshairs).",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted preferences before launch (repeatable).",
    )
    return parser.parse_known_args(argv)


def _rewrite_sys_argv(passthrough: Sequence[str]) -> None:
    program = sys.argv[0] if sys.argv else "crossover"
    sys.argv = [program, *passthrough]


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Preferences.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Preferences)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown preference '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if normalized.lower() in {"none", "null"} and _is_optional(annotation):
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _is_optional(annotation: Any) -> bool:
    return type(None) in get_args(annotation)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_preferences(
    preferences: Preferences,
    store: PreferencesFile,
    catalog: CrosshairCatalog,
    *,
    overrides: Mapping[str, Any],
    log_path: Path | None = None,
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "log_path": str(log_path) if log_path is not None else None,
        "crosshair_dirs": [str(directory) for directory in catalog.directories],
        "crosshairs": catalog.list(),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"preferences": preferences.to_payload(), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("CROSSOVER_"))
