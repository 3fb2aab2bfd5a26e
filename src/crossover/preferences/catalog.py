"""Crosshair image catalog: built-in resources plus user imports."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, Sequence

from ..errors import CatalogError
from .models import FALLBACK_CROSSHAIR

__all__ = [
    "CrosshairCatalog",
    "BUILTIN_CROSSHAIRS_DIR",
    "DEFAULT_CUSTOM_DIR",
    "SUPPORTED_IMAGE_EXTENSIONS",
    "resolve_crosshair",
]

LOGGER = logging.getLogger(__name__)

BUILTIN_CROSSHAIRS_DIR = Path(__file__).resolve().parent.parent / "resources" / "crosshairs"
DEFAULT_CUSTOM_DIR = Path.home() / ".crossover" / "crosshairs"
SUPPORTED_IMAGE_EXTENSIONS: tuple[str, ...] = ("png", "svg", "gif", "jpg", "jpeg", "webp")


def _is_supported(path: Path) -> bool:
    return path.suffix.lower().lstrip(".") in SUPPORTED_IMAGE_EXTENSIONS


def resolve_crosshair(identifier: str, catalog: Sequence[str] | None) -> str:
    """Return the identifier to render for ``identifier``.

    An empty catalog means nothing is known yet, so the identifier is used
    as-is; otherwise unknown identifiers render as the fallback image.
    """

    if not catalog or identifier in catalog:
        return identifier
    LOGGER.warning("Crosshair %s not in catalog, rendering %s", identifier, FALLBACK_CROSSHAIR)
    return FALLBACK_CROSSHAIR


class CrosshairCatalog:
    """Lists crosshair images from the built-in and custom directories."""

    def __init__(
        self,
        *,
        builtin_dir: Path | None = None,
        custom_dir: Path | None = None,
    ) -> None:
        self._builtin_dir = builtin_dir or BUILTIN_CROSSHAIRS_DIR
        self._custom_dir = custom_dir or DEFAULT_CUSTOM_DIR

    @property
    def directories(self) -> tuple[Path, Path]:
        return (self._builtin_dir, self._custom_dir)

    @property
    def custom_dir(self) -> Path:
        return self._custom_dir

    def list(self) -> list[str]:
        """Return sorted, de-duplicated identifiers of every usable image."""

        names: set[str] = set()
        for directory in self.directories:
            names.update(path.name for path in self._scan(directory))
        ordered = sorted(names, key=str.lower)
        LOGGER.debug("Found %d crosshairs", len(ordered))
        return ordered

    def path_for(self, identifier: str) -> Path | None:
        """Return the image path for ``identifier``; custom images shadow built-ins."""

        for directory in (self._custom_dir, self._builtin_dir):
            candidate = directory / identifier
            if candidate.is_file():
                return candidate
        return None

    def resolve_path(self, identifier: str) -> Path | None:
        """Like :meth:`path_for`, falling back to the default image."""

        return self.path_for(identifier) or self.path_for(FALLBACK_CROSSHAIR)

    def import_file(self, source: Path | str) -> str:
        """Copy ``source`` into the custom directory and return its identifier."""

        path = Path(source).expanduser()
        if not path.is_file():
            raise CatalogError(f"Crosshair file not found: {path}")
        if not _is_supported(path):
            raise CatalogError(
                f"Unsupported crosshair format {path.suffix or '(none)'}; "
                f"use one of {', '.join(SUPPORTED_IMAGE_EXTENSIONS)}"
            )
        self._custom_dir.mkdir(parents=True, exist_ok=True)
        destination = self._custom_dir / path.name
        shutil.copyfile(path, destination)
        LOGGER.info("Imported crosshair %s", destination.name)
        return destination.name

    @staticmethod
    def _scan(directory: Path) -> Iterable[Path]:
        if not directory.is_dir():
            return ()
        try:
            return [entry for entry in directory.iterdir() if entry.is_file() and _is_supported(entry)]
        except OSError as exc:
            LOGGER.warning("Unable to read crosshair directory %s: %s", directory, exc)
            return ()
