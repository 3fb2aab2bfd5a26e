"""Tests for the crosshair catalog."""

from __future__ import annotations

from pathlib import Path

import pytest

from crossover.errors import CatalogError
from crossover.preferences.catalog import BUILTIN_CROSSHAIRS_DIR, CrosshairCatalog, resolve_crosshair
from crossover.preferences.models import DEFAULT_CROSSHAIR, FALLBACK_CROSSHAIR


def test_list_is_sorted_and_filters_unsupported_files(catalog: CrosshairCatalog) -> None:
    assert catalog.list() == ["cross-thin.svg", "crosshair-default.svg", "target-dot.svg"]


def test_missing_custom_directory_is_tolerated(catalog: CrosshairCatalog) -> None:
    assert not catalog.custom_dir.exists()
    assert "target-dot.svg" in catalog.list()


def test_import_copies_into_custom_directory(catalog: CrosshairCatalog, tmp_path: Path) -> None:
    source = tmp_path / "mine.png"
    source.write_bytes(b"\x89PNG\r\n")

    identifier = catalog.import_file(source)

    assert identifier == "mine.png"
    assert (catalog.custom_dir / "mine.png").read_bytes() == b"\x89PNG\r\n"
    assert "mine.png" in catalog.list()


def test_custom_image_shadows_builtin(catalog: CrosshairCatalog, crosshair_dirs: tuple[Path, Path]) -> None:
    _, custom = crosshair_dirs
    custom.mkdir()
    (custom / "target-dot.svg").write_text("<svg/>", encoding="utf-8")

    assert catalog.path_for("target-dot.svg") == custom / "target-dot.svg"
    assert catalog.list().count("target-dot.svg") == 1


def test_import_rejects_missing_and_unsupported_files(catalog: CrosshairCatalog, tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="not found"):
        catalog.import_file(tmp_path / "absent.png")

    text_file = tmp_path / "readme.txt"
    text_file.write_text("hi", encoding="utf-8")
    with pytest.raises(CatalogError, match="Unsupported"):
        catalog.import_file(text_file)


def test_resolve_path_falls_back_to_default(catalog: CrosshairCatalog) -> None:
    assert catalog.resolve_path("missing.svg") == catalog.path_for(FALLBACK_CROSSHAIR)


def test_resolve_crosshair() -> None:
    """Unknown identifiers render as the fallback once a catalog is known."""
    assert resolve_crosshair("a.svg", []) == "a.svg"
    assert resolve_crosshair("a.svg", ["a.svg"]) == "a.svg"
    assert resolve_crosshair("gone.svg", ["a.svg"]) == FALLBACK_CROSSHAIR


def test_builtin_resources_ship_defaults() -> None:
    names = {path.name for path in BUILTIN_CROSSHAIRS_DIR.iterdir()}
    assert DEFAULT_CROSSHAIR in names
    assert FALLBACK_CROSSHAIR in names
