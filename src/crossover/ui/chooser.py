"""Crosshair chooser dialog and the transient toast label."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from PySide6.QtCore import QSize, Qt, QTimer
from PySide6.QtWidgets import (
    QDialog,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..preferences.catalog import SUPPORTED_IMAGE_EXTENSIONS, CrosshairCatalog
from ..sync.commands import NoticeLevel
from .rendering import crosshair_icon

__all__ = ["CrosshairChooser", "CrosshairList", "ToastLabel"]

LOGGER = logging.getLogger(__name__)

TOAST_MILLISECONDS = 3000
_TOAST_COLORS = {
    NoticeLevel.INFO: "#2a4b7c",
    NoticeLevel.SUCCESS: "#1f4d2c",
    NoticeLevel.ERROR: "#641b1b",
}


class ToastLabel(QLabel):
    """Non-blocking notice that hides itself after a few seconds."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("crossover-toast")
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setWordWrap(True)
        self.hide()
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.hide)

    def show_message(self, message: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        self.setText(message)
        self.setProperty("level", level.value)
        self.setStyleSheet(
            f"QLabel#crossover-toast {{ background-color: {_TOAST_COLORS[level]}; color: #f4f6fa;"
            " border-radius: 4px; padding: 4px 8px; }"
        )
        self.adjustSize()
        self.show()
        self.raise_()
        self._timer.start(TOAST_MILLISECONDS)


class CrosshairList(QListWidget):
    """Icon grid of catalog entries with the active one selected."""

    def __init__(self, catalog: CrosshairCatalog, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setObjectName("crosshair_list")
        self._catalog = catalog
        self.setViewMode(QListWidget.ViewMode.IconMode)
        self.setIconSize(QSize(48, 48))
        self.setResizeMode(QListWidget.ResizeMode.Adjust)
        self.setMovement(QListWidget.Movement.Static)
        self.setSpacing(6)

    def populate(self, crosshairs: Sequence[str], active: str) -> None:
        blocked = self.blockSignals(True)
        try:
            self.clear()
            for identifier in crosshairs:
                item = QListWidgetItem(crosshair_icon(self._catalog.path_for(identifier)), _display_name(identifier))
                item.setData(Qt.ItemDataRole.UserRole, identifier)
                item.setToolTip(identifier)
                self.addItem(item)
                if identifier == active:
                    self.setCurrentItem(item)
        finally:
            self.blockSignals(blocked)

    def identifiers(self) -> list[str]:
        return [self.item(row).data(Qt.ItemDataRole.UserRole) for row in range(self.count())]


class CrosshairChooser(QDialog):
    """Modal-less picker shown by the primary overlay."""

    def __init__(
        self,
        catalog: CrosshairCatalog,
        *,
        on_select: Callable[[str], object],
        on_import: Callable[[str], object],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setObjectName("crosshair_chooser")
        self.setWindowTitle("Choose Crosshair")
        self._on_select = on_select
        self._on_import = on_import

        self._list = CrosshairList(catalog, self)
        self._list.currentItemChanged.connect(self._handle_current_changed)

        import_button = QPushButton("Import…")
        import_button.setObjectName("import_button")
        import_button.clicked.connect(self._handle_import_clicked)
        close_button = QPushButton("Close")
        close_button.clicked.connect(self.close)

        buttons = QHBoxLayout()
        buttons.addWidget(import_button)
        buttons.addStretch(1)
        buttons.addWidget(close_button)

        layout = QVBoxLayout(self)
        layout.addWidget(self._list, 1)
        layout.addLayout(buttons)
        self.resize(420, 320)

    @property
    def crosshair_list(self) -> CrosshairList:
        return self._list

    def present(self, crosshairs: Sequence[str], active: str) -> None:
        self._list.populate(crosshairs, active)
        self.show()
        self.raise_()
        self.activateWindow()

    def _handle_current_changed(self, item: QListWidgetItem | None, _previous: QListWidgetItem | None) -> None:
        if item is None:
            return
        identifier = item.data(Qt.ItemDataRole.UserRole)
        if identifier:
            self._on_select(identifier)

    def _handle_import_clicked(self) -> None:
        patterns = " ".join(f"*.{extension}" for extension in SUPPORTED_IMAGE_EXTENSIONS)
        path, _ = QFileDialog.getOpenFileName(self, "Import Crosshair", "", f"Images ({patterns})")
        if path:
            self._on_import(path)


def _display_name(identifier: str) -> str:
    stem, _, _ = identifier.rpartition(".")
    return (stem or identifier).replace("-", " ").replace("_", " ").title()
