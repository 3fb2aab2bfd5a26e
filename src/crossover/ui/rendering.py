"""Painting helpers shared by the overlay and the crosshair chooser."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QIcon, QImage, QPainter, QPen, QPixmap
from PySide6.QtSvg import QSvgRenderer

__all__ = ["render_crosshair_image", "paint_reticle", "crosshair_icon"]

LOGGER = logging.getLogger(__name__)


def render_crosshair_image(path: Path | None, size: int, color: str | None = None) -> QImage:
    """Rasterise ``path`` into a ``size`` x ``size`` image.

    SVG images are tinted with ``color``; bitmaps keep their own colours.
    A missing or unreadable file yields a transparent image.
    """

    image = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(Qt.GlobalColor.transparent)
    if path is None:
        return image

    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    try:
        is_svg = path.suffix.lower() == ".svg"
        if is_svg:
            renderer = QSvgRenderer(str(path))
            if not renderer.isValid():
                LOGGER.warning("Unreadable crosshair image %s", path)
                return image
            renderer.render(painter, QRectF(image.rect()))
        else:
            pixmap = QPixmap(str(path))
            if pixmap.isNull():
                LOGGER.warning("Unreadable crosshair image %s", path)
                return image
            painter.drawPixmap(image.rect(), pixmap)
        if is_svg and color:
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceIn)
            painter.fillRect(image.rect(), QColor(color))
    finally:
        painter.end()
    return image


def paint_reticle(painter: QPainter, rect: QRectF, reticle: str, color: str) -> None:
    """Draw the small centre reticle over the crosshair image."""

    if reticle == "none":
        return
    center = rect.center()
    radius = max(2.0, rect.width() * 0.04)
    pen = QPen(QColor(color))
    pen.setWidthF(max(1.0, rect.width() * 0.015))
    painter.save()
    painter.setPen(pen)
    if reticle == "dot":
        painter.setBrush(QColor(color))
        painter.drawEllipse(center, radius, radius)
    elif reticle == "circle":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(center, radius * 2, radius * 2)
    elif reticle == "cross":
        arm = radius * 2.5
        painter.drawLine(QPointF(center.x() - arm, center.y()), QPointF(center.x() + arm, center.y()))
        painter.drawLine(QPointF(center.x(), center.y() - arm), QPointF(center.x(), center.y() + arm))
    painter.restore()


def crosshair_icon(path: Path | None, size: int = 48) -> QIcon:
    return QIcon(QPixmap.fromImage(render_crosshair_image(path, size, "#FFFFFF")))
