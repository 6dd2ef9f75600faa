"""
Editor canvas widget for MemeForge.

The EditorCanvas is the editor surface that displays:
- The base image, fitted into the widget
- All text overlays on top, in z-order
- Border, resize handles, rotate handle and remove button for the selection

It is the adapter between Qt input events and the GestureController:
mouse positions are converted to surface-local pixels (relative to the
top-left of the displayed image) before being handed over. All gesture
logic lives in the controller.
"""

from pathlib import Path
from typing import Optional, Tuple

from PySide6.QtCore import QMimeData, QPointF, QRectF, QSize, Qt, Signal
from PySide6.QtGui import (
    QColor,
    QDragEnterEvent,
    QDragMoveEvent,
    QDropEvent,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPen,
    QTransform,
)
from PySide6.QtWidgets import QWidget

from memeforge.editor.compositor import draw_overlay_text
from memeforge.editor.editor_session import EditorSession
from memeforge.editor.gestures import GestureMode, ResizeDirection
from memeforge.editor.overlays import TextOverlay
from memeforge.services.logging_service import get_logger

HANDLE_SIZE = 12
ROTATE_HANDLE_OFFSET = 24
ROTATE_HANDLE_SIZE = 20
REMOVE_BUTTON_SIZE = 16
CANVAS_MARGIN = 16

# Files accepted when dropped onto the canvas
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp")

# Handle names used by hit testing
ROTATE = "rotate"
REMOVE = "remove"
BODY = "body"


class EditorCanvas(QWidget):
    """
    Interactive meme preview.

    Signals:
        selection_changed: Emitted with the selected overlay id or None.
    """

    selection_changed = Signal(object)

    def __init__(self, session: EditorSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session

        # Press bookkeeping for click detection
        self._press_id: Optional[int] = None
        self._press_background = False
        self._press_pos: Optional[QPointF] = None
        self._last_selected: Optional[int] = None

        self._setup_widget()

        session.overlays_changed.connect(self._on_overlays_changed)
        session.image_changed.connect(self._on_image_changed)

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(320, 240)
        self.setAcceptDrops(True)
        self.setStyleSheet("background-color: #1a1a1a;")

    # ─── Geometry ─────────────────────────────────────────────────────────

    @property
    def preview_rect(self) -> QRectF:
        """Rectangle the base image occupies, aspect ratio preserved."""
        image = self._session.preview_image
        area = QRectF(self.rect()).adjusted(
            CANVAS_MARGIN, CANVAS_MARGIN, -CANVAS_MARGIN, -CANVAS_MARGIN
        )
        if image is None or image.isNull() or area.isEmpty():
            return area

        scale = min(area.width() / image.width(), area.height() / image.height())
        width = round(image.width() * scale)
        height = round(image.height() * scale)
        left = round(area.center().x() - width / 2)
        top = round(area.center().y() - height / 2)
        return QRectF(left, top, width, height)

    def to_surface(self, pos: QPointF) -> QPointF:
        """Widget coordinates -> surface-local coordinates."""
        return pos - self.preview_rect.topLeft()

    def _sync_preview_size(self) -> None:
        rect = self.preview_rect
        self._session.set_preview_size(QSize(int(rect.width()), int(rect.height())))

    @staticmethod
    def _overlay_transform(overlay: TextOverlay) -> QTransform:
        """Maps the overlay's unrotated frame to surface coordinates."""
        center = overlay.center
        transform = QTransform()
        transform.translate(center.x(), center.y())
        transform.rotate(overlay.rotation)
        transform.translate(-center.x(), -center.y())
        return transform

    @staticmethod
    def handle_rects(overlay: TextOverlay) -> dict:
        """Handle rectangles in the overlay's unrotated frame."""
        x, y, w, h = overlay.x, overlay.y, overlay.width, overlay.height
        half = HANDLE_SIZE / 2
        return {
            ResizeDirection.RIGHT: QRectF(x + w - half, y + h / 2 - half, HANDLE_SIZE, HANDLE_SIZE),
            ResizeDirection.BOTTOM: QRectF(x + w / 2 - half, y + h - half, HANDLE_SIZE, HANDLE_SIZE),
            ResizeDirection.CORNER: QRectF(x + w - half, y + h - half, HANDLE_SIZE, HANDLE_SIZE),
            ROTATE: QRectF(
                x + w / 2 - ROTATE_HANDLE_SIZE / 2,
                y - ROTATE_HANDLE_OFFSET,
                ROTATE_HANDLE_SIZE,
                ROTATE_HANDLE_SIZE,
            ),
            REMOVE: QRectF(x + w - REMOVE_BUTTON_SIZE - 2, y + 2, REMOVE_BUTTON_SIZE, REMOVE_BUTTON_SIZE),
        }

    def hit_test(self, surface_pos: QPointF) -> Tuple[Optional[int], Optional[object]]:
        """
        Find what is under a surface-local point.

        Returns:
            (overlay id, part) where part is a ResizeDirection, ROTATE,
            REMOVE or BODY; (None, None) for the background.
        """
        model = self._session.model
        selected = model.selected

        # Handles of the selected overlay sit partly outside its box
        if selected is not None:
            local, _ = self._overlay_transform(selected).inverted()
            point = local.map(surface_pos)
            for part, rect in self.handle_rects(selected).items():
                if rect.contains(point):
                    return selected.id, part

        for overlay in reversed(model.overlays):
            local, _ = self._overlay_transform(overlay).inverted()
            if overlay.rect.contains(local.map(surface_pos)):
                return overlay.id, BODY

        return None, None

    # ─── Session Signals ──────────────────────────────────────────────────

    def _on_overlays_changed(self) -> None:
        selected = self._session.model.selected_id
        if selected != self._last_selected:
            self._last_selected = selected
            self.selection_changed.emit(selected)
        self.update()

    def _on_image_changed(self, _reference: str) -> None:
        self._sync_preview_size()
        self.update()

    # ─── Painting ─────────────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        painter.fillRect(self.rect(), QColor(26, 26, 26))

        image = self._session.preview_image
        if image is None or image.isNull():
            painter.setPen(QColor(140, 140, 140))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image selected")
            painter.end()
            return

        preview = self.preview_rect
        painter.drawImage(preview, image)

        painter.translate(preview.topLeft())
        model = self._session.model
        for overlay in model.overlays:
            draw_overlay_text(painter, overlay)
            if model.is_selected(overlay.id) or self._session.controller.active_id == overlay.id:
                self._draw_selection(painter, overlay)

        painter.end()

    def _draw_selection(self, painter: QPainter, overlay: TextOverlay) -> None:
        """Draw dashed border and handles in the overlay's rotated frame."""
        painter.save()
        painter.setTransform(self._overlay_transform(overlay), True)

        pen = QPen(QColor(255, 255, 255, 200))
        pen.setWidth(2)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRoundedRect(overlay.rect, 6, 6)

        handles = self.handle_rects(overlay)
        painter.setPen(QPen(QColor(136, 136, 136), 1))
        painter.setBrush(QColor(255, 255, 255))
        for direction in ResizeDirection:
            painter.drawEllipse(handles[direction])

        # Rotate handle
        painter.drawEllipse(handles[ROTATE])
        painter.setPen(QColor(40, 40, 40))
        painter.drawText(handles[ROTATE], Qt.AlignmentFlag.AlignCenter, "⟳")

        # Remove button
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor(239, 68, 68))
        painter.drawEllipse(handles[REMOVE])
        painter.setPen(QColor(255, 255, 255))
        painter.drawText(handles[REMOVE], Qt.AlignmentFlag.AlignCenter, "✕")

        painter.restore()

    # ─── Mouse Events ─────────────────────────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton or self._session.preview_image is None:
            super().mousePressEvent(event)
            return

        self.setFocus()
        pos = self.to_surface(event.position())
        controller = self._session.controller
        overlay_id, part = self.hit_test(pos)

        self._press_id = None
        self._press_background = False
        self._press_pos = pos

        if overlay_id is None:
            self._press_background = True
        elif part == REMOVE:
            self._session.remove_text(overlay_id)
        elif part == ROTATE:
            overlay = self._session.model.get(overlay_id)
            controller.begin_rotate(overlay_id, pos, overlay.center)
        elif isinstance(part, ResizeDirection):
            controller.begin_resize(overlay_id, pos, part)
        else:
            # Selection happens on release so press-to-drag stays a pure drag
            self._press_id = overlay_id
            controller.begin_drag(overlay_id, pos)

        self._update_cursor(pos)
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        controller = self._session.controller
        pos = self.to_surface(event.position())

        if controller.is_active:
            if controller.mode == GestureMode.DRAGGING and not self.preview_rect.contains(
                event.position()
            ):
                controller.pointer_left_surface()
            else:
                controller.update(pos)
            return

        self._update_cursor(pos)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return

        controller = self._session.controller
        pos = self.to_surface(event.position())

        if self._press_background:
            overlay_id, _ = self.hit_test(pos)
            if overlay_id is None:
                controller.click_background()
        elif self._press_id is not None and self._press_pos == pos:
            # Press and release at the same spot: a click, not a drag
            controller.click(self._press_id)

        controller.end()
        self._press_id = None
        self._press_background = False
        self._press_pos = None
        self._update_cursor(pos)
        self.update()

    def leaveEvent(self, event) -> None:
        self._session.controller.pointer_left_surface()
        super().leaveEvent(event)

    # ─── Drag and Drop ────────────────────────────────────────────────────

    @staticmethod
    def dropped_image_path(mime: QMimeData) -> Optional[str]:
        """First local image file among the dragged URLs, if any."""
        if not mime.hasUrls():
            return None
        for url in mime.urls():
            path = url.toLocalFile()
            if path and Path(path).suffix.lower() in IMAGE_SUFFIXES:
                return path
        return None

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        if self.dropped_image_path(event.mimeData()):
            event.acceptProposedAction()
            return
        super().dragEnterEvent(event)

    def dragMoveEvent(self, event: QDragMoveEvent) -> None:
        if self.dropped_image_path(event.mimeData()):
            event.acceptProposedAction()
            return
        super().dragMoveEvent(event)

    def dropEvent(self, event: QDropEvent) -> None:
        path = self.dropped_image_path(event.mimeData())
        if path is None:
            super().dropEvent(event)
            return
        self._logger.info(f"Image dropped: {path}")
        event.acceptProposedAction()
        self._session.set_base_image(path)

    def _update_cursor(self, pos: QPointF) -> None:
        """Update cursor based on what's under the pointer."""
        controller = self._session.controller
        if controller.mode == GestureMode.DRAGGING:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            return

        _, part = self.hit_test(pos)
        cursors = {
            ResizeDirection.RIGHT: Qt.CursorShape.SizeHorCursor,
            ResizeDirection.BOTTOM: Qt.CursorShape.SizeVerCursor,
            ResizeDirection.CORNER: Qt.CursorShape.SizeFDiagCursor,
            ROTATE: Qt.CursorShape.OpenHandCursor,
            REMOVE: Qt.CursorShape.PointingHandCursor,
            BODY: Qt.CursorShape.SizeAllCursor,
        }
        self.setCursor(cursors.get(part, Qt.CursorShape.ArrowCursor))

    # ─── Keyboard ─────────────────────────────────────────────────────────

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Inline text editing for the selected overlay."""
        model = self._session.model
        selected = model.selected
        if selected is None:
            super().keyPressEvent(event)
            return

        key = event.key()
        if key == Qt.Key.Key_Escape:
            model.select(None)
        elif key == Qt.Key.Key_Delete:
            self._session.remove_text(selected.id)
        elif key == Qt.Key.Key_Backspace:
            model.update(selected.id, text=selected.text[:-1])
        elif key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            model.update(selected.id, text=selected.text + "\n")
        elif event.text() and event.text().isprintable():
            model.update(selected.id, text=selected.text + event.text())
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self._sync_preview_size()
