"""
Editor widget for MemeForge - the main editor UI component.

This widget composes the complete editor interface:
- Top toolbar with Open/Add Text and Save/Download/Share actions
- Style bar with color swatches, font dropdown and font size slider
- Center canvas for image display and text overlays
- Right panel for AI image generation
- Transient toast for notifications
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, QTimer, Signal, Slot
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QButtonGroup,
    QComboBox,
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QSizePolicy,
    QSlider,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from memeforge.editor.editor_canvas import EditorCanvas
from memeforge.editor.editor_session import EditorSession
from memeforge.editor.overlays import COLORS, FONTS, MAX_FONT_SIZE, MIN_FONT_SIZE
from memeforge.services.config_service import ConfigService
from memeforge.services.logging_service import get_logger
from memeforge.services.meme_service import AI_MODELS, AI_STYLES
from memeforge.ui.save_meme_dialog import SaveMemeDialog

TOAST_DURATION_MS = 3000

TOAST_STYLES = {
    "info": "background-color: rgba(60, 60, 60, 230); color: #eee;",
    "success": "background-color: rgba(46, 125, 50, 230); color: white;",
    "error": "background-color: rgba(198, 40, 40, 230); color: white;",
}


class ColorSwatch(QPushButton):
    """Round, checkable button showing one palette color."""

    def __init__(self, color: str, parent=None):
        super().__init__(parent)
        self.color = color
        self.setCheckable(True)
        self.setFixedSize(22, 22)
        self.setToolTip(color)
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {color};
                border: 2px solid #666;
                border-radius: 11px;
            }}
            QPushButton:checked {{
                border-color: #4a90e2;
            }}
        """)


class StyleBar(QFrame):
    """
    Color/font/size pickers.

    Shows the selected overlay's style when one is selected, otherwise the
    style used for new text.
    """

    color_changed = Signal(str)
    font_changed = Signal(str)
    font_size_changed = Signal(int)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._updating = False
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setStyleSheet("""
            StyleBar { background-color: #262626; border-bottom: 1px solid #3a3a3a; }
            QLabel { color: #ddd; font-size: 11px; }
            QComboBox { background-color: #3a3a3a; color: #ddd; border: 1px solid #555; padding: 3px; }
        """)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(10, 6, 10, 6)
        layout.setSpacing(6)

        self._swatches = QButtonGroup(self)
        self._swatches.setExclusive(False)
        for color in COLORS:
            swatch = ColorSwatch(color)
            swatch.clicked.connect(lambda checked, c=color: self._on_color_clicked(c))
            self._swatches.addButton(swatch)
            layout.addWidget(swatch)

        layout.addSpacing(12)

        self._font = QComboBox()
        self._font.addItems(FONTS)
        self._font.currentTextChanged.connect(lambda f: self._emit(self.font_changed, f))
        layout.addWidget(self._font)

        layout.addSpacing(12)

        self._size = QSlider(Qt.Orientation.Horizontal)
        self._size.setRange(MIN_FONT_SIZE, MAX_FONT_SIZE)
        self._size.setFixedWidth(120)
        self._size.valueChanged.connect(self._on_size_changed)
        layout.addWidget(self._size)

        self._size_label = QLabel()
        layout.addWidget(self._size_label)
        layout.addStretch()

    def _emit(self, signal, value) -> None:
        if not self._updating:
            signal.emit(value)

    def _on_color_clicked(self, color: str) -> None:
        self._check_color(color)
        self._emit(self.color_changed, color)

    def _check_color(self, color: str) -> None:
        for swatch in self._swatches.buttons():
            swatch.setChecked(QColor(swatch.color) == QColor(color))

    def _on_size_changed(self, value: int) -> None:
        self._size_label.setText(f"{value}px")
        self._emit(self.font_size_changed, value)

    def show_style(self, color: str, font: str, font_size: int) -> None:
        """Reflect a style without emitting change signals."""
        self._updating = True
        self._check_color(color)
        self._font.setCurrentText(font)
        self._size.setValue(int(font_size))
        self._size_label.setText(f"{int(font_size)}px")
        self._updating = False


class AiPanel(QFrame):
    """Right panel: prompt, style and model for AI image generation."""

    generate_requested = Signal(str, str, str)

    def __init__(self, default_style: str, default_model: str, parent=None):
        super().__init__(parent)
        self._setup_ui(default_style, default_model)

    def _setup_ui(self, default_style: str, default_model: str) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedWidth(220)
        self.setStyleSheet("""
            AiPanel { background-color: #2d2d2d; border-left: 1px solid #3a3a3a; }
            QLabel { color: #ddd; font-size: 11px; }
            QPlainTextEdit, QComboBox {
                background-color: #3a3a3a; color: #ddd; border: 1px solid #555; padding: 4px;
            }
        """)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(10)

        title = QLabel("AI Meme Generator")
        title.setStyleSheet("font-weight: bold; font-size: 13px;")
        layout.addWidget(title)

        layout.addWidget(QLabel("Prompt"))
        self._prompt = QPlainTextEdit()
        self._prompt.setPlaceholderText("AI Prompt")
        self._prompt.setFixedHeight(80)
        layout.addWidget(self._prompt)

        layout.addWidget(QLabel("Style"))
        self._style = QComboBox()
        self._style.addItems(AI_STYLES)
        self._style.setCurrentText(default_style)
        layout.addWidget(self._style)

        layout.addWidget(QLabel("Model"))
        self._model = QComboBox()
        self._model.addItems(AI_MODELS)
        self._model.setCurrentText(default_model)
        layout.addWidget(self._model)

        self._generate_btn = QPushButton("Generate with AI")
        self._generate_btn.clicked.connect(self._on_generate)
        layout.addWidget(self._generate_btn)

        layout.addStretch()

    def _on_generate(self) -> None:
        self.generate_requested.emit(
            self._prompt.toPlainText(), self._style.currentText(), self._model.currentText()
        )

    def set_busy(self, busy: bool) -> None:
        self._generate_btn.setEnabled(not busy)
        self._generate_btn.setText("Generating..." if busy else "Generate with AI")


class Toast(QLabel):
    """Transient, non-blocking notification shown over the editor."""

    def __init__(self, parent: QWidget):
        super().__init__(parent)
        self.setWordWrap(True)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.hide()

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.hide)

    def show_message(self, message: str, level: str = "info") -> None:
        style = TOAST_STYLES.get(level, TOAST_STYLES["info"])
        self.setStyleSheet(f"QLabel {{ {style} padding: 8px 14px; border-radius: 8px; }}")
        self.setText(message)

        parent = self.parentWidget()
        width = min(420, parent.width() - 40)
        self.setFixedWidth(max(200, width))
        self.adjustSize()
        self.move((parent.width() - self.width()) // 2, parent.height() - self.height() - 24)
        self.show()
        self.raise_()
        self._timer.start(TOAST_DURATION_MS)


class EditorWidget(QWidget):
    """
    Main editor widget composing toolbar, style bar, canvas and AI panel.
    """

    def __init__(
        self,
        session: EditorSession,
        config_service: Optional[ConfigService] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session
        self._config = config_service

        self._setup_ui()
        self._connect_signals()
        self._refresh_style_bar()

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border-bottom: 1px solid #3a3a3a;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolButton {
                background-color: transparent;
                color: #ddd;
                border: none;
                border-radius: 8px;
                padding: 6px 10px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:disabled {
                color: #777;
            }
        """)

        self._open_btn = self._add_tool_button("Open Image", "Select an image (Ctrl+O)", self._open_image)
        self._add_text_btn = self._add_tool_button("Add Text", "Add a text overlay (T)", self._add_text)

        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._toolbar.addWidget(spacer)

        self._save_btn = self._add_tool_button("Save", "Save to your collection (Ctrl+S)", self._save)
        self._download_btn = self._add_tool_button("Download", "Download as PNG (Ctrl+D)", self._download)
        self._share_btn = self._add_tool_button("Share", "Share", self._share)

        main_layout.addWidget(self._toolbar)

        # ─── Style Bar ────────────────────────────────────────────────
        self._style_bar = StyleBar()
        main_layout.addWidget(self._style_bar)

        # ─── Center Content ───────────────────────────────────────────
        content = QHBoxLayout()
        content.setContentsMargins(0, 0, 0, 0)
        content.setSpacing(0)

        self._canvas = EditorCanvas(self._session)
        content.addWidget(self._canvas, 1)

        default_style = self._config.default_ai_style if self._config else AI_STYLES[0]
        default_model = self._config.default_ai_model if self._config else AI_MODELS[-1]
        self._ai_panel = AiPanel(default_style, default_model)
        content.addWidget(self._ai_panel)

        main_layout.addLayout(content, 1)

        self._toast = Toast(self)

    def _add_tool_button(self, text: str, tooltip: str, slot) -> QToolButton:
        btn = QToolButton()
        btn.setText(text)
        btn.setToolTip(tooltip)
        btn.clicked.connect(slot)
        self._toolbar.addWidget(btn)
        return btn

    def _connect_signals(self) -> None:
        """Connect widget signals."""
        self._session.notification.connect(self._toast.show_message)
        self._session.busy_changed.connect(self._on_busy_changed)
        self._session.overlays_changed.connect(self._refresh_style_bar)
        self._canvas.selection_changed.connect(self._on_selection_changed)

        self._style_bar.color_changed.connect(lambda c: self._session.apply_style(color=c))
        self._style_bar.font_changed.connect(lambda f: self._session.apply_style(font=f))
        self._style_bar.font_size_changed.connect(
            lambda s: self._session.apply_style(font_size=s)
        )

        self._ai_panel.generate_requested.connect(self._session.generate_ai_image)

    @property
    def canvas(self) -> EditorCanvas:
        return self._canvas

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(bool)
    def _on_busy_changed(self, busy: bool) -> None:
        for btn in (self._open_btn, self._save_btn, self._download_btn, self._share_btn):
            btn.setEnabled(not busy)
        self._ai_panel.set_busy(busy)

    @Slot(object)
    def _on_selection_changed(self, overlay_id) -> None:
        self._refresh_style_bar()

    def _refresh_style_bar(self) -> None:
        selected = self._session.model.selected
        if selected is not None:
            self._style_bar.show_style(selected.color, selected.font, selected.font_size)
        else:
            self._style_bar.show_style(
                self._session.color, self._session.font, self._session.font_size
            )

    # ─── Actions ──────────────────────────────────────────────────────────

    def _open_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Select an Image", str(Path.home()), "Images (*.png *.jpg *.jpeg *.gif *.webp *.bmp)"
        )
        if path:
            self.open_image(path)

    def open_image(self, reference: str) -> bool:
        """Load a local file or URL as the base image."""
        return self._session.set_base_image(reference)

    def _add_text(self) -> None:
        if self._session.preview_image is None:
            self._toast.show_message("Select an image first", "error")
            return
        self._session.add_text()
        self._canvas.setFocus()

    def _save(self) -> None:
        if self._session.preview_image is None:
            self._toast.show_message("Select an image first", "error")
            return
        dialog = SaveMemeDialog(self)
        if dialog.exec():
            self._session.save_to_collection(dialog.request())

    def _download(self) -> None:
        self._session.download()

    def _share(self) -> None:
        self._session.share()

    # ─── Key Events ───────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        """Handle keyboard shortcuts."""
        key = event.key()
        modifiers = event.modifiers()
        ctrl = modifiers & Qt.KeyboardModifier.ControlModifier

        if key == Qt.Key.Key_O and ctrl:
            self._open_image()
            return
        if key == Qt.Key.Key_S and ctrl:
            self._save()
            return
        if key == Qt.Key.Key_D and ctrl:
            self._download()
            return
        if key == Qt.Key.Key_T and not modifiers:
            self._add_text()
            return

        super().keyPressEvent(event)
