"""
Editor session for MemeForge.

EditorSession aggregates everything one editing session needs:
- the base image reference (and AI metadata when it was generated)
- the OverlayModel and the GestureController that mutates it
- the settings applied to newly added text
- the user-triggered actions: generate, save, download, share

Every action reports failure through the ``notification`` signal and
always leaves the session re-triggerable (busy is cleared in ``finally``).
"""

import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Optional

from PySide6.QtCore import QObject, QSize, QUrl, Signal
from PySide6.QtGui import QDesktopServices, QImage

from memeforge.editor.compositor import CanvasCompositor, CompositingError, encode_png
from memeforge.editor.gestures import GestureController
from memeforge.editor.overlays import OverlayModel
from memeforge.services.api_client import ApiError
from memeforge.services.logging_service import get_logger
from memeforge.services.meme_service import GeneratedImageMetadata, MemeService, SaveMemeRequest

# Callable that hands PNG bytes to a native share sheet; False = unavailable
ShareHandler = Callable[[bytes], bool]

# Settings apply_style may change
STYLE_FIELDS = ("color", "font", "font_size")


class EditorSession(QObject):
    """
    State and actions of one meme being edited.

    Signals:
        notification: (message, level) with level "info", "success" or "error".
        busy_changed: True while an action is running.
        image_changed: Emitted with the new base image reference.
        overlays_changed: Emitted after any overlay or selection mutation.
    """

    notification = Signal(str, str)
    busy_changed = Signal(bool)
    image_changed = Signal(str)
    overlays_changed = Signal()

    def __init__(
        self,
        compositor: CanvasCompositor,
        meme_service: Optional[MemeService] = None,
        save_folder: Optional[Path] = None,
        default_color: str = "#FFFFFF",
        default_font: str = "Impact",
        default_font_size: int = 32,
        share_handler: Optional[ShareHandler] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._compositor = compositor
        self._meme_service = meme_service
        self._save_folder = save_folder or Path.home() / "Pictures" / "MemeForge"
        self._share_handler = share_handler

        self._model = OverlayModel()
        self._model.subscribe(self.overlays_changed.emit)
        self._controller = GestureController(self._model)

        self._image_ref: Optional[str] = None
        self._preview_image: Optional[QImage] = None
        self._ai_metadata: Optional[GeneratedImageMetadata] = None
        self._preview_size = QSize()

        self.color = default_color
        self.font = default_font
        self.font_size = default_font_size

        self._busy = False
        self._share_dir: Optional[tempfile.TemporaryDirectory] = None

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def model(self) -> OverlayModel:
        return self._model

    @property
    def controller(self) -> GestureController:
        return self._controller

    @property
    def image_ref(self) -> Optional[str]:
        return self._image_ref

    @property
    def preview_image(self) -> Optional[QImage]:
        """Decoded base image used for on-screen display."""
        return self._preview_image

    @property
    def ai_metadata(self) -> Optional[GeneratedImageMetadata]:
        return self._ai_metadata

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def preview_size(self) -> QSize:
        return self._preview_size

    def set_preview_size(self, size: QSize) -> None:
        """Record the size the base image is rendered at on screen."""
        self._preview_size = QSize(size)

    def set_meme_service(self, service: Optional[MemeService]) -> None:
        self._meme_service = service

    def set_share_handler(self, handler: Optional[ShareHandler]) -> None:
        self._share_handler = handler

    # ─── Base image ───────────────────────────────────────────────────────

    def set_base_image(
        self,
        reference: str,
        metadata: Optional[GeneratedImageMetadata] = None,
    ) -> bool:
        """
        Switch to a new base image. Overlays are kept.

        Returns:
            False (with an error notification) if the image cannot be loaded;
            the previous image stays in place.
        """
        try:
            image = self._compositor.loader.load(reference)
        except CompositingError as e:
            self._logger.error(f"Base image rejected: {e}")
            self._notify(str(e) or "Failed to load image", "error")
            return False

        self._image_ref = reference
        self._preview_image = image
        self._ai_metadata = metadata
        self._controller.end()
        self._logger.info(f"Base image set: {image.width()}x{image.height()}")
        self.image_changed.emit(reference)
        return True

    # ─── Overlays ─────────────────────────────────────────────────────────

    def add_text(self, text: Optional[str] = None) -> int:
        """Add a text overlay using the current color/font/size and select it."""
        fields = {"color": self.color, "font": self.font, "font_size": self.font_size}
        if text is not None:
            fields["text"] = text
        overlay_id = self._model.add(**fields)
        self._model.select(overlay_id)
        return overlay_id

    def remove_text(self, overlay_id: int) -> None:
        if self._controller.active_id == overlay_id:
            self._controller.end()
        self._model.remove(overlay_id)

    def apply_style(self, **changes) -> None:
        """
        Change color/font/font_size.

        Applies to the selected overlay when there is one, otherwise to the
        settings used for new overlays.
        """
        unknown = set(changes) - set(STYLE_FIELDS)
        if unknown:
            self._logger.warning(f"Ignoring unknown style settings: {sorted(unknown)}")
        style = {name: value for name, value in changes.items() if name in STYLE_FIELDS}

        selected = self._model.selected_id
        if selected is not None:
            self._model.update(selected, **style)
            return
        for name, value in style.items():
            setattr(self, name, value)

    # ─── Actions ──────────────────────────────────────────────────────────

    @contextmanager
    def _busy_scope(self) -> Iterator[None]:
        self._busy = True
        self.busy_changed.emit(True)
        try:
            yield
        finally:
            self._busy = False
            self.busy_changed.emit(False)

    def _notify(self, message: str, level: str = "info") -> None:
        self.notification.emit(message, level)

    def render(self) -> QImage:
        """
        Composite the current base image and overlays.

        Uses the already decoded preview image, so an export never refetches
        a remote base image.

        Raises:
            CompositingError: No base image, or it failed to load/render.
        """
        if not self._image_ref:
            raise CompositingError("No image selected")

        size = self._preview_size
        if not size.isValid() or size.isEmpty():
            size = self._preview_image.size() if self._preview_image else size

        if self._preview_image is not None:
            return self._compositor.composite(self._preview_image, self._model.overlays, size)
        return self._compositor.compose_from_reference(
            self._image_ref, self._model.overlays, size
        )

    def generate_ai_image(self, prompt: str, style: str, model: str) -> bool:
        """Ask the backend for an AI image and make it the base image."""
        if self._busy:
            return False
        if not prompt.strip():
            self._notify("Please enter a prompt", "error")
            return False
        if self._meme_service is None:
            self._notify("Sign in to generate images", "error")
            return False

        with self._busy_scope():
            try:
                metadata = self._meme_service.generate_image(prompt.strip(), style, model)
            except ApiError as e:
                self._logger.error(f"AI generation failed: {e.message}")
                self._notify(e.message or "Failed to generate image", "error")
                return False

            if not self.set_base_image(metadata.url, metadata):
                return False

        self._notify("Image generated!", "success")
        return True

    def save_to_collection(self, request: SaveMemeRequest) -> bool:
        """Render and upload the meme with its overlay layout."""
        if self._busy:
            return False
        problem = request.validate()
        if problem:
            self._notify(problem, "error")
            return False
        if self._meme_service is None:
            self._notify("Sign in to save memes", "error")
            return False

        with self._busy_scope():
            try:
                png = encode_png(self.render())
                self._meme_service.save_meme(
                    png, self._model.to_payload(), request, self._ai_metadata
                )
            except CompositingError as e:
                self._logger.error(f"Save aborted, render failed: {e}")
                self._notify(str(e) or "Failed to render meme", "error")
                return False
            except ApiError as e:
                self._logger.error(f"Save failed: {e.message}")
                self._notify(e.message or "Failed to save meme", "error")
                return False

        self._notify("Meme saved to your collection", "success")
        return True

    def download(self, folder: Optional[Path] = None) -> Optional[Path]:
        """Render and write the meme as a PNG into the save folder."""
        if self._busy:
            return None

        with self._busy_scope():
            try:
                image = self.render()
            except CompositingError as e:
                self._logger.error(f"Download aborted: {e}")
                self._notify(str(e) or "Failed to render meme", "error")
                return None

            target_dir = Path(folder or self._save_folder)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = target_dir / f"memeforge_{timestamp}.png"
            try:
                target_dir.mkdir(parents=True, exist_ok=True)
                path.write_bytes(encode_png(image))
            except (OSError, CompositingError) as e:
                self._logger.error(f"Failed to write {path}: {e}")
                self._notify("Failed to download meme", "error")
                return None

        self._logger.info(f"Saved to {path}")
        self._notify(f"Downloaded to {path}", "success")
        return path

    def share(self) -> bool:
        """
        Share the rendered meme.

        Tries the native share handler first; falls back to opening the
        image in the desktop's default viewer.
        """
        if self._busy:
            return False

        with self._busy_scope():
            try:
                png = encode_png(self.render())
            except CompositingError as e:
                self._logger.error(f"Share aborted: {e}")
                self._notify(str(e) or "Failed to render meme", "error")
                return False

            if self._share_handler is not None:
                try:
                    shared = self._share_handler(png)
                except Exception as e:
                    self._logger.error(f"Native share failed, opening viewer instead: {e}")
                    shared = False
                if shared:
                    self._logger.info("Shared via native handler")
                    return True

            try:
                if self._share_dir is None:
                    self._share_dir = tempfile.TemporaryDirectory(prefix="memeforge_share_")
                with tempfile.NamedTemporaryFile(
                    prefix="memeforge_", suffix=".png", dir=self._share_dir.name, delete=False
                ) as f:
                    f.write(png)
                    path = Path(f.name)
            except OSError as e:
                self._logger.error(f"Could not write share file: {e}")
                self._notify("Failed to share meme", "error")
                return False

            if not QDesktopServices.openUrl(QUrl.fromLocalFile(str(path))):
                self._notify("Failed to share meme", "error")
                return False

        self._logger.info(f"Opened {path} for sharing")
        return True

    def close(self) -> None:
        """Remove the files written for sharing during this session."""
        if self._share_dir is not None:
            self._share_dir.cleanup()
            self._share_dir = None
            self._logger.debug("Share files removed")
