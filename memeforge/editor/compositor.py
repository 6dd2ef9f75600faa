"""
Canvas compositor for MemeForge.

Flattens a base image plus the text overlays into a single QImage for
download, upload, or sharing.

The output is sized to the on-screen preview, not to the image's native
resolution, so overlay coordinates captured in surface-local pixels map
1:1 onto the result.

Base image references come in three forms:
- data: URLs, blob:/file: URLs or absolute local paths, read in process
- http(s) URLs, fetched as-is
- anything else, treated as an asset path under the configured assets URL

A reference that cannot be loaded raises ImageLoadError. The compositor
never returns a blank canvas in place of a missing base image.
"""

import base64
import binascii
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union
from urllib.parse import unquote_to_bytes

import httpx
from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF, QRectF, QSize, Qt, QUrl
from PySide6.QtGui import QColor, QFont, QFontMetricsF, QImage, QPainter

from memeforge.editor.overlays import TextOverlay
from memeforge.services.logging_service import get_logger

LINE_HEIGHT_FACTOR = 1.2
SHADOW_OFFSET = 2
SHADOW_COLOR = QColor(0, 0, 0, 178)  # rgba(0, 0, 0, 0.7)

SizeLike = Union[QSize, Tuple[int, int]]


class CompositingError(Exception):
    """The meme could not be rendered."""
    pass


class ImageLoadError(CompositingError):
    """The base image could not be fetched or decoded."""
    pass


def line_offsets(line_count: int, font_size: float) -> List[float]:
    """
    Vertical offsets of each text line from the box center.

    Lines are stacked as a block centered on the box: line ``i`` of ``n``
    sits at ``(i - (n - 1) / 2) * font_size * 1.2``.
    """
    line_height = font_size * LINE_HEIGHT_FACTOR
    middle = (line_count - 1) / 2
    return [(i - middle) * line_height for i in range(line_count)]


def overlay_font(overlay: TextOverlay) -> QFont:
    """Bold font used both on screen and in the exported image."""
    font = QFont(overlay.font)
    font.setPixelSize(max(1, int(overlay.font_size)))
    font.setBold(True)
    return font


def draw_overlay_text(painter: QPainter, overlay: TextOverlay) -> None:
    """
    Paint an overlay's text with its shadow.

    Translates to the box center and rotates, so the painter state is
    saved and restored around the call.
    """
    painter.save()
    painter.translate(overlay.center)
    painter.rotate(overlay.rotation)

    font = overlay_font(overlay)
    painter.setFont(font)
    metrics = QFontMetricsF(font)
    # Baseline shift that puts the glyphs' vertical middle on the offset
    middle = (metrics.ascent() - metrics.descent()) / 2

    lines = overlay.lines
    for offset, line in zip(line_offsets(len(lines), overlay.font_size), lines):
        if not line:
            continue
        origin = QPointF(-metrics.horizontalAdvance(line) / 2, offset + middle)

        painter.setPen(SHADOW_COLOR)
        painter.drawText(origin + QPointF(SHADOW_OFFSET, SHADOW_OFFSET), line)
        painter.setPen(QColor(overlay.color))
        painter.drawText(origin, line)

    painter.restore()


def encode_png(image: QImage) -> bytes:
    """Encode an image as PNG bytes."""
    if image.isNull():
        raise CompositingError("Cannot encode an empty image")

    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buffer, "PNG")
    buffer.close()

    if not ok:
        raise CompositingError("PNG encoding failed")
    return bytes(data.data())


class ImageLoader:
    """Resolves a base image reference and decodes it into a QImage."""

    def __init__(
        self,
        assets_url: str = "",
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self._logger = get_logger(__name__)
        self._assets_url = assets_url.rstrip("/")
        self._http = http_client
        self._timeout = timeout

    def resolve(self, reference: str) -> str:
        """
        Return the location the reference will be read from.

        Local and absolute references are returned unchanged; asset paths
        are joined onto the assets URL.
        """
        if reference.startswith(("data:", "blob:", "file:", "http://", "https://")):
            return reference
        if Path(reference).is_absolute() and Path(reference).is_file():
            return reference
        if not self._assets_url:
            return reference
        separator = "" if reference.startswith("/") else "/"
        return f"{self._assets_url}{separator}{reference}"

    def load(self, reference: str) -> QImage:
        """
        Load and decode the image.

        Raises:
            ImageLoadError: On empty references, network or file errors, and
                data that does not decode as an image.
        """
        if not reference:
            raise ImageLoadError("No base image selected")

        location = self.resolve(reference)
        data = self._read(location)
        if not data:
            raise ImageLoadError(f"Base image is empty: {self._describe(location)}")

        image = QImage()
        if not image.loadFromData(data):
            raise ImageLoadError(f"Base image could not be decoded: {self._describe(location)}")

        self._logger.debug(
            f"Loaded base image {self._describe(location)}: {image.width()}x{image.height()}"
        )
        return image

    def _read(self, location: str) -> bytes:
        if location.startswith("data:"):
            return self._read_data_url(location)
        if location.startswith(("http://", "https://")):
            return self._fetch(location)
        if location.startswith("file:"):
            return self._read_file(QUrl(location).toLocalFile())
        if location.startswith("blob:"):
            return self._read_file(location[len("blob:"):])
        return self._read_file(location)

    def _read_data_url(self, url: str) -> bytes:
        header, sep, payload = url.partition(",")
        if not sep:
            raise ImageLoadError("Malformed data URL")
        try:
            if header.endswith(";base64"):
                return base64.b64decode(payload, validate=True)
            return unquote_to_bytes(payload)
        except (binascii.Error, ValueError) as e:
            raise ImageLoadError(f"Malformed data URL: {e}") from e

    def _read_file(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise ImageLoadError(f"Could not read {path}: {e}") from e

    def _fetch(self, url: str) -> bytes:
        try:
            if self._http is not None:
                response = self._http.get(url)
            else:
                response = httpx.get(url, timeout=self._timeout, follow_redirects=True)
        except httpx.RequestError as e:
            raise ImageLoadError(f"Could not fetch {url}: {e}") from e

        if not response.is_success:
            raise ImageLoadError(f"Could not fetch {url}: HTTP {response.status_code}")
        return response.content

    @staticmethod
    def _describe(location: str) -> str:
        return location[:40] + "..." if location.startswith("data:") else location


class CanvasCompositor:
    """
    Renders the base image and overlays into one bitmap.

    Overlays are drawn in collection order, so later overlays end up on top.
    """

    def __init__(self, loader: Optional[ImageLoader] = None) -> None:
        self._logger = get_logger(__name__)
        self._loader = loader or ImageLoader()

    @property
    def loader(self) -> ImageLoader:
        return self._loader

    def composite(
        self,
        base: QImage,
        overlays: Iterable[TextOverlay],
        size: SizeLike,
    ) -> QImage:
        """
        Flatten ``base`` and ``overlays`` into a new image of ``size``.

        Args:
            base: Decoded base image; stretched to fill the output.
            overlays: Overlays in z-order, in surface-local coordinates.
            size: Preview size the overlays were positioned against.
        """
        if base.isNull():
            raise CompositingError("Base image is empty")

        width, height = (size.width(), size.height()) if isinstance(size, QSize) else size
        width, height = int(round(width)), int(round(height))
        if width <= 0 or height <= 0:
            raise CompositingError(f"Invalid output size {width}x{height}")

        result = QImage(width, height, QImage.Format.Format_ARGB32)
        result.fill(Qt.GlobalColor.transparent)

        painter = QPainter(result)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

            painter.drawImage(QRectF(0, 0, width, height), base)

            count = 0
            for overlay in overlays:
                draw_overlay_text(painter, overlay)
                count += 1
        finally:
            painter.end()

        self._logger.info(f"Composited {count} overlays onto {width}x{height} canvas")
        return result

    def compose_from_reference(
        self,
        reference: str,
        overlays: Iterable[TextOverlay],
        size: SizeLike,
    ) -> QImage:
        """Load the base image, then composite. Load failures propagate."""
        base = self._loader.load(reference)
        return self.composite(base, overlays, size)
