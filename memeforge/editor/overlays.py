"""
Text overlay model for the MemeForge editor.

A TextOverlay is one movable, resizable, rotatable text box placed on the
base image. OverlayModel keeps them in insertion order (which is also the
z-order: later overlays paint on top) and tracks the single selection.

The model performs no I/O. Updates to unknown ids are silently ignored,
matching the forgiving behaviour expected of UI state.
"""

import itertools
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from PySide6.QtCore import QPointF, QRectF

from memeforge.services.logging_service import get_logger

logger = get_logger(__name__)

MIN_WIDTH = 40
MIN_HEIGHT = 20

DEFAULT_TEXT = "New Text"
DEFAULT_POSITION = (50.0, 50.0)
DEFAULT_WIDTH = 200
DEFAULT_HEIGHT = 40

COLORS = ["#FFFFFF", "#000000", "#FF0000", "#FFFF00", "#00FF00", "#00BFFF", "#FF69B4"]
FONTS = ["Impact", "Arial", "Comic Sans MS", "Times New Roman", "Courier New", "Verdana"]
MIN_FONT_SIZE = 16
MAX_FONT_SIZE = 64

# Python attribute -> JSON key used by the backend
_WIRE_NAMES = {"font_size": "fontSize"}


@dataclass
class TextOverlay:
    """One text element on the editor surface (surface-local pixels)."""
    id: int
    text: str = DEFAULT_TEXT
    x: float = DEFAULT_POSITION[0]
    y: float = DEFAULT_POSITION[1]
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT
    rotation: float = 0.0  # degrees, about the box center
    color: str = COLORS[0]
    font: str = FONTS[0]
    font_size: int = 32

    def __post_init__(self) -> None:
        self.width = max(MIN_WIDTH, self.width)
        self.height = max(MIN_HEIGHT, self.height)

    @property
    def position(self) -> QPointF:
        return QPointF(self.x, self.y)

    @property
    def rect(self) -> QRectF:
        """Unrotated bounding box."""
        return QRectF(self.x, self.y, self.width, self.height)

    @property
    def center(self) -> QPointF:
        return QPointF(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n")

    def to_dict(self) -> Dict[str, Any]:
        return {_WIRE_NAMES.get(f.name, f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextOverlay":
        kwargs = {}
        for f in fields(cls):
            key = _WIRE_NAMES.get(f.name, f.name)
            if key in data:
                kwargs[f.name] = data[key]
        return cls(**kwargs)


_FIELD_NAMES = frozenset(f.name for f in fields(TextOverlay))


class OverlayModel:
    """
    Ordered collection of TextOverlay records plus the exclusive selection.

    Listeners registered with ``subscribe`` are called after every mutation
    so views can re-render.
    """

    def __init__(self) -> None:
        self._overlays: List[TextOverlay] = []
        self._selected_id: Optional[int] = None
        self._ids = itertools.count(1)
        self._listeners: List[Callable[[], None]] = []

    # ─── Observation ──────────────────────────────────────────────────────

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ─── Queries ──────────────────────────────────────────────────────────

    @property
    def overlays(self) -> List[TextOverlay]:
        """Snapshot copies in z-order (bottom first)."""
        return [replace(o) for o in self._overlays]

    @property
    def selected_id(self) -> Optional[int]:
        return self._selected_id

    @property
    def selected(self) -> Optional[TextOverlay]:
        return self.get(self._selected_id) if self._selected_id is not None else None

    def __len__(self) -> int:
        return len(self._overlays)

    def __contains__(self, overlay_id: int) -> bool:
        return self._find(overlay_id) is not None

    def get(self, overlay_id: int) -> Optional[TextOverlay]:
        """Return a copy of the overlay, or None."""
        overlay = self._find(overlay_id)
        return replace(overlay) if overlay else None

    def is_selected(self, overlay_id: int) -> bool:
        return self._selected_id == overlay_id

    def _find(self, overlay_id: Optional[int]) -> Optional[TextOverlay]:
        for overlay in self._overlays:
            if overlay.id == overlay_id:
                return overlay
        return None

    # ─── Mutations ────────────────────────────────────────────────────────

    def add(self, **defaults: Any) -> int:
        """
        Append a new overlay on top of the others.

        Args:
            **defaults: Field values overriding the TextOverlay defaults.

        Returns:
            The new overlay's id (never reused within this model).
        """
        defaults.pop("id", None)
        overlay = TextOverlay(id=next(self._ids), **defaults)
        self._overlays.append(overlay)
        self._notify()
        return overlay.id

    def update(self, overlay_id: int, **changes: Any) -> None:
        """Merge ``changes`` into the overlay; unknown ids are ignored."""
        overlay = self._find(overlay_id)
        if overlay is None:
            return

        changes.pop("id", None)
        for name, value in changes.items():
            if name not in _FIELD_NAMES:
                logger.warning(f"Ignoring unknown overlay field '{name}'")
                continue
            setattr(overlay, name, value)

        overlay.width = max(MIN_WIDTH, overlay.width)
        overlay.height = max(MIN_HEIGHT, overlay.height)
        self._notify()

    def remove(self, overlay_id: int) -> None:
        """Delete the overlay; no-op if it does not exist."""
        overlay = self._find(overlay_id)
        if overlay is None:
            return

        self._overlays.remove(overlay)
        if self._selected_id == overlay_id:
            self._selected_id = None
        self._notify()

    def select(self, overlay_id: Optional[int]) -> None:
        """Select one overlay, or clear the selection with None."""
        new_id = overlay_id if self._find(overlay_id) is not None else None
        if new_id == self._selected_id:
            return
        self._selected_id = new_id
        self._notify()

    def clear(self) -> None:
        """Remove every overlay. Ids keep counting up."""
        self._overlays.clear()
        self._selected_id = None
        self._notify()

    # ─── Serialization ────────────────────────────────────────────────────

    def to_payload(self) -> List[Dict[str, Any]]:
        return [o.to_dict() for o in self._overlays]

    def load_payload(self, payload: Iterable[Dict[str, Any]]) -> None:
        """Replace the collection with saved overlays, assigning fresh ids."""
        self._overlays.clear()
        self._selected_id = None
        for data in payload:
            data = dict(data)
            data.pop("id", None)
            self._overlays.append(TextOverlay.from_dict({"id": next(self._ids), **data}))
        self._notify()
