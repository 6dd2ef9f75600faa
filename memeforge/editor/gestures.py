"""
Pointer gesture controller for the MemeForge editor.

Turns a stream of pointer press/move/release calls into overlay mutations.
Three gestures exist, and because a single pointer drives them only one
can be active at a time:

- Drag-move: press on an overlay body, position follows the pointer while
  keeping the grab offset captured at press time.
- Resize: press on the right, bottom or corner handle; size follows the
  pointer delta, clamped to the model's minimum size.
- Rotate: press on the rotate handle; rotation follows the angle swept
  around the overlay center.

The controller knows nothing about Qt events. EditorCanvas owns event
delivery and calls begin_*/update/end in surface-local coordinates.
"""

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from PySide6.QtCore import QPointF

from memeforge.editor.overlays import MIN_HEIGHT, MIN_WIDTH, OverlayModel
from memeforge.services.logging_service import get_logger


class GestureMode(Enum):
    """State of the gesture state machine."""
    IDLE = auto()
    DRAGGING = auto()
    RESIZING = auto()
    ROTATING = auto()


class ResizeDirection(Enum):
    """Resize handles exposed by a selected overlay."""
    RIGHT = "right"
    BOTTOM = "bottom"
    CORNER = "corner"


@dataclass(frozen=True)
class DragState:
    overlay_id: int
    grab_offset: QPointF  # pointer - overlay position at press time


@dataclass(frozen=True)
class ResizeState:
    overlay_id: int
    start_pointer: QPointF
    start_width: float
    start_height: float
    direction: ResizeDirection


@dataclass(frozen=True)
class RotateState:
    overlay_id: int
    center: QPointF
    start_angle: float  # radians
    start_rotation: float  # degrees


GestureState = Union[DragState, ResizeState, RotateState]


def resized(
    start_width: float,
    start_height: float,
    dx: float,
    dy: float,
    direction: ResizeDirection,
) -> tuple:
    """Return the clamped (width, height) for a resize delta."""
    width, height = start_width, start_height
    if direction in (ResizeDirection.RIGHT, ResizeDirection.CORNER):
        width = max(MIN_WIDTH, start_width + dx)
    if direction in (ResizeDirection.BOTTOM, ResizeDirection.CORNER):
        height = max(MIN_HEIGHT, start_height + dy)
    return width, height


def pointer_angle(center: QPointF, pointer: QPointF) -> float:
    """Angle of the pointer around ``center`` in radians."""
    return math.atan2(pointer.y() - center.y(), pointer.x() - center.x())


class GestureController:
    """
    Single-pointer state machine driving move/resize/rotate on an OverlayModel.

    Drag is scoped to the editor surface: leaving it ends the drag.
    Resize and rotate are scoped to the whole window: they survive the
    pointer leaving the surface and end only on release.
    """

    def __init__(self, model: OverlayModel) -> None:
        self._logger = get_logger(__name__)
        self._model = model
        self._state: Optional[GestureState] = None

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def mode(self) -> GestureMode:
        if isinstance(self._state, DragState):
            return GestureMode.DRAGGING
        if isinstance(self._state, ResizeState):
            return GestureMode.RESIZING
        if isinstance(self._state, RotateState):
            return GestureMode.ROTATING
        return GestureMode.IDLE

    @property
    def active_id(self) -> Optional[int]:
        """Id of the overlay being manipulated, if any."""
        return self._state.overlay_id if self._state else None

    @property
    def is_active(self) -> bool:
        return self._state is not None

    # ─── Gesture start ────────────────────────────────────────────────────

    def begin_drag(self, overlay_id: int, pointer: QPointF) -> bool:
        overlay = self._model.get(overlay_id)
        if overlay is None:
            return False

        self.end()
        self._state = DragState(
            overlay_id=overlay_id,
            grab_offset=QPointF(pointer.x() - overlay.x, pointer.y() - overlay.y),
        )
        self._logger.debug(f"Drag started on overlay {overlay_id}")
        return True

    def begin_resize(
        self,
        overlay_id: int,
        pointer: QPointF,
        direction: ResizeDirection,
    ) -> bool:
        overlay = self._model.get(overlay_id)
        if overlay is None:
            return False

        self.end()
        self._state = ResizeState(
            overlay_id=overlay_id,
            start_pointer=QPointF(pointer),
            start_width=overlay.width,
            start_height=overlay.height,
            direction=direction,
        )
        self._logger.debug(f"Resize ({direction.value}) started on overlay {overlay_id}")
        return True

    def begin_rotate(
        self,
        overlay_id: int,
        pointer: QPointF,
        center: Optional[QPointF] = None,
    ) -> bool:
        """
        Start rotating.

        Args:
            center: Rotation center in the pointer's coordinate space. Captured
                once for the whole gesture; defaults to the overlay's box center.
        """
        overlay = self._model.get(overlay_id)
        if overlay is None:
            return False

        self.end()
        center = QPointF(center) if center is not None else overlay.center
        self._state = RotateState(
            overlay_id=overlay_id,
            center=center,
            start_angle=pointer_angle(center, pointer),
            start_rotation=overlay.rotation,
        )
        self._logger.debug(f"Rotate started on overlay {overlay_id}")
        return True

    # ─── Gesture progress ─────────────────────────────────────────────────

    def update(self, pointer: QPointF) -> None:
        """Apply a pointer move to the active gesture, if any."""
        state = self._state
        if state is None:
            return

        if isinstance(state, DragState):
            self._model.update(
                state.overlay_id,
                x=pointer.x() - state.grab_offset.x(),
                y=pointer.y() - state.grab_offset.y(),
            )
        elif isinstance(state, ResizeState):
            width, height = resized(
                state.start_width,
                state.start_height,
                pointer.x() - state.start_pointer.x(),
                pointer.y() - state.start_pointer.y(),
                state.direction,
            )
            self._model.update(state.overlay_id, width=width, height=height)
        elif isinstance(state, RotateState):
            delta = math.degrees(pointer_angle(state.center, pointer) - state.start_angle)
            self._model.update(state.overlay_id, rotation=state.start_rotation + delta)

        if state.overlay_id not in self._model:
            # Overlay removed mid-gesture
            self._state = None

    # ─── Gesture end ──────────────────────────────────────────────────────

    def end(self) -> None:
        """Pointer released anywhere: finish whatever gesture is active."""
        if self._state is not None:
            self._logger.debug(f"{self.mode.name.title()} ended on overlay {self._state.overlay_id}")
        self._state = None

    def pointer_left_surface(self) -> None:
        """Pointer left the editor surface: only a drag is released."""
        if isinstance(self._state, DragState):
            self.end()

    # ─── Selection ────────────────────────────────────────────────────────

    def click(self, overlay_id: int) -> None:
        """Click (press + release without a gesture) on an overlay selects it."""
        self._model.select(overlay_id)

    def click_background(self) -> None:
        """Click on the surface outside every overlay clears the selection."""
        self._model.select(None)
