"""
Pointer tracking and screen-to-canvas coordinate mapping.

The last pointer event observed on the rendering surface is kept in a
``PointerTracker``. ``CoordinateMapper`` turns that event into canvas-space
coordinates, preferring the surface's transform matrix and degrading through
metric-based approximations down to the viewport centre.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .models import Point


logger = logging.getLogger(__name__)

TRACKING_MARKER = "_clipboard_tracking_attached"


@dataclass(frozen=True)
class PointerEvent:
    """A pointer position in screen (client) coordinates."""
    client_x: float
    client_y: float


class PointerTracker:
    """Holds the most recent pointer event.

    The movement listener is the only writer and the coordinate mapper the
    only reader; the latest write wins.
    """

    def __init__(self):
        self._last_event: Optional[PointerEvent] = None

    @property
    def last_event(self) -> Optional[PointerEvent]:
        return self._last_event

    def record(self, event: Any) -> None:
        """Listener callback: keep the event, discarding any earlier one."""
        if not isinstance(event, PointerEvent):
            event = PointerEvent(float(event.client_x), float(event.client_y))
        self._last_event = event

    def reset(self) -> None:
        self._last_event = None


default_tracker = PointerTracker()


@dataclass(frozen=True)
class TransformMatrix:
    """2-D affine transform in SVG matrix form.

    Maps ``(x, y)`` to ``(a*x + c*y + e, b*x + d*y + f)``.
    """
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> 'TransformMatrix':
        return cls()

    @classmethod
    def scale_translate(cls, scale: float, tx: float, ty: float) -> 'TransformMatrix':
        return cls(scale, 0.0, 0.0, scale, tx, ty)

    @classmethod
    def coerce(cls, matrix: Any) -> 'TransformMatrix':
        """Accept a TransformMatrix, an object with a..f attributes, or a 6-sequence."""
        if isinstance(matrix, TransformMatrix):
            return matrix
        if isinstance(matrix, Sequence) and len(matrix) == 6:
            return cls(*(float(v) for v in matrix))
        return cls(*(float(getattr(matrix, name)) for name in 'abcdef'))

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def inverse(self) -> 'TransformMatrix':
        """Return the inverse transform; raises ValueError when singular."""
        det = self.determinant
        if det == 0:
            raise ValueError("Transform matrix is not invertible")
        return TransformMatrix(
            a=self.d / det,
            b=-self.b / det,
            c=-self.c / det,
            d=self.a / det,
            e=(self.c * self.f - self.d * self.e) / det,
            f=(self.b * self.e - self.a * self.f) / det,
        )

    def apply(self, x: float, y: float) -> Point:
        return Point(
            self.a * x + self.c * y + self.e,
            self.b * x + self.d * y + self.f,
        )


def _read(source: Any, name: str, default: Any = None) -> Any:
    """Read a metric from a mapping or an attribute-style object."""
    if source is None:
        return default
    if isinstance(source, dict):
        value = source.get(name, default)
    else:
        value = getattr(source, name, default)
    return default if value is None else value


def _call(owner: Any, method_name: str, *args) -> Any:
    """Call an optional host method; None when the host lacks it."""
    method = getattr(owner, method_name, None)
    if not callable(method):
        return None
    return method(*args)


def attach_pointer_tracking(canvas: Any, tracker: Optional[PointerTracker] = None) -> bool:
    """Register a passive pointer-move listener on the canvas surface, once per surface."""
    tracker = tracker or default_tracker
    try:
        surface = _call(canvas, 'get_parent_svg')
        if surface is None or getattr(surface, TRACKING_MARKER, False):
            return False
        surface.add_event_listener("pointermove", tracker.record)
        setattr(surface, TRACKING_MARKER, True)
        return True
    except Exception as e:
        logger.warning(f"attach_pointer_tracking failed: {e}")
        return False


class CoordinateMapper:
    """Resolves the last pointer position into canvas-space coordinates."""

    def __init__(self, tracker: Optional[PointerTracker] = None):
        self.tracker = tracker or default_tracker
        self.logger = logging.getLogger(__name__)

    def resolve(self, canvas: Any) -> Point:
        """Resolve the pointer's canvas position, degrading through the fallback chain."""
        event = self.tracker.last_event
        if event is None:
            return self.viewport_center(canvas)

        try:
            point = self.from_transform(canvas, event)
            if point is not None:
                return point
        except Exception as e:
            self.logger.debug(f"Transform mapping unavailable: {e}")

        try:
            point = self.from_metrics(canvas, event)
            if point is not None:
                return point
        except Exception as e:
            self.logger.warning(f"Metric-based pointer mapping failed: {e}")

        return self.viewport_center(canvas)

    def from_transform(self, canvas: Any, event: PointerEvent) -> Optional[Point]:
        """Invert the transform node's screen matrix and apply it to the pointer."""
        surface = None
        try:
            surface = _call(canvas, 'get_canvas')
        except Exception as e:
            self.logger.debug(f"get_canvas failed: {e}")
        if surface is None:
            surface = _call(canvas, 'query_canvas')
        if surface is None:
            return None

        ctm = _call(surface, 'get_screen_ctm')
        if ctm is None:
            return None
        inverse = TransformMatrix.coerce(ctm).inverse()
        return inverse.apply(event.client_x, event.client_y)

    def from_metrics(self, canvas: Any, event: PointerEvent) -> Optional[Point]:
        """Approximate via bounding box, scale and scroll; exact only without rotation or skew."""
        svg = _call(canvas, 'get_parent_svg')
        rect = _call(svg, 'get_bounding_client_rect') if svg is not None else None
        metrics = _call(canvas, 'get_metrics')
        if rect is None or metrics is None:
            return None

        relative_x = event.client_x - _read(rect, 'left', 0)
        relative_y = event.client_y - _read(rect, 'top', 0)
        scale = getattr(canvas, 'scale', None) or 1
        scroll_x = _read(metrics, 'view_left', getattr(canvas, 'scroll_x', 0) or 0)
        scroll_y = _read(metrics, 'view_top', getattr(canvas, 'scroll_y', 0) or 0)

        return Point(scroll_x + relative_x / scale, scroll_y + relative_y / scale)

    def viewport_center(self, canvas: Any) -> Point:
        """Centre of the visible viewport; the origin when metrics are unavailable."""
        try:
            metrics = _call(canvas, 'get_metrics')
            if metrics is None:
                return Point(0, 0)
            return Point(
                _read(metrics, 'view_left', 0) + _read(metrics, 'view_width', 0) / 2,
                _read(metrics, 'view_top', 0) + _read(metrics, 'view_height', 0) / 2,
            )
        except Exception as e:
            self.logger.warning(f"Viewport metrics unavailable: {e}")
            return Point(0, 0)


def resolve_pointer_canvas_position(canvas: Any, tracker: Optional[PointerTracker] = None) -> Point:
    """Resolve the last observed pointer position on ``canvas`` in canvas-space units."""
    return CoordinateMapper(tracker).resolve(canvas)
