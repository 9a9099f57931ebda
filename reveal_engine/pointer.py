"""Pointer events and their mapping into surface-local pixel coordinates."""

from dataclasses import dataclass, field
from typing import NamedTuple, Optional


class StrokePoint(NamedTuple):
    x: float
    y: float


@dataclass
class Touch:
    client_x: float
    client_y: float


@dataclass
class PointerEvent:
    """Mouse or touch input. Touch events carry `touches`; mouse events don't."""
    type: str                      # "mousedown", "touchmove", ...
    client_x: float = 0.0
    client_y: float = 0.0
    touches: Optional[list[Touch]] = None
    default_prevented: bool = field(default=False, compare=False)

    @classmethod
    def mouse(cls, type_: str, x: float, y: float) -> "PointerEvent":
        return cls(type=type_, client_x=x, client_y=y)

    @classmethod
    def touch(cls, type_: str, *points: tuple[float, float]) -> "PointerEvent":
        return cls(type=type_, touches=[Touch(x, y) for x, y in points])

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class BoundingBox:
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def contains(self, point: StrokePoint) -> bool:
        """True if a surface-local point lies inside this box's extent."""
        return 0 <= point.x < self.width and 0 <= point.y < self.height


def map_pointer(event: PointerEvent, box: BoundingBox) -> Optional[StrokePoint]:
    """Client coordinates of the event (first touch point for touch input)
    translated to the box origin.

    No scaling is applied: if the rendered box differs in size from the mask
    buffer, coordinates are used as-is. Touch events with no touch points
    (touchend) have no position and map to None.
    """
    if event.touches is not None and not event.touches:
        return None
    if event.touches:
        client_x, client_y = event.touches[0].client_x, event.touches[0].client_y
    else:
        client_x, client_y = event.client_x, event.client_y
    return StrokePoint(client_x - box.left, client_y - box.top)
