"""
Resolved Overlays - Draw instructions with concrete chart geometry.

Every anchor has been replaced by a {bar_index, price} pair, so the
renderer never has to interpret model coordinates. One class per geometry;
ResolvedOverlay is the closed union the resolver produces.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from chartlens.domain.decision import DrawKind


class MarkerShape(str, Enum):
    ARROW_UP = "arrow_up"
    ARROW_DOWN = "arrow_down"
    CIRCLE = "circle"
    SQUARE = "square"


class MarkerPosition(str, Enum):
    ABOVE = "above_bar"
    BELOW = "below_bar"
    INSIDE = "inside_bar"


@dataclass(frozen=True)
class ResolvedPoint:
    """A concrete chart point."""
    bar_index: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"bar_index": self.bar_index, "price": self.price}


@dataclass(frozen=True, kw_only=True)
class _OverlayBase:
    kind: DrawKind
    color: str = "#ffffff"
    width: int = 2
    text: Optional[str] = None

    def _base_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "color": self.color,
            "width": self.width,
            "text": self.text,
        }


@dataclass(frozen=True, kw_only=True)
class HorizontalLineOverlay(_OverlayBase):
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {**self._base_dict(), "price": self.price}


@dataclass(frozen=True, kw_only=True)
class SegmentOverlay(_OverlayBase):
    """trend_line or parallel_channel."""
    start: ResolvedPoint
    end: ResolvedPoint
    channel_width: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self._base_dict(),
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "channel_width": self.channel_width,
        }


@dataclass(frozen=True, kw_only=True)
class RayOverlay(_OverlayBase):
    start: ResolvedPoint

    def to_dict(self) -> Dict[str, Any]:
        return {**self._base_dict(), "start": self.start.to_dict()}


@dataclass(frozen=True, kw_only=True)
class PolylineOverlay(_OverlayBase):
    points: Tuple[ResolvedPoint, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {**self._base_dict(), "points": [p.to_dict() for p in self.points]}


@dataclass(frozen=True, kw_only=True)
class MarkerOverlay(_OverlayBase):
    position: ResolvedPoint
    shape: MarkerShape = MarkerShape.ARROW_UP
    marker_position: MarkerPosition = MarkerPosition.BELOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self._base_dict(),
            "start": self.position.to_dict(),
            "shape": self.shape.value,
            "position": self.marker_position.value,
        }


@dataclass(frozen=True, kw_only=True)
class LabelOverlay(_OverlayBase):
    position: ResolvedPoint

    def to_dict(self) -> Dict[str, Any]:
        return {**self._base_dict(), "start": self.position.to_dict()}


@dataclass(frozen=True, kw_only=True)
class VerticalSpanOverlay(_OverlayBase):
    start_bar_index: int
    end_bar_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self._base_dict(),
            "start_bar_index": self.start_bar_index,
            "end_bar_index": self.end_bar_index,
        }


ResolvedOverlay = Union[
    HorizontalLineOverlay,
    SegmentOverlay,
    RayOverlay,
    PolylineOverlay,
    MarkerOverlay,
    LabelOverlay,
    VerticalSpanOverlay,
]


@dataclass(frozen=True)
class TextAnnotation:
    """Price-level caption composited onto the rendered image."""
    price: float
    text: str
    color: str = "#ffffff"

    def to_dict(self) -> Dict[str, Any]:
        return {"price": self.price, "text": self.text, "color": self.color}
