"""
Overlay Resolver - draw instructions -> concrete chart geometry.

The model may place a point by bar index, by timestamp, by absolute price
or by normalized image coordinates. The resolver turns every instruction
into a ResolvedOverlay whose anchors are plain {bar_index, price} pairs.

Failure policy: an instruction whose required anchors cannot be resolved is
dropped and logged. One bad annotation never aborts the decision or the
remaining overlays.

The mapper passed in must be built from the same bar window the model saw.
Otherwise the geometry still resolves, but means nothing.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, assert_never

from chartlens.chart.coord_mapper import CoordinateMapper
from chartlens.core.config import Settings, get_settings
from chartlens.core.exceptions import OverlaySkipped
from chartlens.domain.decision import AnchorMode, AnchorPoint, DrawInstruction, DrawKind
from chartlens.domain.overlay import (
    HorizontalLineOverlay,
    LabelOverlay,
    MarkerOverlay,
    MarkerPosition,
    MarkerShape,
    PolylineOverlay,
    RayOverlay,
    ResolvedOverlay,
    ResolvedPoint,
    SegmentOverlay,
    TextAnnotation,
    VerticalSpanOverlay,
)
from chartlens.domain.vocabulary import Vocabulary, get_vocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedInstruction:
    """An instruction the resolver dropped, and why."""
    index: int
    kind: DrawKind
    reason: str

    @classmethod
    def from_error(cls, error: OverlaySkipped, kind: DrawKind) -> "SkippedInstruction":
        return cls(error.index, kind, error.reason)

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "type": self.kind.value, "reason": self.reason}


@dataclass(frozen=True)
class OverlayResolution:
    """Everything one resolution pass produced."""
    overlays: Tuple[ResolvedOverlay, ...] = ()
    text_annotations: Tuple[TextAnnotation, ...] = ()
    skipped: Tuple[SkippedInstruction, ...] = field(default_factory=tuple)


class OverlayResolver:
    """
    Stateless resolver. Safe to call repeatedly with the same mapper.

    Normalized model coordinates arrive on a 0..scale axis
    (Settings.normalized_coord_scale) and are divided down to 0..1 here.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        vocabulary: Optional[Vocabulary] = None,
        coord_scale: Optional[float] = None
    ):
        self.settings = settings or get_settings()
        self.vocabulary = vocabulary or get_vocabulary()
        self.coord_scale = coord_scale or self.settings.normalized_coord_scale

    def resolve(
        self,
        instructions: Iterable[DrawInstruction],
        mapper: CoordinateMapper
    ) -> List[ResolvedOverlay]:
        """Resolve instructions, dropping the ones that cannot be placed."""
        return list(self.resolve_all(instructions, mapper).overlays)

    def resolve_all(
        self,
        instructions: Iterable[DrawInstruction],
        mapper: CoordinateMapper
    ) -> OverlayResolution:
        """
        Resolve instructions and collect text annotations and skips.

        Horizontal lines that carry text also yield a TextAnnotation keyed by
        their resolved price.
        """
        overlays: List[ResolvedOverlay] = []
        annotations: List[TextAnnotation] = []
        skipped: List[SkippedInstruction] = []

        for index, instruction in enumerate(instructions):
            try:
                overlay = self.resolve_one(instruction, mapper)
            except OverlaySkipped as e:
                e.index = index
                logger.info(f"Skipping overlay #{index} ({instruction.kind.value}): {e.reason}")
                skipped.append(SkippedInstruction.from_error(e, instruction.kind))
                continue

            overlays.append(overlay)
            if isinstance(overlay, HorizontalLineOverlay) and overlay.text:
                annotations.append(TextAnnotation(overlay.price, overlay.text, overlay.color))

        if skipped:
            logger.debug(f"Resolved {len(overlays)} overlay(s), skipped {len(skipped)}")

        return OverlayResolution(tuple(overlays), tuple(annotations), tuple(skipped))

    def resolve_one(self, instruction: DrawInstruction, mapper: CoordinateMapper) -> ResolvedOverlay:
        """
        Resolve a single instruction.

        Raises:
            OverlaySkipped: If the anchors this kind needs cannot be resolved
        """
        kind = instruction.kind
        style = {
            "kind": kind,
            "color": instruction.color,
            "width": instruction.width,
            "text": instruction.text,
        }

        match kind:
            case DrawKind.HORIZONTAL_LINE:
                price = self._horizontal_price(instruction, mapper)
                return HorizontalLineOverlay(price=price, **style)

            case DrawKind.TREND_LINE | DrawKind.PARALLEL_CHANNEL:
                start = self._require(instruction.start, "from", instruction, mapper)
                end = self._require(instruction.end, "to", instruction, mapper)
                return SegmentOverlay(
                    start=start,
                    end=end,
                    channel_width=instruction.channel_width,
                    **style
                )

            case DrawKind.RAY_LINE:
                start = self._require(instruction.start, "from", instruction, mapper)
                return RayOverlay(start=start, **style)

            case DrawKind.POLYLINE:
                points = self._polyline_points(instruction, mapper)
                return PolylineOverlay(points=points, **style)

            case DrawKind.MARKER:
                position = self._require(instruction.position, "position", instruction, mapper)
                shape = self._marker_shape(instruction.shape)
                return MarkerOverlay(
                    position=position,
                    shape=shape,
                    marker_position=self._marker_position(instruction.marker_position, shape),
                    **style
                )

            case DrawKind.LABEL:
                position = self._require(instruction.position, "position", instruction, mapper)
                return LabelOverlay(position=position, **style)

            case DrawKind.VERTICAL_SPAN:
                start_index, end_index = self._span_bounds(instruction, mapper)
                return VerticalSpanOverlay(
                    start_bar_index=start_index,
                    end_bar_index=end_index,
                    **style
                )

            case _:
                assert_never(kind)

    # =========================================================================
    # Anchors
    # =========================================================================

    def resolve_anchor(
        self,
        anchor: Optional[AnchorPoint],
        mode: AnchorMode,
        mapper: CoordinateMapper
    ) -> Optional[ResolvedPoint]:
        """
        Resolve one anchor to {bar_index, price}, or None.

        Precedence: bar_index, then timestamp, then normalized (x, y) under
        normalized mode. A missing price on a business anchor takes the
        close of the bar it points at.
        """
        if anchor is None:
            return None

        if anchor.bar_index is not None:
            bar_index = mapper.clamp_bar_index(anchor.bar_index)
            price = anchor.price if anchor.price is not None else mapper.bars[bar_index].close
            return ResolvedPoint(bar_index, price)

        if anchor.timestamp is not None:
            bar_index = mapper.time_to_bar_index(anchor.timestamp)
            price = anchor.price if anchor.price is not None else mapper.bars[bar_index].close
            return ResolvedPoint(bar_index, price)

        if mode == AnchorMode.NORMALIZED and anchor.has_normalized:
            x = self._to_unit(anchor.x_norm)
            y = self._to_unit(anchor.y_norm)
            bar_index = mapper.normalized_x_to_bar_index(x)
            price = mapper.normalized_to_value(x, y).price
            return ResolvedPoint(bar_index, price)

        return None

    def _require(
        self,
        anchor: Optional[AnchorPoint],
        name: str,
        instruction: DrawInstruction,
        mapper: CoordinateMapper
    ) -> ResolvedPoint:
        if anchor is None:
            raise OverlaySkipped(instruction.kind.value, f"missing '{name}' anchor")
        point = self.resolve_anchor(anchor, instruction.mode, mapper)
        if point is None:
            raise OverlaySkipped(
                instruction.kind.value,
                f"'{name}' anchor cannot be resolved in {instruction.mode.value} mode"
            )
        return point

    def _to_unit(self, value: float) -> float:
        return max(0.0, min(1.0, value / self.coord_scale))

    # =========================================================================
    # Kind-specific geometry
    # =========================================================================

    def _horizontal_price(self, instruction: DrawInstruction, mapper: CoordinateMapper) -> float:
        if instruction.price is not None:
            return instruction.price
        if instruction.mode == AnchorMode.NORMALIZED and instruction.y_norm is not None:
            return mapper.normalized_to_value(0.5, self._to_unit(instruction.y_norm)).price
        raise OverlaySkipped(instruction.kind.value, "no price and no usable y_norm")

    def _polyline_points(
        self,
        instruction: DrawInstruction,
        mapper: CoordinateMapper
    ) -> Tuple[ResolvedPoint, ...]:
        resolved = []
        for point in instruction.points or ():
            anchor = self.resolve_anchor(point, instruction.mode, mapper)
            if anchor is not None:
                resolved.append(anchor)

        if len(resolved) < 2:
            raise OverlaySkipped(
                instruction.kind.value,
                f"only {len(resolved)} resolvable point(s), need at least 2"
            )
        return tuple(resolved)

    def _span_bounds(self, instruction: DrawInstruction, mapper: CoordinateMapper) -> Tuple[int, int]:
        start = self._span_bound(instruction.start_bar_index, instruction.start_x_norm, mapper)
        end = self._span_bound(instruction.end_bar_index, instruction.end_x_norm, mapper)
        if start is None or end is None:
            raise OverlaySkipped(instruction.kind.value, "span needs a start and an end boundary")
        return (start, end) if start <= end else (end, start)

    def _span_bound(
        self,
        bar_index: Optional[int],
        x_norm: Optional[float],
        mapper: CoordinateMapper
    ) -> Optional[int]:
        if bar_index is not None:
            return mapper.clamp_bar_index(bar_index)
        if x_norm is not None:
            return mapper.normalized_x_to_bar_index(self._to_unit(x_norm))
        return None

    def _marker_shape(self, raw: Optional[str]) -> MarkerShape:
        result = self.vocabulary.marker_shape.lookup(raw)
        if result.recognized and result.value:
            try:
                return MarkerShape(result.value)
            except ValueError:
                pass
        return MarkerShape.ARROW_UP

    def _marker_position(self, raw: Optional[str], shape: MarkerShape) -> MarkerPosition:
        result = self.vocabulary.marker_position.lookup(raw)
        if result.recognized and result.value:
            try:
                return MarkerPosition(result.value)
            except ValueError:
                pass
        # Up arrows sit under the bar, everything else above it
        return MarkerPosition.BELOW if shape == MarkerShape.ARROW_UP else MarkerPosition.ABOVE
