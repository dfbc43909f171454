"""
Vision-Decision Pipeline - raw model text -> Decision + resolved overlays.

Wires the four components in their fixed order:

    text -> DecisionExtractor -> DecisionValidator -> OverlayResolver
                                                       ^
                                   CoordinateMapper ---+

The mapper must describe the same bar window the chart image showed.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from chartlens.agent.decision_extractor import DecisionExtractor
from chartlens.agent.decision_validator import DecisionValidator
from chartlens.chart.coord_mapper import CoordinateMapper
from chartlens.chart.overlay_resolver import OverlayResolver, SkippedInstruction
from chartlens.core.config import Settings, get_settings
from chartlens.core.exceptions import InvalidDecisionSchema, MalformedModelOutput
from chartlens.domain.bars import Bar
from chartlens.domain.decision import Decision
from chartlens.domain.overlay import ResolvedOverlay, TextAnnotation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Everything the renderer needs from one model response."""
    decision: Decision
    overlays: Tuple[ResolvedOverlay, ...]
    text_annotations: Tuple[TextAnnotation, ...]
    skipped: Tuple[SkippedInstruction, ...]
    raw_text: str
    json_text: str
    default_leverage: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.to_dict(self.default_leverage),
            "overlays": [o.to_dict() for o in self.overlays],
            "text_annotations": [a.to_dict() for a in self.text_annotations],
            "skipped": [s.to_dict() for s in self.skipped],
        }


class VisionDecisionPipeline:
    """Stateless orchestration of extractor, validator and resolver."""

    def __init__(
        self,
        extractor: Optional[DecisionExtractor] = None,
        validator: Optional[DecisionValidator] = None,
        resolver: Optional[OverlayResolver] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.extractor = extractor or DecisionExtractor()
        self.validator = validator or DecisionValidator(settings=self.settings)
        self.resolver = resolver or OverlayResolver(settings=self.settings)

    def build_mapper(self, bars: Sequence[Bar]) -> CoordinateMapper:
        """Mapper for a bar window using the configured chart geometry."""
        return CoordinateMapper(
            bars,
            self.settings.chart_width,
            self.settings.chart_height,
            self.settings.price_padding_ratio
        )

    def run(
        self,
        text: Optional[str],
        *,
        bars: Optional[Sequence[Bar]] = None,
        mapper: Optional[CoordinateMapper] = None,
        reasoning_content: Optional[str] = None
    ) -> PipelineResult:
        """
        Process one model response.

        Args:
            text: The model's answer
            bars: Bar window the chart showed (ignored when mapper is given)
            mapper: Prebuilt mapper for that window
            reasoning_content: Thinking output, used when text is blank

        Returns:
            PipelineResult

        Raises:
            ValueError: If neither bars nor mapper is given
            MalformedModelOutput: If no JSON could be parsed
            InvalidDecisionSchema: If the JSON is not a valid decision
            EmptyChartDomain: If bars is empty
        """
        if mapper is None:
            if bars is None:
                raise ValueError("Either bars or mapper is required")
            mapper = self.build_mapper(bars)

        raw_text = text or ""
        if not raw_text.strip() and reasoning_content:
            logger.debug("Empty model content, extracting from reasoning output")
            raw_text = reasoning_content

        json_text = self.extractor.extract(raw_text)

        try:
            decision = self.validator.validate(json_text)
        except (MalformedModelOutput, InvalidDecisionSchema) as e:
            e.raw_text = raw_text
            e.json_text = json_text
            logger.warning(
                f"Decision rejected: {e} (raw {len(raw_text)} chars, json {len(json_text)} chars)"
            )
            raise

        resolution = self.resolver.resolve_all(decision.draw_instructions, mapper)

        logger.info(
            f"Decision: enter={decision.enter} direction={decision.direction} "
            f"overlays={len(resolution.overlays)} skipped={len(resolution.skipped)}"
        )

        return PipelineResult(
            decision=decision,
            overlays=resolution.overlays,
            text_annotations=resolution.text_annotations,
            skipped=resolution.skipped,
            raw_text=raw_text,
            json_text=json_text,
            default_leverage=self.settings.default_leverage
        )
