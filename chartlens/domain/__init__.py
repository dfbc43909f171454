"""Domain module."""
from chartlens.domain.bars import Bar, bars_from_dicts, parse_timestamp
from chartlens.domain.decision import (
    AnchorMode,
    AnchorPoint,
    Decision,
    Direction,
    DrawInstruction,
    DrawKind,
    IndicatorBias,
    IndicatorView,
    IndicatorViews,
    TrendStrengthLevel,
    TrendStrengthView,
)
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
from chartlens.domain.vocabulary import Lookup, SynonymTable, Vocabulary, get_vocabulary, load_vocabulary
