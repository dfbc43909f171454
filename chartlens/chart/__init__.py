"""Chart module - coordinate mapping and overlay resolution."""
from chartlens.chart.coord_mapper import ChartValue, CoordinateMapper, NormalizedPoint
from chartlens.chart.overlay_resolver import OverlayResolution, OverlayResolver, SkippedInstruction
