"""
Lens Prompt Builder - Prompts that carry the decision wire contract.

The validator and the resolver only understand what the model was told to
produce. This module keeps that contract in one place:
- The JSON schema of a decision and its draw instructions
- The normalized coordinate convention (0..scale, top-left origin)
- Chart context derived from the exact bar window that was rendered
"""
from typing import Optional, Sequence

from chartlens.chart.coord_mapper import CoordinateMapper
from chartlens.core.config import Settings, get_settings
from chartlens.domain.bars import Bar
from chartlens.domain.decision import DrawKind

INDICATORS = "BOLL(20,2) / MACD(12,26,9) / ADX(14)"


class LensPromptBuilder:
    """
    Builds the system, user and auxiliary-chart prompts.

    Pure string building. Nothing here talks to a model.
    """

    SYSTEM_TEMPLATE = """You are a disciplined discretionary trader reading a candlestick chart.
Study the image and answer with ONE JSON object and nothing else.

# Output schema
{{
  "enter": true | false,
  "direction": "long" | "short" | null,
  "position_size": number in [0, 1],
  "leverage": number > 0,
  "confidence": number in [0, 1],
  "entry_price": number | "market",
  "stop_loss_price": number | null,
  "take_profit_price": number | null,
  "reason": "short explanation",
  "indicator_views": {{
    "bollinger": {{"bias": "bullish" | "bearish" | "neutral", "note": "..."}},
    "macd": {{"bias": "bullish" | "bearish" | "neutral", "note": "..."}},
    "trend_strength": {{"level": "below_average" | "average" | "above_average", "bias": "...", "note": "..."}}
  }},
  "draw_instructions": [ ... ]
}}

# Draw instructions
Each instruction has a "type" and optional "color", "text" and "width".
{catalogue}

# Coordinates
- Prefer business coordinates: {{"bar_index": n, "price": p}} with "mode": "value".
- Normalized coordinates use "mode": "normalized" with x_norm / y_norm in 0..{scale:g}.
- Normalized origin is the top-left corner: y_norm=0 is the highest price, y_norm={scale:g} the lowest.
- Give a price at key points even when you also give normalized coordinates.

# Rules
- No clear structure means "enter": false.
- When entering, always set stop_loss_price and take_profit_price.
- Use "market" for entry_price only when the current price is the entry."""

    CATALOGUE = {
        DrawKind.HORIZONTAL_LINE: '"price" (or "y_norm")',
        DrawKind.TREND_LINE: '"from" and "to" anchors',
        DrawKind.PARALLEL_CHANNEL: '"from", "to" and "channel_width"',
        DrawKind.RAY_LINE: '"from" anchor',
        DrawKind.POLYLINE: '"points": at least two anchors',
        DrawKind.MARKER: '"position" anchor, "shape" (arrow_up, arrow_down, circle, square), "marker_position" (above_bar, below_bar, inside_bar)',
        DrawKind.LABEL: '"position" anchor and "text"',
        DrawKind.VERTICAL_SPAN: '"start_bar_index"/"end_bar_index" (or "start_x_norm"/"end_x_norm")',
    }

    USER_TEMPLATE = """Analyse this candlestick chart and give your trading decision.

# Chart context
- Symbol: {symbol}
- Timeframe: {timeframe}
- Bars: {bars_count}
- bar_index range: 0 ~ {max_bar_index} (0 = oldest, {max_bar_index} = latest)
- Bars are spread evenly across the chart width; bar n sits at n/{max_bar_index} of the width
- Price range: {price_min} ~ {price_max}
- Current price (latest close): {current_price}
- Indicators drawn on the chart: {indicators}

# Requirements
1. Identify the market structure first and connect swing points with trend_line or polyline.
2. Mark 2-3 support and resistance levels with horizontal_line and an explicit price.
3. If you enter, mark the entry with a marker and SL/TP with horizontal_line.
4. Fill indicator_views for every indicator above.

Return the JSON decision and draw instructions."""

    AUX_TEMPLATE = """The second image is an auxiliary chart: {aux_timeframe} (primary chart is {primary_timeframe}).
Use it to confirm higher-timeframe structure and key levels.
1) Still return exactly one JSON object
2) draw_instructions refer to the primary chart ({primary_timeframe}) only
3) If the auxiliary chart does not support the primary setup, prefer enter=false or a smaller position"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def system_prompt(self) -> str:
        """Role, output schema, draw catalogue and coordinate convention."""
        catalogue = "\n".join(
            f"- {kind.value}: {fields}" for kind, fields in self.CATALOGUE.items()
        )
        return self.SYSTEM_TEMPLATE.format(
            catalogue=catalogue,
            scale=self.settings.normalized_coord_scale
        )

    def user_prompt(self, symbol: str, timeframe: str, bars: Sequence[Bar]) -> str:
        """
        Chart-context prompt for one rendered bar window.

        Args:
            symbol: Instrument shown on the chart
            timeframe: Bar timeframe, e.g. "15m"
            bars: The exact bars that were rendered

        Raises:
            EmptyChartDomain: If bars is empty
        """
        mapper = CoordinateMapper(
            bars,
            self.settings.chart_width,
            self.settings.chart_height,
            self.settings.price_padding_ratio
        )
        return self.USER_TEMPLATE.format(
            symbol=symbol,
            timeframe=timeframe,
            bars_count=mapper.bars_count,
            max_bar_index=max(mapper.bars_count - 1, 1),
            price_min=f"{mapper.min_price:.2f}",
            price_max=f"{mapper.max_price:.2f}",
            current_price=mapper.bars[-1].close,
            indicators=INDICATORS
        )

    def aux_prompt(self, primary_timeframe: str, aux_timeframe: str) -> str:
        """Instructions for a second, higher-timeframe chart."""
        return self.AUX_TEMPLATE.format(
            primary_timeframe=primary_timeframe,
            aux_timeframe=aux_timeframe
        )
