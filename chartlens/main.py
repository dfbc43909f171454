"""
chartlens - Main Entry Point

Runs one model response through the vision-decision pipeline and prints the
decision plus the resolved overlays as JSON.

Usage:
    python -m chartlens.main [response.txt] [bars.json]

Without arguments a sample BTCUSDT window and a sample response are used.
"""
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from chartlens.agent.pipeline import VisionDecisionPipeline
from chartlens.core.config import get_settings
from chartlens.core.exceptions import ChartLensError
from chartlens.domain.bars import Bar, bars_from_dicts

logger = logging.getLogger(__name__)


def create_sample_bars() -> List[Bar]:
    """
    Hypothetical 15m BTCUSDT window: a rally from 85000, a pullback to
    84000 and a push to 87000, closing just above support at 86800.
    """
    closes = [
        85000, 84900, 84700, 84500, 84300, 84100, 84000, 84200, 84500, 84800,
        85100, 85400, 85700, 86000, 86300, 86600, 86900, 87000, 86900, 86950,
    ]
    rows: List[Dict[str, Any]] = []
    for i, close in enumerate(closes):
        open_ = closes[i - 1] if i else close
        rows.append({
            "timestamp": f"2026-01-21T{10 + i // 4:02d}:{(i % 4) * 15:02d}:00Z",
            "open": open_,
            "high": max(open_, close) + 60,
            "low": min(open_, close) - 60,
            "close": close,
            "volume": 100 + i * 5,
        })
    return bars_from_dicts(rows)


SAMPLE_RESPONSE = """The market is in an uptrend and price is pulling back toward support.

```json
{
  "enter": true,
  "direction": "long",
  "entry_price": "86850",
  "stop_loss_price": 86600,
  "take_profit_price": 87600,
  "position_size": 0.3,
  "leverage": 5,
  "confidence": 0.75,
  "reason": "Uptrend intact, limit buy just above support.",
  "indicator_views": {
    "bollinger": {"bias": "neutral", "note": "Price near the middle band"},
    "macd": {"bias": "bullish", "note": "MACD crossed above signal"},
    "trend_strength": {"level": "average", "bias": "neutral", "note": "ADX moderate"}
  },
  "draw_instructions": [
    {"type": "polyline", "mode": "value", "points": [
      {"bar_index": 0, "price": 85000},
      {"bar_index": 6, "price": 84000},
      {"bar_index": 17, "price": 87000}
    ], "color": "#00ffff", "text": "Uptrend Structure"},
    {"type": "horizontal_line", "price": 86800, "color": "#22c55e", "text": "Support"},
    {"type": "marker", "position": {"bar_index": 19, "price": 86850}, "shape": "up", "text": "Entry"},
    {"type": "trend_line", "from": {"x_norm": 300, "y_norm": 900}, "to": {"x_norm": 900, "y_norm": 100}}
  ]
}
```

Wait for the pullback before entering."""


def main(argv: List[str]) -> Dict[str, Any]:
    """Run the pipeline on the sample data or on files given on the command line."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    text = SAMPLE_RESPONSE
    bars = create_sample_bars()
    if len(argv) > 0:
        text = Path(argv[0]).read_text(encoding="utf-8")
    if len(argv) > 1:
        bars = bars_from_dicts(json.loads(Path(argv[1]).read_text(encoding="utf-8")))

    pipeline = VisionDecisionPipeline(settings=settings)
    try:
        result = pipeline.run(text, bars=bars)
    except ChartLensError as e:
        logger.error(f"Pipeline failed: {e}")
        raise SystemExit(1) from e

    output = result.to_dict()
    print(json.dumps(output, indent=2, default=str, ensure_ascii=False))
    return output


def run() -> None:
    """Console script entry point."""
    main(sys.argv[1:])


if __name__ == "__main__":
    run()
