"""
End-to-end tests for VisionDecisionPipeline.
"""
import json

import pytest

from chartlens.agent.pipeline import VisionDecisionPipeline
from chartlens.chart.coord_mapper import CoordinateMapper
from chartlens.core.exceptions import EmptyChartDomain, InvalidDecisionSchema, MalformedModelOutput
from chartlens.domain.decision import Direction
from chartlens.domain.overlay import HorizontalLineOverlay

FENCED_RESPONSE = """Uptrend intact, price is pulling back to support.

```json
{
  "enter": true,
  "direction": "多",
  "entry_price": "86850",
  "stop_loss_price": 86600,
  "take_profit_price": 87600,
  "position_size": 0.3,
  "leverage": 5,
  "confidence": 0.75,
  "reason": "Limit buy above support.",
  "draw_instructions": [
    {"type": "horizontal_line", "price": 86800, "color": "#22c55e", "text": "Support"}
  ]
}
```

Do not chase if price runs away."""


@pytest.fixture
def pipeline(settings):
    return VisionDecisionPipeline(settings=settings)


def test_fenced_example_end_to_end(pipeline, btc_bars):
    result = pipeline.run(FENCED_RESPONSE, bars=btc_bars)

    assert result.decision.enter is True
    assert result.decision.direction == Direction.LONG
    assert result.decision.entry_price == 86850.0
    assert result.decision.stop_loss == 86600.0
    assert result.decision.effective_leverage == 5.0

    (overlay,) = result.overlays
    assert isinstance(overlay, HorizontalLineOverlay)
    assert overlay.price == 86800
    assert overlay.text == "Support"
    assert [a.text for a in result.text_annotations] == ["Support"]
    assert result.skipped == ()
    assert result.raw_text == FENCED_RESPONSE
    assert json.loads(result.json_text)["entry_price"] == "86850"


def test_result_to_dict(pipeline, btc_bars):
    data = pipeline.run(FENCED_RESPONSE, bars=btc_bars).to_dict()
    assert data["decision"]["direction"] == "long"
    assert data["decision"]["leverage"] == 5.0
    assert data["overlays"][0]["type"] == "horizontal_line"
    assert data["text_annotations"] == [{"price": 86800.0, "text": "Support", "color": "#22c55e"}]
    assert data["skipped"] == []
    json.dumps(data)


def test_default_leverage_in_output(pipeline, btc_bars):
    data = pipeline.run('{"enter": false}', bars=btc_bars).to_dict()
    assert data["decision"]["leverage"] == 1.0
    assert data["decision"]["requested_leverage"] is None


def test_reasoning_content_fallback(pipeline, btc_bars):
    reasoning = 'Thinking... the answer is {"enter": true, "direction": "sell"}'
    result = pipeline.run("", bars=btc_bars, reasoning_content=reasoning)
    assert result.decision.direction == Direction.SHORT
    assert result.raw_text == reasoning


def test_mapper_wins_over_bars(pipeline, btc_bars):
    mapper = CoordinateMapper(btc_bars, 1280, 720)
    result = pipeline.run('{"enter": false}', bars=[], mapper=mapper)
    assert result.decision.enter is False


def test_mapper_or_bars_required(pipeline):
    with pytest.raises(ValueError):
        pipeline.run('{"enter": false}')


def test_empty_bars_rejected(pipeline):
    with pytest.raises(EmptyChartDomain):
        pipeline.run('{"enter": false}', bars=[])


def test_malformed_output_carries_texts(pipeline, btc_bars):
    text = 'I think we should buy {"enter": true, "direction": '
    with pytest.raises(MalformedModelOutput) as exc_info:
        pipeline.run(text, bars=btc_bars)
    assert exc_info.value.raw_text == text
    assert exc_info.value.json_text == text.strip()


def test_schema_error_carries_texts(pipeline, btc_bars):
    text = 'Answer: {"direction": 1}'
    with pytest.raises(InvalidDecisionSchema) as exc_info:
        pipeline.run(text, bars=btc_bars)
    assert exc_info.value.path == "direction"
    assert exc_info.value.raw_text == text
    assert exc_info.value.json_text == '{"direction": 1}'


def test_skipped_overlays_leave_decision_intact(pipeline, btc_bars):
    text = json.dumps({
        "enter": True,
        "direction": "long",
        "draw_instructions": [
            {"type": "trend_line", "from": {"bar_index": 1}},
            {"type": "marker", "position": {"bar_index": 19, "price": 86850}},
        ],
    })
    result = pipeline.run(text, bars=btc_bars)
    assert len(result.decision.draw_instructions) == 2
    assert len(result.overlays) == 1
    assert result.skipped[0].index == 0
    assert result.to_dict()["skipped"][0]["type"] == "trend_line"


def test_trailing_array_is_rejected_as_schema_error(pipeline, btc_bars):
    text = 'Decision {"enter": true} and levels [86800, 87600]'
    with pytest.raises(InvalidDecisionSchema) as exc_info:
        pipeline.run(text, bars=btc_bars)
    assert exc_info.value.path == ""
    assert exc_info.value.json_text == "[86800, 87600]"
