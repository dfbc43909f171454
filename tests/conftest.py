"""Shared fixtures: bar windows, mappers and components on default settings."""
from datetime import datetime, timedelta, timezone
from typing import List, Sequence

import pytest

from chartlens.chart.coord_mapper import CoordinateMapper
from chartlens.core.config import Settings
from chartlens.domain.bars import Bar
from chartlens.domain.vocabulary import Vocabulary

START = datetime(2026, 1, 21, 10, 0, tzinfo=timezone.utc)
STEP = timedelta(minutes=15)


def make_bars(closes: Sequence[float], spread: float = 1.0) -> List[Bar]:
    """One bar per close, 15 minutes apart, high/low at close +/- spread."""
    bars = []
    for i, close in enumerate(closes):
        bars.append(Bar(
            timestamp=START + i * STEP,
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=100
        ))
    return bars


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def vocabulary():
    return Vocabulary()


@pytest.fixture
def bars():
    """11 bars, closes 100..110. Raw range 99..111, padded 98.4..111.6."""
    return make_bars([100 + i for i in range(11)])


@pytest.fixture
def mapper(bars):
    return CoordinateMapper(bars, 1280, 720)


@pytest.fixture
def btc_bars():
    """20 bars around 84000-87000, latest close 86950."""
    closes = [
        85000, 84900, 84700, 84500, 84300, 84100, 84000, 84200, 84500, 84800,
        85100, 85400, 85700, 86000, 86300, 86600, 86900, 87000, 86900, 86950,
    ]
    return make_bars(closes, spread=60)
