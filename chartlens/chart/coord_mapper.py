"""
Coordinate Mapper - business coordinates <-> normalized chart space.

Built once per bar window. The window fixes the time axis
[start_time, end_time] and the price axis [min_price, max_price], where the
price bounds are the window's lowest low / highest high padded by
padding_ratio of the raw range on each side.

The two directions use different Y conventions and must stay that way:
- value_to_normalized: y grows with price (0 = min_price, 1 = max_price)
- normalized_to_value: image convention, y=0 is the top (max_price)
  and y=1 the bottom (min_price), which is how the model phrases geometry
"""
import math
from bisect import bisect_left
from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional, Sequence, Tuple

from chartlens.core.exceptions import EmptyChartDomain
from chartlens.domain.bars import Bar, TimestampLike, parse_timestamp

DEFAULT_PADDING_RATIO = 0.05


class NormalizedPoint(NamedTuple):
    x: float
    y: float


class ChartValue(NamedTuple):
    timestamp: datetime
    price: float


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class CoordinateMapper:
    """
    Immutable mapping for one bar window.

    Bars must be ordered by non-decreasing timestamp.
    """

    def __init__(
        self,
        bars: Sequence[Bar],
        width: int,
        height: int,
        padding_ratio: float = DEFAULT_PADDING_RATIO
    ):
        if not bars:
            raise EmptyChartDomain()

        self._bars: Tuple[Bar, ...] = tuple(bars)
        self._times: List[float] = [bar.timestamp.timestamp() for bar in self._bars]
        self.width = width
        self.height = height
        self.padding_ratio = padding_ratio

        # Time axis
        self.start_time = self._bars[0].timestamp
        self.end_time = self._bars[-1].timestamp
        self._time_range_seconds = (self.end_time - self.start_time).total_seconds()

        # Price axis (padded)
        raw_min = min(bar.low for bar in self._bars)
        raw_max = max(bar.high for bar in self._bars)
        padding = (raw_max - raw_min) * padding_ratio
        self.min_price = raw_min - padding
        self.max_price = raw_max + padding
        self._price_range = self.max_price - self.min_price

    def __setattr__(self, name, value):
        if hasattr(self, "_price_range"):
            raise AttributeError(f"{type(self).__name__} is immutable")
        object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        return (
            f"CoordinateMapper(bars={len(self._bars)}, "
            f"time=[{self.start_time.isoformat()}, {self.end_time.isoformat()}], "
            f"price=[{self.min_price:.5f}, {self.max_price:.5f}])"
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def bars(self) -> Tuple[Bar, ...]:
        return self._bars

    @property
    def bars_count(self) -> int:
        return len(self._bars)

    @property
    def price_range(self) -> float:
        return self._price_range

    @property
    def time_range_seconds(self) -> float:
        return self._time_range_seconds

    # =========================================================================
    # Mapping
    # =========================================================================

    def value_to_normalized(self, timestamp: TimestampLike, price: float) -> NormalizedPoint:
        """
        Business coordinates -> normalized [0, 1] x [0, 1].

        Y grows with price. Degenerate axes map to 0.5.
        """
        ts = parse_timestamp(timestamp)

        if self._time_range_seconds > 0:
            x_norm = (ts - self.start_time).total_seconds() / self._time_range_seconds
        else:
            x_norm = 0.5

        if self._price_range > 0:
            y_norm = (price - self.min_price) / self._price_range
        else:
            y_norm = 0.5

        return NormalizedPoint(max(0.0, min(1.0, x_norm)), max(0.0, min(1.0, y_norm)))

    def normalized_to_value(self, x_norm: float, y_norm: float) -> ChartValue:
        """
        Normalized image coordinates -> business coordinates.

        y_norm=0 is the top of the image (max_price), y_norm=1 the bottom
        (min_price).
        """
        ts = self.start_time + timedelta(seconds=x_norm * self._time_range_seconds)
        price = self.max_price - y_norm * self._price_range
        return ChartValue(ts, price)

    def normalized_x_to_bar_index(self, x_norm: float) -> int:
        """Nearest bar for a normalized x (rounded half up, clamped)."""
        index = round_half_up(x_norm * (len(self._bars) - 1))
        return max(0, min(len(self._bars) - 1, index))

    def clamp_bar_index(self, bar_index: int) -> int:
        return max(0, min(len(self._bars) - 1, bar_index))

    def bar_index_to_time(self, bar_index: int) -> Optional[datetime]:
        """Timestamp of a bar, None when the index is outside the window."""
        if 0 <= bar_index < len(self._bars):
            return self._bars[bar_index].timestamp
        return None

    def time_to_bar_index(self, timestamp: TimestampLike) -> int:
        """
        Index of the bar nearest to a timestamp.

        Binary search, then both neighbours are compared explicitly; the
        smaller absolute delta wins and an exact tie goes to the later bar.
        """
        target = parse_timestamp(timestamp).timestamp()
        index = bisect_left(self._times, target)

        if index >= len(self._times):
            return len(self._times) - 1
        if index > 0:
            later_diff = abs(self._times[index] - target)
            earlier_diff = abs(self._times[index - 1] - target)
            if earlier_diff < later_diff:
                return index - 1
        return index

    def price_at(self, timestamp: TimestampLike) -> float:
        """Close of the bar nearest to a timestamp."""
        return self._bars[self.time_to_bar_index(timestamp)].close
