"""Bar (OHLCV candle) model for the chart window the model looked at."""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

TimestampLike = Union[datetime, str, int, float]

# Epoch values above this are milliseconds
_EPOCH_MS_THRESHOLD = 100_000_000_000


def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Convert a timestamp-like value to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), ISO-8601 strings
    (a trailing 'Z' is accepted) and epoch seconds or milliseconds.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, bool):
        raise TypeError(f"Not a timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        seconds = value / 1000.0 if abs(value) >= _EPOCH_MS_THRESHOLD else float(value)
        ts = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        ts_str = value.strip()
        if ts_str.endswith("Z"):
            ts_str = ts_str[:-1] + "+00:00"
        ts = datetime.fromisoformat(ts_str)
    else:
        raise TypeError(f"Not a timestamp: {value!r}")

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class Bar(BaseModel):
    """Single OHLCV candle."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> datetime:
        try:
            return parse_timestamp(v)
        except TypeError as e:
            raise ValueError(str(e)) from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


def bars_from_dicts(rows: Iterable[Dict[str, Any]]) -> List[Bar]:
    """Build bars from plain dicts; 'ts' is accepted in place of 'timestamp'."""
    bars = []
    for row in rows:
        data = dict(row)
        if "timestamp" not in data and "ts" in data:
            data["timestamp"] = data.pop("ts")
        bars.append(Bar(**data))
    return bars
