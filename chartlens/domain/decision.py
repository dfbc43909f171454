"""
Decision Models - The structured record extracted from one model response.

The vision model describes a trading decision plus chart annotations in
loosely-formed JSON. These models are the canonical, validated shape of
that answer. Validation is lenient:
- Synonyms are folded through explicit lookup tables (see vocabulary.py)
- Unknown free-text values pass through instead of failing
- Numbers are clamped or nulled instead of rejected where the meaning is clear

Anchor completeness of draw instructions is NOT checked here. An
instruction missing the anchors its kind needs is still well-typed; it is
simply dropped later by the overlay resolver.
"""
import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from chartlens.domain.bars import parse_timestamp
from chartlens.domain.vocabulary import Vocabulary, get_vocabulary

DEFAULT_COORD_SCALE = 1000.0
DEFAULT_LEVERAGE = 1.0
DEFAULT_COLOR = "#ffffff"
DEFAULT_LINE_WIDTH = 2
MARKET = "market"

_NULL_LIKE = {"", "none", "null", "nan", "n/a"}
_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0"}
_LEADING_NUMBER = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


class Direction(str, Enum):
    """Trade direction."""
    LONG = "long"
    SHORT = "short"


class IndicatorBias(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class TrendStrengthLevel(str, Enum):
    BELOW_AVERAGE = "below_average"
    AVERAGE = "average"
    ABOVE_AVERAGE = "above_average"


class DrawKind(str, Enum):
    """The eight annotation kinds the model may request."""
    HORIZONTAL_LINE = "horizontal_line"
    TREND_LINE = "trend_line"
    PARALLEL_CHANNEL = "parallel_channel"
    RAY_LINE = "ray_line"
    POLYLINE = "polyline"
    MARKER = "marker"
    LABEL = "label"
    VERTICAL_SPAN = "vertical_span"


class AnchorMode(str, Enum):
    VALUE = "value"             # Business coordinates (bar_index/timestamp, price)
    NORMALIZED = "normalized"   # Normalized chart coordinates


# =============================================================================
# Normalization helpers
# =============================================================================

def is_null_like(value: Any) -> bool:
    """None or a sentinel string such as 'none' / 'null' / ''."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in _NULL_LIKE


def to_number(value: Any) -> Optional[float]:
    """
    Strict numeric coercion: numbers and numeric strings.

    Null-like values give None. Anything else raises ValueError.
    """
    if is_null_like(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got boolean {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            raise ValueError(f"expected a number, got {value!r}") from None
    else:
        raise ValueError(f"expected a number, got {type(value).__name__}")

    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {value!r}")
    return number


def parse_leading_number(text: str) -> Optional[float]:
    """Read the numeric prefix of a string ('86850 USDT' -> 86850.0)."""
    match = _LEADING_NUMBER.match(text.strip().replace(",", ""))
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def coerce_enter(value: Any) -> bool:
    """Booleans and yes/no words; anything unrecognised is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return False


def clamp_unit(value: Any) -> float:
    """Coerce to a number in [0, 1]; missing values are 0."""
    number = to_number(value)
    if number is None:
        return 0.0
    return max(0.0, min(1.0, number))


def normalize_leverage(value: Any) -> Optional[float]:
    """
    Leverage as the model stated it.

    Non-positive, empty and sentinel values become None. The default of 1
    is applied separately (apply_leverage_default) so callers can still tell
    whether leverage was given at all.
    """
    number = to_number(value)
    if number is None or number <= 0:
        return None
    return number


def apply_leverage_default(leverage: Optional[float], default: float = DEFAULT_LEVERAGE) -> float:
    return default if leverage is None else leverage


def normalize_entry_price(value: Any) -> Union[float, Literal["market"], None]:
    """'market' is kept; numbers and numeric prefixes are parsed; else None."""
    if is_null_like(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        if value.strip().lower() == MARKET:
            return MARKET
        return parse_leading_number(value)
    return None


def normalize_optional_price(value: Any) -> Optional[float]:
    """Stop-loss / take-profit: a number when one can be read, else None."""
    if is_null_like(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        return parse_leading_number(value)
    return None


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _vocabulary(info: ValidationInfo) -> Vocabulary:
    if info.context and info.context.get("vocabulary") is not None:
        return info.context["vocabulary"]
    return get_vocabulary()


def _coord_scale(info: ValidationInfo) -> float:
    if info.context and info.context.get("coord_scale"):
        return float(info.context["coord_scale"])
    return DEFAULT_COORD_SCALE


def _clamp_norm(value: Any, info: ValidationInfo) -> Optional[float]:
    number = to_number(value)
    if number is None:
        return None
    return max(0.0, min(_coord_scale(info), number))


# =============================================================================
# Draw instructions
# =============================================================================

class AnchorPoint(BaseModel):
    """
    A chart point in business coordinates (bar_index / timestamp / price) or
    normalized coordinates (x_norm / y_norm, 0..scale, top-left origin).
    """
    bar_index: Optional[int] = None
    timestamp: Optional[datetime] = None
    price: Optional[float] = None
    x_norm: Optional[float] = None
    y_norm: Optional[float] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, v: Any) -> Optional[datetime]:
        if is_null_like(v):
            return None
        try:
            return parse_timestamp(v)
        except TypeError as e:
            raise ValueError(str(e)) from e

    @field_validator("bar_index", mode="before")
    @classmethod
    def _null_bar_index(cls, v: Any) -> Any:
        return None if is_null_like(v) else v

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v: Any) -> Optional[float]:
        return to_number(v)

    @field_validator("x_norm", "y_norm", mode="before")
    @classmethod
    def _clamp(cls, v: Any, info: ValidationInfo) -> Optional[float]:
        return _clamp_norm(v, info)

    @property
    def has_business(self) -> bool:
        return self.bar_index is not None or self.timestamp is not None

    @property
    def has_normalized(self) -> bool:
        return self.x_norm is not None and self.y_norm is not None


class DrawInstruction(BaseModel):
    """One annotation the model asked to draw, before geometry resolution."""
    kind: DrawKind = Field(alias="type")
    mode: AnchorMode = AnchorMode.NORMALIZED

    # Start / end anchors
    start: Optional[AnchorPoint] = Field(default=None, alias="from")
    end: Optional[AnchorPoint] = Field(default=None, alias="to")

    # Polyline
    points: Optional[Tuple[AnchorPoint, ...]] = None

    # Horizontal line
    price: Optional[float] = None
    y_norm: Optional[float] = None

    # Parallel channel
    channel_width: Optional[float] = None

    # Marker / label
    position: Optional[AnchorPoint] = None
    shape: Optional[str] = None
    marker_position: Optional[str] = None

    # Vertical span
    start_x_norm: Optional[float] = None
    end_x_norm: Optional[float] = None
    start_bar_index: Optional[int] = None
    end_bar_index: Optional[int] = None

    # Style
    color: str = DEFAULT_COLOR
    text: Optional[str] = None
    width: int = DEFAULT_LINE_WIDTH

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("kind", mode="before")
    @classmethod
    def _fold_kind(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("mode", mode="before")
    @classmethod
    def _fold_mode(cls, v: Any) -> Any:
        if is_null_like(v):
            return AnchorMode.NORMALIZED
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("price", "channel_width", mode="before")
    @classmethod
    def _coerce_number(cls, v: Any) -> Optional[float]:
        return to_number(v)

    @field_validator("y_norm", "start_x_norm", "end_x_norm", mode="before")
    @classmethod
    def _clamp(cls, v: Any, info: ValidationInfo) -> Optional[float]:
        return _clamp_norm(v, info)

    @field_validator("start_bar_index", "end_bar_index", mode="before")
    @classmethod
    def _null_bar_index(cls, v: Any) -> Any:
        return None if is_null_like(v) else v

    @field_validator("color", mode="before")
    @classmethod
    def _default_color(cls, v: Any) -> Any:
        return DEFAULT_COLOR if is_null_like(v) else v

    @field_validator("width", mode="before")
    @classmethod
    def _default_width(cls, v: Any) -> Any:
        return DEFAULT_LINE_WIDTH if v is None else v

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Any:
        return _as_text(v, default=None)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Indicator views
# =============================================================================

def _view_input(v: Any, bare_key: str = "bias") -> Any:
    """Missing views take defaults; a bare string fills bare_key."""
    if v is None:
        return {}
    if isinstance(v, str):
        return {bare_key: v}
    return v


def _lookup_bias(v: Any, info: ValidationInfo) -> Union[IndicatorBias, str]:
    result = _vocabulary(info).indicator_bias.lookup(v)
    value = result.value or IndicatorBias.NEUTRAL.value
    try:
        return IndicatorBias(value)
    except ValueError:
        return value


class IndicatorView(BaseModel):
    """The model's read of one indicator."""
    bias: Union[IndicatorBias, str] = IndicatorBias.NEUTRAL
    note: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("bias", mode="before")
    @classmethod
    def _normalize_bias(cls, v: Any, info: ValidationInfo) -> Union[IndicatorBias, str]:
        return _lookup_bias(v, info)

    @field_validator("note", mode="before")
    @classmethod
    def _note(cls, v: Any) -> Any:
        return _as_text(v)


class TrendStrengthView(BaseModel):
    """Trend-strength reading: a level plus a directional bias."""
    level: Union[TrendStrengthLevel, str] = TrendStrengthLevel.AVERAGE
    bias: Union[IndicatorBias, str] = IndicatorBias.NEUTRAL
    note: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: Any, info: ValidationInfo) -> Union[TrendStrengthLevel, str]:
        result = _vocabulary(info).trend_strength.lookup(v)
        value = result.value or TrendStrengthLevel.AVERAGE.value
        try:
            return TrendStrengthLevel(value)
        except ValueError:
            return value

    @field_validator("bias", mode="before")
    @classmethod
    def _normalize_bias(cls, v: Any, info: ValidationInfo) -> Union[IndicatorBias, str]:
        return _lookup_bias(v, info)

    @field_validator("note", mode="before")
    @classmethod
    def _note(cls, v: Any) -> Any:
        return _as_text(v)


class IndicatorViews(BaseModel):
    """Views on the fixed indicator set drawn under the chart."""
    bollinger: IndicatorView = Field(default_factory=IndicatorView)
    macd: IndicatorView = Field(default_factory=IndicatorView)
    trend_strength: TrendStrengthView = Field(default_factory=TrendStrengthView)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("bollinger", "macd", "trend_strength", mode="before")
    @classmethod
    def _view(cls, v: Any, info: ValidationInfo) -> Any:
        # A bare trend_strength string is its level, not its bias
        return _view_input(v, "level" if info.field_name == "trend_strength" else "bias")


# =============================================================================
# Decision
# =============================================================================

class Decision(BaseModel):
    """
    Validated trading decision from one model response.

    Immutable once validated. Field names follow Python conventions; the
    wire names (stop_loss_price, take_profit_price) are accepted as aliases.
    """
    enter: bool = False
    direction: Optional[Union[Direction, str]] = None
    position_size: float = 0.0
    leverage: Optional[float] = None     # As stated; see effective_leverage
    confidence: float = 0.0
    entry_price: Optional[Union[float, Literal["market"]]] = None
    stop_loss: Optional[float] = Field(default=None, alias="stop_loss_price")
    take_profit: Optional[float] = Field(default=None, alias="take_profit_price")
    reason: str = ""
    indicator_views: IndicatorViews = Field(default_factory=IndicatorViews)
    draw_instructions: Tuple[DrawInstruction, ...] = ()

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("enter", mode="before")
    @classmethod
    def _enter(cls, v: Any) -> bool:
        return coerce_enter(v)

    @field_validator("direction", mode="before")
    @classmethod
    def _direction(cls, v: Any, info: ValidationInfo) -> Optional[Union[Direction, str]]:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError(f"direction must be a string, got {type(v).__name__}")

        result = _vocabulary(info).direction.lookup(v)
        if not result.recognized:
            return v
        if result.value is None:
            return None
        try:
            return Direction(result.value)
        except ValueError:
            return result.value

    @field_validator("position_size", "confidence", mode="before")
    @classmethod
    def _unit(cls, v: Any) -> float:
        return clamp_unit(v)

    @field_validator("leverage", mode="before")
    @classmethod
    def _leverage(cls, v: Any) -> Optional[float]:
        return normalize_leverage(v)

    @field_validator("entry_price", mode="before")
    @classmethod
    def _entry_price(cls, v: Any) -> Union[float, str, None]:
        return normalize_entry_price(v)

    @field_validator("stop_loss", "take_profit", mode="before")
    @classmethod
    def _optional_price(cls, v: Any) -> Optional[float]:
        return normalize_optional_price(v)

    @field_validator("reason", mode="before")
    @classmethod
    def _reason(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("indicator_views", mode="before")
    @classmethod
    def _views(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("draw_instructions", mode="before")
    @classmethod
    def _instructions(cls, v: Any) -> Any:
        return () if v is None else v

    @property
    def effective_leverage(self) -> float:
        """Leverage after the default-to-1 step."""
        return apply_leverage_default(self.leverage)

    @property
    def is_market_entry(self) -> bool:
        return self.entry_price == MARKET

    @property
    def direction_recognized(self) -> bool:
        return self.direction is None or isinstance(self.direction, Direction)

    def to_dict(self, default_leverage: float = DEFAULT_LEVERAGE) -> Dict[str, Any]:
        """Wire-shaped dict, leverage defaulted."""
        direction = self.direction.value if isinstance(self.direction, Direction) else self.direction
        return {
            "enter": self.enter,
            "direction": direction,
            "position_size": self.position_size,
            "leverage": apply_leverage_default(self.leverage, default_leverage),
            "requested_leverage": self.leverage,
            "confidence": self.confidence,
            "entry_price": self.entry_price,
            "stop_loss_price": self.stop_loss,
            "take_profit_price": self.take_profit,
            "reason": self.reason,
            "indicator_views": self.indicator_views.model_dump(mode="json"),
            "draw_instructions": [d.to_dict() for d in self.draw_instructions],
        }
