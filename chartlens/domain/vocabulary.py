"""
Synonym tables for the free-text fields a vision model fills in.

Models answer in several vocabularies ("buy", "LONG", "多" all mean long).
Each table maps a canonical value to the synonyms it absorbs. Input the
table does not know lands in an explicit fallthrough bucket
(Lookup.recognized is False) so callers decide what passes through.

The built-in tables can be replaced by a YAML file (see load_vocabulary).
"""
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, NamedTuple, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr

from chartlens.core.config import get_settings

logger = logging.getLogger(__name__)


class Lookup(NamedTuple):
    """Result of a table lookup."""
    value: Optional[str]
    recognized: bool


class SynonymTable(BaseModel):
    """Canonical value -> synonyms, plus terms that mean 'no value'."""
    name: str = ""
    terms: Dict[str, List[str]] = Field(default_factory=dict)
    null_terms: List[str] = Field(default_factory=list)
    default: Optional[str] = None           # Result for None / blank input
    passthrough: Literal["raw", "normalized"] = "raw"

    _index: Dict[str, str] = PrivateAttr(default_factory=dict)
    _nulls: frozenset = PrivateAttr(default_factory=frozenset)

    def model_post_init(self, __context: Any) -> None:
        index = {}
        for canonical, synonyms in self.terms.items():
            key = canonical.strip().lower()
            index[key] = canonical
            for synonym in synonyms:
                index[str(synonym).strip().lower()] = canonical
        self._index = index
        self._nulls = frozenset(str(t).strip().lower() for t in self.null_terms)

    def lookup(self, raw: Any) -> Lookup:
        """
        Map a raw value onto the table.

        None and blank strings resolve to the table default. Unknown input
        comes back unrecognized, either unchanged ("raw") or trimmed and
        lower-cased ("normalized").
        """
        if raw is None:
            return Lookup(self.default, True)

        key = str(raw).strip().lower()
        if not key:
            return Lookup(self.default, True)
        if key in self._nulls:
            return Lookup(None, True)
        if key in self._index:
            return Lookup(self._index[key], True)

        return Lookup(raw if self.passthrough == "raw" else key, False)

    @property
    def canonical_values(self) -> List[str]:
        return list(self.terms.keys())


def _direction_table() -> SynonymTable:
    return SynonymTable(
        name="direction",
        terms={
            "long": ["buy", "多", "做多", "多头"],
            "short": ["sell", "空", "做空", "空头"],
        },
        null_terms=["neutral", "none", "null", "wait", "hold", "flat", "观望"],
        default=None,
        passthrough="raw",
    )


def _indicator_bias_table() -> SynonymTable:
    return SynonymTable(
        name="indicator_bias",
        terms={
            "bullish": ["long", "buy", "看多", "多", "偏多", "多头"],
            "bearish": ["short", "sell", "看空", "空", "偏空", "空头"],
            "neutral": ["none", "wait", "hold", "中性", "观望"],
        },
        default="neutral",
        passthrough="normalized",
    )


def _trend_strength_table() -> SynonymTable:
    return SynonymTable(
        name="trend_strength",
        terms={
            "below_average": ["below", "weak", "low", "低于平均", "偏弱", "弱"],
            "average": ["mid", "normal", "中等", "平均", "一般"],
            "above_average": ["above", "strong", "high", "高于平均", "偏强", "强"],
        },
        default="average",
        passthrough="normalized",
    )


def _marker_shape_table() -> SynonymTable:
    return SynonymTable(
        name="marker_shape",
        terms={
            "arrow_up": ["up", "arrowup", "triangle_up"],
            "arrow_down": ["down", "arrowdown", "triangle_down"],
            "circle": ["dot"],
            "square": ["box"],
        },
        default=None,
        passthrough="normalized",
    )


def _marker_position_table() -> SynonymTable:
    return SynonymTable(
        name="marker_position",
        terms={
            "above_bar": ["above", "top"],
            "below_bar": ["below", "bottom"],
            "inside_bar": ["inside", "in"],
        },
        default=None,
        passthrough="normalized",
    )


class Vocabulary(BaseModel):
    """All synonym tables used while validating and resolving a decision."""
    version: str = "1.0"
    direction: SynonymTable = Field(default_factory=_direction_table)
    indicator_bias: SynonymTable = Field(default_factory=_indicator_bias_table)
    trend_strength: SynonymTable = Field(default_factory=_trend_strength_table)
    marker_shape: SynonymTable = Field(default_factory=_marker_shape_table)
    marker_position: SynonymTable = Field(default_factory=_marker_position_table)


def load_vocabulary(path: str | Path) -> Vocabulary:
    """
    Load synonym tables from a YAML file.

    Tables missing from the file keep their built-in definition.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file content fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vocabulary file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Vocabulary file must contain a mapping: {path}")

    vocabulary = Vocabulary.model_validate(data)
    logger.info(f"Vocabulary loaded from {path} (v{vocabulary.version})")
    return vocabulary


@lru_cache()
def get_vocabulary() -> Vocabulary:
    """Process-wide vocabulary, read-only once created."""
    settings = get_settings()
    if settings.vocabulary_path:
        return load_vocabulary(settings.vocabulary_path)
    return Vocabulary()
