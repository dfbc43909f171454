"""
Decision Extractor - Locate the JSON payload inside noisy model output.

Vision models rarely answer with bare JSON. The payload arrives wrapped in
prose, in markdown fences, or after a block of "thinking". The extractor
finds the block worth parsing without trying to repair it:

1. Strip a surrounding ```json ... ``` fence
2. Return the text as-is if it already parses
3. Otherwise scan once for balanced {...} / [...] spans and keep the last
   span that parses
4. Fall back to the trimmed input, which the validator will reject
"""
import json
import logging
import re
from typing import List, Optional

logger = logging.getLogger(__name__)

_OPEN_FENCE = re.compile(r"^```[a-zA-Z]*[ \t]*\r?\n?")
_CLOSE_FENCE = re.compile(r"\r?\n?```$")
_PAIRS = {"}": "{", "]": "["}


def strip_code_fence(text: str) -> str:
    """Remove one leading ``` / ```json fence when a closing fence is also present."""
    if not text.startswith("```") or len(text) < 6 or not text.endswith("```"):
        return text
    inner = _OPEN_FENCE.sub("", text, count=1)
    inner = _CLOSE_FENCE.sub("", inner, count=1)
    return inner.strip()


def _parses(candidate: str) -> bool:
    try:
        json.loads(candidate)
    except json.JSONDecodeError:
        return False
    return True


class DecisionExtractor:
    """Stateless. extract() never raises."""

    def extract(self, text: Optional[str]) -> str:
        """
        Return the JSON substring of a model response.

        Args:
            text: Raw model output

        Returns:
            The best JSON candidate, or the trimmed input when none parses
        """
        original = (text or "").strip()
        if not original:
            return original

        content = strip_code_fence(original)

        # Fast path
        try:
            json.loads(content)
            return content
        except json.JSONDecodeError:
            pass

        candidate = self._scan(content)
        if candidate is None:
            logger.debug(f"No parseable JSON block in model output ({len(original)} chars)")
            return original
        return candidate

    def _scan(self, text: str) -> Optional[str]:
        """Single left-to-right pass over balanced bracket spans."""
        last_valid: Optional[str] = None

        stack: List[str] = []
        start = -1
        in_string = False
        escape = False

        for i, ch in enumerate(text):
            if in_string:
                if escape:
                    escape = False
                elif ch == "\\":
                    escape = True
                elif ch == '"':
                    in_string = False
                continue

            if ch == '"':
                in_string = True
                continue

            if ch in "{[":
                if not stack:
                    start = i
                stack.append(ch)
                continue

            if ch in "}]":
                if not stack:
                    continue
                if stack[-1] != _PAIRS[ch]:
                    # Mismatch: abandon the current span
                    stack.clear()
                    start = -1
                    continue

                stack.pop()
                if stack:
                    continue

                candidate = text[start:i + 1]
                if _parses(candidate):
                    last_valid = candidate
                start = -1

        return last_valid


_extractor = DecisionExtractor()


def extract_json(text: Optional[str]) -> str:
    """Module-level shortcut for DecisionExtractor().extract()."""
    return _extractor.extract(text)
