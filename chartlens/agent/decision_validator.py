"""
Decision Validator - JSON text -> canonical Decision.

The model proposes loosely-shaped JSON. The validator either returns a
frozen Decision or raises a typed error saying exactly where the payload
went wrong:
- Not JSON at all = MalformedModelOutput
- JSON of the wrong shape = InvalidDecisionSchema with a dotted path

Synonym folding and defaults happen inside the Decision model validators;
this layer supplies the vocabulary and coordinate scale they run with.
"""
import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from chartlens.core.config import Settings, get_settings
from chartlens.core.exceptions import InvalidDecisionSchema, MalformedModelOutput
from chartlens.domain.decision import Decision
from chartlens.domain.vocabulary import Vocabulary, get_vocabulary

logger = logging.getLogger(__name__)


def _error_path(error: Dict[str, Any]) -> str:
    return ".".join(str(part) for part in error.get("loc", ()))


class DecisionValidator:
    """
    Turns extracted JSON text into a Decision.

    Pure over its input: the same text always gives the same Decision.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        vocabulary: Optional[Vocabulary] = None
    ):
        self.settings = settings or get_settings()
        self.vocabulary = vocabulary or get_vocabulary()

    @property
    def context(self) -> Dict[str, Any]:
        """Validation context handed to the Decision model validators."""
        return {
            "vocabulary": self.vocabulary,
            "coord_scale": self.settings.normalized_coord_scale,
        }

    def validate(self, json_text: str) -> Decision:
        """
        Parse and validate one decision payload.

        Args:
            json_text: Output of the DecisionExtractor

        Returns:
            Frozen Decision

        Raises:
            MalformedModelOutput: If the text is not JSON
            InvalidDecisionSchema: If the JSON does not describe a decision
        """
        try:
            data = json.loads(json_text)
        except (json.JSONDecodeError, TypeError) as e:
            raise MalformedModelOutput(
                f"Model output is not valid JSON: {e}",
                json_text=json_text
            ) from e

        return self.validate_data(data, json_text=json_text)

    def validate_data(self, data: Any, json_text: Optional[str] = None) -> Decision:
        """Validate an already-parsed payload."""
        if not isinstance(data, dict):
            raise InvalidDecisionSchema(
                "",
                f"expected a JSON object, got {type(data).__name__}",
                json_text=json_text
            )

        try:
            decision = Decision.model_validate(data, context=self.context)
        except ValidationError as e:
            first = e.errors()[0]
            path = _error_path(first)
            logger.debug(f"Decision rejected at '{path}' ({e.error_count()} error(s))")
            raise InvalidDecisionSchema(path, first["msg"], json_text=json_text) from e

        if not decision.direction_recognized:
            logger.info(f"Unrecognized direction passed through: {decision.direction!r}")

        return decision


# =============================================================================
# Singleton Instance
# =============================================================================

_validator: Optional[DecisionValidator] = None


def get_decision_validator() -> DecisionValidator:
    """Get or create the decision validator singleton."""
    global _validator
    if _validator is None:
        _validator = DecisionValidator()
    return _validator
