"""Custom exception classes for the vision-decision pipeline."""
from typing import Optional


class ChartLensError(Exception):
    """Base class for pipeline errors."""


class MalformedModelOutput(ChartLensError):
    """No parseable JSON could be found in the model output."""

    def __init__(
        self,
        message: str,
        raw_text: Optional[str] = None,
        json_text: Optional[str] = None
    ):
        self.message = message
        self.raw_text = raw_text
        self.json_text = json_text
        super().__init__(message)


class InvalidDecisionSchema(ChartLensError):
    """JSON was parsed but does not describe a valid decision."""

    def __init__(
        self,
        path: str,
        message: str,
        raw_text: Optional[str] = None,
        json_text: Optional[str] = None
    ):
        self.path = path
        self.message = message
        self.raw_text = raw_text
        self.json_text = json_text
        location = path or "<root>"
        super().__init__(f"{location}: {message}")


class OverlaySkipped(ChartLensError):
    """A draw instruction could not be resolved. Logged, never propagated."""

    def __init__(self, kind: str, reason: str, index: Optional[int] = None):
        self.kind = kind
        self.reason = reason
        self.index = index
        super().__init__(f"{kind}: {reason}")


class EmptyChartDomain(ChartLensError):
    """A coordinate mapper was requested for an empty bar window."""

    def __init__(self, detail: str = "Cannot build a chart domain from an empty bar sequence"):
        self.detail = detail
        super().__init__(detail)
