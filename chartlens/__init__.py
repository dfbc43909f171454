"""chartlens - turns vision-model chart analyses into decisions and overlays."""

__version__ = "1.0.0"
