"""Error types and stable per-row error tags."""

from __future__ import annotations

# Per-row parse failures are recorded inline on ``ParsedRow.error_message``
# using these exact strings so callers can aggregate them.
INVALID_DATE = "Invalid date"
INVALID_AMOUNT = "Invalid amount"


class DetectionError(ValueError):
    """Auto-detection could not produce a trustworthy configuration.

    The caller is expected to fall back to a manually configured mapping.
    ``reason`` is a short machine-friendly tag (e.g. ``"no_date_column"``).
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or f"auto-detection failed ({reason}); configure manually")


__all__ = ["INVALID_DATE", "INVALID_AMOUNT", "DetectionError"]
