"""
Exceptions raised by the engine.

Bad user input (negative income, zero hours, unknown checklist ids) is
clamped or ignored and never raises. Only configuration problems, such
as a tax-year table with gaps between brackets, fail fast.
"""

from __future__ import annotations

from typing import Any, Optional


class NurseTaxEngineError(Exception):
    """Base class for all engine errors."""

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(NurseTaxEngineError):
    """
    A static table or engine setting is unusable.

    Raised for an unknown filing status, a missing bracket table, a
    bracket table with gaps or overlaps, or an out-of-range config value.
    """
