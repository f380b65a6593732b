"""Error types raised at the ingestion and configuration boundary."""

from typing import List


class AnalyticsError(Exception):
    """Base class for trade analytics errors."""


class TradeValidationError(AnalyticsError, ValueError):
    """Raised by strict normalization when a raw trade fails validation."""

    def __init__(self, errors: List[str]) -> None:
        rendered = "\n".join(f"- {item}" for item in errors)
        super().__init__(f"Trade failed validation:\n{rendered}")
        self.errors = errors


class ProfileError(AnalyticsError, ValueError):
    """Raised when an evaluation profile cannot be resolved."""


class UnknownPresetError(AnalyticsError, KeyError):
    """Raised when a prop firm preset id is not in the presets file."""

    def __init__(self, preset_id: str, available: List[str]) -> None:
        super().__init__(preset_id)
        self.preset_id = preset_id
        self.available = available

    def __str__(self) -> str:
        return f"Unknown prop firm preset '{self.preset_id}' (available: {', '.join(self.available)})"
