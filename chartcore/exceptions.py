"""Domain exceptions for chartcore."""

from __future__ import annotations

from typing import List, Sequence


class ChartCoreError(Exception):
    """Base class for every error raised by chartcore."""


class ConfigurationError(ChartCoreError):
    """Settings file missing, unreadable or invalid."""


class InvalidIndicatorConfig(ChartCoreError):
    """An indicator configuration failed validation and was not committed."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "invalid indicator configuration")
