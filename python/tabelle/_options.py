"""Sheet configuration."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_COLUMN_WIDTH = 10


@dataclass(frozen=True)
class SheetOptions:
    """Per-sheet settings shared by the model, the codecs and display formatting."""

    formula_marker: str = "="
    decimals: int = 2  # fixed decimal places for non-integral numbers
    default_column_width: int = DEFAULT_COLUMN_WIDTH

    def __post_init__(self) -> None:
        if len(self.formula_marker) != 1:
            raise ValueError("formula_marker must be a single character")
        if self.decimals < 0:
            raise ValueError("decimals must be >= 0")
        if self.default_column_width < 1:
            raise ValueError("default_column_width must be >= 1")

    def is_formula(self, text: str) -> bool:
        return text.startswith(self.formula_marker)


DEFAULT_OPTIONS = SheetOptions()
