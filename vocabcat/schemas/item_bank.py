"""
Pydantic schema for one row of the calibrated vocabulary item bank.

Column names follow the published parameter file, including its
``Dscrimination`` spelling.
"""
import math
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemBankRow(BaseModel):
    """A single calibrated 3PL vocabulary item as read from the bank file."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    word: str = Field(..., alias="Item", min_length=1, description="Headword")
    level: int = Field(..., alias="Level", description="Ordinal frequency level")
    part_of_speech: str = Field(default="", alias="PartOfSpeech")
    correct_answer: str = Field(..., alias="CorrectAnswer", min_length=1)
    distractor_1: str = Field(..., alias="Distractor_1")
    distractor_2: str = Field(..., alias="Distractor_2")
    distractor_3: str = Field(..., alias="Distractor_3")
    discrimination: float = Field(
        ...,
        alias="Dscrimination",
        gt=0.0,
        description="3PL discrimination (a), must be positive",
    )
    difficulty: float = Field(..., alias="Difficulty", description="3PL difficulty (b)")
    guessing: float = Field(
        ...,
        alias="Guessing",
        ge=0.0,
        lt=1.0,
        description="3PL lower asymptote (c), in [0, 1)",
    )

    @field_validator("discrimination", "difficulty", "guessing")
    @classmethod
    def validate_finite(cls, value: float) -> float:
        """IRT parameters must be finite numbers."""
        if not math.isfinite(value):
            raise ValueError(f"IRT parameter must be finite, got {value}")
        return value

    @property
    def distractors(self) -> Tuple[str, str, str]:
        return (self.distractor_1, self.distractor_2, self.distractor_3)
