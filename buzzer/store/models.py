# buzzer/store/models.py
from __future__ import annotations

from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator


QuestionKind = Literal["pure-buzz", "short-answer", "multiple-choice"]

MIN_CHOICES = 2
MAX_CHOICES = 6

# Stored as the answer when a player buzzes without one
BUZZ_SENTINEL = "BUZZ"


class PlayerStore(BaseModel):
    id: int = Field(ge=0)
    name: str = Field(min_length=1)
    locked: bool = True
    answer: Optional[str] = None        # captured at buzz time
    rank: Optional[int] = Field(default=None, ge=1)  # 1-based position in buzz order


class QuestionModeStore(BaseModel):
    kind: QuestionKind = "pure-buzz"
    choice_count: Optional[int] = None

    @model_validator(mode="after")
    def _check_choice_count(self) -> "QuestionModeStore":
        if self.kind == "multiple-choice":
            if self.choice_count is None or not (MIN_CHOICES <= self.choice_count <= MAX_CHOICES):
                raise ValueError(f"multiple-choice needs {MIN_CHOICES}..{MAX_CHOICES} choices")
        elif self.choice_count is not None:
            raise ValueError(f"{self.kind} takes no choice count")
        return self
