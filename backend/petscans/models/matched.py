"""
Label-level data shapes produced by the matcher.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from petscans.ontology.ingredient_schema import ProcessingLevel


class MatchMethod(str, Enum):
    EXACT = "exact"
    STRIPPED = "stripped"
    PARTIAL = "partial"


@dataclass(frozen=True)
class RawLabel:
    text: str
    rank: int  # 1-based position on the label


@dataclass(frozen=True)
class MatchedIngredient:
    label: str
    rank: int
    ingredient_id: Optional[str] = None
    processing_level: Optional[ProcessingLevel] = None
    match_method: Optional[MatchMethod] = None

    @property
    def is_matched(self) -> bool:
        return self.ingredient_id is not None

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "rank": self.rank,
            "ingredient_id": self.ingredient_id,
            "processing_level": self.processing_level.value if self.processing_level else None,
            "match_method": self.match_method.value if self.match_method else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "MatchedIngredient":
        level = d.get("processing_level")
        method = d.get("match_method")
        return cls(
            label=d.get("label", ""),
            rank=int(d.get("rank", 0)),
            ingredient_id=d.get("ingredient_id"),
            processing_level=ProcessingLevel(level) if level is not None else None,
            match_method=MatchMethod(method) if method else None,
        )
