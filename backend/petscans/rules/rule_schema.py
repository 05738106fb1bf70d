"""
Species/category scoped safety rules. Data-driven; the calculator never
special-cases an ingredient.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from petscans.ontology.ingredient_schema import Category, Species


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER = {
    Severity.INFO: 0,
    Severity.WARN: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


@dataclass(frozen=True)
class Rule:
    """Fires when ingredient_id is matched and species/category are both in scope."""
    id: str
    ingredient_id: str
    species: list[Species]
    categories: list[Category]
    severity: Severity
    score_impact: float
    explain: str
    evidence: list[str] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def penalty(self) -> float:
        return abs(self.score_impact)

    def applies_to(self, species: Species, category: Category) -> bool:
        return species in self.species and category in self.categories

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "applies_to": {
                "species": [s.value for s in self.species],
                "categories": [c.value for c in self.categories],
            },
            "severity": self.severity.value,
            "score_impact": self.score_impact,
            "explain": self.explain,
            "evidence": list(self.evidence),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Rule":
        scope = d.get("applies_to") or {}
        # Omitted scope means every species / every category
        species = scope.get("species") or [s.value for s in Species]
        categories = scope.get("categories") or [c.value for c in Category]
        return cls(
            id=d["id"],
            ingredient_id=d["ingredient_id"],
            species=[Species(s) for s in species],
            categories=[Category(c) for c in categories],
            severity=Severity(d.get("severity", "warn")),
            score_impact=float(d.get("score_impact", 0)),
            explain=d.get("explain", ""),
            evidence=list(d.get("evidence") or []),
            source=d.get("source"),
        )
