"""
Strict contract for canonical ingredient representation.
Risk is recorded per species; there is no single scalar risk field.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Species(str, Enum):
    DOG = "dog"
    CAT = "cat"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class Category(str, Enum):
    FOOD = "food"
    TREAT = "treat"
    COSMETIC = "cosmetic"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class RiskLevel(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    TOXIC = "toxic"


class ProcessingLevel(int, Enum):
    """
    Pet-adapted NOVA classification. Informational only: never affects safety
    or suitability.
    """
    UNPROCESSED = 1
    CULINARY_INGREDIENT = 2
    PROCESSED = 3
    ULTRA_PROCESSED = 4

    @property
    def display_name(self) -> str:
        return {
            ProcessingLevel.UNPROCESSED: "Minimally Processed",
            ProcessingLevel.CULINARY_INGREDIENT: "Culinary Ingredient",
            ProcessingLevel.PROCESSED: "Processed",
            ProcessingLevel.ULTRA_PROCESSED: "Ultra-Processed",
        }[self]


def _dedupe(items) -> list[str]:
    return list(dict.fromkeys(s for s in (items or []) if s))


@dataclass(frozen=True)
class Ingredient:
    id: str
    common_name: str
    species: list[Species]
    categories: list[Category] = field(default_factory=list)
    risk_levels: dict[Species, RiskLevel] = field(default_factory=dict)
    scientific_name: Optional[str] = None
    origin: Optional[str] = None
    typical_function: Optional[str] = None
    allergen_note: Optional[str] = None
    processing_level: Optional[ProcessingLevel] = None
    processing_notes: Optional[str] = None
    # Species -> free-text toxic dose, e.g. {"dog": "0.1 g/kg body weight"}
    toxic_dose: dict[Species, str] = field(default_factory=dict)
    notes: Optional[str] = None
    sources: list[str] = field(default_factory=list)

    def risk_for(self, species: Species) -> Optional[RiskLevel]:
        return self.risk_levels.get(species)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "common_name": self.common_name,
            "scientific_name": self.scientific_name,
            "species": [s.value for s in self.species],
            "categories": [c.value for c in self.categories],
            "risk_levels": {s.value: r.value for s, r in self.risk_levels.items()},
            "origin": self.origin,
            "typical_function": self.typical_function,
            "allergen_note": self.allergen_note,
            "processing_level": self.processing_level.value if self.processing_level else None,
            "processing_notes": self.processing_notes,
            "toxic_dose": {s.value: t for s, t in self.toxic_dose.items()},
            "notes": self.notes,
            "sources": list(self.sources),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Ingredient":
        species = [Species(s) for s in d.get("species", []) or []]
        if not species:
            raise ValueError(f"ingredient {d.get('id')!r} must apply to at least one species")
        level = d.get("processing_level")
        return cls(
            id=d["id"],
            common_name=d["common_name"],
            scientific_name=d.get("scientific_name"),
            species=species,
            categories=[Category(c) for c in d.get("categories", []) or []],
            risk_levels={Species(s): RiskLevel(r) for s, r in (d.get("risk_levels") or {}).items()},
            origin=d.get("origin"),
            typical_function=d.get("typical_function"),
            allergen_note=d.get("allergen_note"),
            processing_level=ProcessingLevel(level) if level is not None else None,
            processing_notes=d.get("processing_notes"),
            toxic_dose={Species(s): t for s, t in (d.get("toxic_dose") or {}).items()},
            notes=d.get("notes"),
            sources=_dedupe(d.get("sources")),
        )
