"""
Pet profile as consumed by scoring. Persistence of pets lives outside the engine;
only the name, species and allergen list matter here.
"""
from dataclasses import dataclass, field, asdict
from typing import Iterable, List, Optional

from petscans.ontology.ingredient_schema import Species

# Allergen options offered when creating a pet (display names)
COMMON_ALLERGENS = [
    "Chicken",
    "Beef",
    "Dairy",
    "Wheat",
    "Corn",
    "Soy",
    "Egg",
    "Fish",
    "Lamb",
    "Pork",
]


def allergen_set(allergens: Optional[Iterable[str]]) -> frozenset[str]:
    """Lowercase, trimmed, non-empty allergen terms."""
    if not allergens:
        return frozenset()
    return frozenset(a.strip().lower() for a in allergens if isinstance(a, str) and a.strip())


@dataclass
class PetProfile:
    name: str
    species: Species
    allergens: List[str] = field(default_factory=list)

    @property
    def allergen_set(self) -> frozenset[str]:
        return allergen_set(self.allergens)

    def update_merge(self, name: Optional[str] = None, allergens: Optional[List[str]] = None) -> None:
        """Update only provided fields; species is fixed once created."""
        if name is not None and name.strip():
            self.name = name.strip()
        if allergens is not None:
            self.allergens = list(allergens)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["species"] = self.species.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "PetProfile":
        return cls(
            name=str(data.get("name", "")).strip(),
            species=Species(data.get("species", Species.DOG.value)),
            allergens=list(data.get("allergens") or []),
        )
