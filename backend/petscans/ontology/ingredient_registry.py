"""
Canonical ingredient registry. Loads from data/ingredients.json once.
Lookup by stable ingredient id only; label resolution lives in the synonym index.
"""
from pathlib import Path
from typing import Iterator, Optional
import json
import logging

from .ingredient_schema import Ingredient
from petscans.config import get_ingredients_path

logger = logging.getLogger(__name__)


class IngredientRegistry:
    """O(1) lookup by ingredient id. Read-only after load."""

    def __init__(self, ingredients_path: Optional[Path] = None):
        self._path = ingredients_path or get_ingredients_path()
        self._by_id: dict[str, Ingredient] = {}
        self._version: str = "0"
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            logger.warning("Ingredients file not found at %s; registry empty.", self._path)
            return
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        self._version = str(data.get("version", "0"))
        for item in data.get("ingredients", []):
            ing = Ingredient.from_dict(item)
            if ing.id in self._by_id:
                logger.warning("DUPLICATE_INGREDIENT id=%s; keeping first definition", ing.id)
                continue
            self._by_id[ing.id] = ing
        logger.info("Loaded %d ingredients from %s", len(self._by_id), self._path)

    @classmethod
    def from_ingredients(cls, ingredients: list[Ingredient]) -> "IngredientRegistry":
        """Build an in-memory registry (tests, fixtures) without touching disk."""
        reg = cls.__new__(cls)
        reg._path = None
        reg._version = "memory"
        reg._by_id = {}
        for ing in ingredients:
            reg._by_id.setdefault(ing.id, ing)
        return reg

    def get(self, ingredient_id: Optional[str]) -> Optional[Ingredient]:
        if not ingredient_id:
            return None
        return self._by_id.get(ingredient_id)

    def __contains__(self, ingredient_id: object) -> bool:
        return ingredient_id in self._by_id

    def __iter__(self) -> Iterator[Ingredient]:
        return iter(self._by_id.values())

    def get_version(self) -> str:
        return self._version

    def __len__(self) -> int:
        return len(self._by_id)
