"""
Loads safety rules from data/rules.json. Indexed by target ingredient id.
"""
from pathlib import Path
from typing import Optional
import json
import logging

from .rule_schema import Rule
from petscans.config import get_rules_path
from petscans.ontology.ingredient_schema import Category, Species

logger = logging.getLogger(__name__)


class RuleRegistry:
    def __init__(self, rules_path: Optional[Path] = None):
        self._path = rules_path or get_rules_path()
        self._by_id: dict[str, Rule] = {}
        self._by_ingredient: dict[str, list[Rule]] = {}
        self._load()

    @classmethod
    def from_rules(cls, rules: list[Rule]) -> "RuleRegistry":
        reg = cls.__new__(cls)
        reg._path = None
        reg._by_id = {}
        reg._by_ingredient = {}
        for r in rules:
            reg._add(r)
        return reg

    def _load(self) -> None:
        if not self._path.exists():
            logger.warning("Rules file not found at %s; registry empty.", self._path)
            return
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        for item in data.get("rules", []):
            self._add(Rule.from_dict(item))
        logger.info("Loaded %d rules from %s", len(self._by_id), self._path)

    def _add(self, rule: Rule) -> None:
        if rule.id in self._by_id:
            logger.warning("DUPLICATE_RULE id=%s; keeping first definition", rule.id)
            return
        self._by_id[rule.id] = rule
        self._by_ingredient.setdefault(rule.ingredient_id, []).append(rule)

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._by_id.get(rule_id)

    def list_ids(self) -> list[str]:
        return list(self._by_id.keys())

    def rules_for(self, ingredient_id: str, species: Species, category: Category) -> list[Rule]:
        """Rules targeting ingredient_id whose species and category scope both match."""
        return [
            r for r in self._by_ingredient.get(ingredient_id, ())
            if r.applies_to(species, category)
        ]

    def __len__(self) -> int:
        return len(self._by_id)
