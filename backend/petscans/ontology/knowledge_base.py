"""
Read-only bundle of ingredient registry, synonym index and rule registry.
Loaded once per process via get_knowledge_base().
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

from .ingredient_registry import IngredientRegistry
from .synonym_index import SynonymIndex
from petscans.rules.rule_registry import RuleRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeBase:
    ingredients: IngredientRegistry
    synonyms: SynonymIndex
    rules: RuleRegistry

    @classmethod
    def load(
        cls,
        ingredients_path: Optional[Path] = None,
        synonyms_path: Optional[Path] = None,
        rules_path: Optional[Path] = None,
    ) -> "KnowledgeBase":
        ingredients = IngredientRegistry(ingredients_path)
        synonyms = SynonymIndex(synonyms_path, registry=ingredients)
        rules = RuleRegistry(rules_path)
        for rule_id in rules.list_ids():
            target = rules.get(rule_id).ingredient_id
            if target not in ingredients:
                logger.warning("RULE_TARGET_UNKNOWN rule=%s ingredient_id=%s", rule_id, target)
        logger.info(
            "KNOWLEDGE_BASE ingredients=%d synonyms=%d rules=%d",
            len(ingredients), len(synonyms), len(rules),
        )
        return cls(ingredients=ingredients, synonyms=synonyms, rules=rules)

    def stats(self) -> dict:
        return {
            "ingredients": len(self.ingredients),
            "synonyms": len(self.synonyms),
            "rules": len(self.rules),
        }


_default_kb: Optional[KnowledgeBase] = None


def get_knowledge_base() -> KnowledgeBase:
    global _default_kb
    if _default_kb is None:
        _default_kb = KnowledgeBase.load()
    return _default_kb


def reset_knowledge_base() -> None:
    """Drop the cached bundle (tests that point PETSCANS_DATA_DIR elsewhere)."""
    global _default_kb
    _default_kb = None
