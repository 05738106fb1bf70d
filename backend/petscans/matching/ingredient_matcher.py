"""
Deterministic ingredient matcher. Raw label text -> ranked MatchedIngredient list.
Resolve each label: 1) exact synonym 2) descriptor-stripped 3) unambiguous partial.
Ambiguous or unknown labels stay unmatched; nothing is guessed.
"""
from typing import List, Optional, Tuple
import logging

from petscans.models.matched import MatchedIngredient, MatchMethod, RawLabel
from petscans.normalization.normalizer import (
    normalize_label,
    split_ingredient_list,
    strip_descriptors,
)
from petscans.ontology.ingredient_registry import IngredientRegistry
from petscans.ontology.synonym_index import SynonymIndex

logger = logging.getLogger(__name__)


def split_labels(raw_text: str) -> List[RawLabel]:
    return [RawLabel(text=t, rank=i) for i, t in enumerate(split_ingredient_list(raw_text), start=1)]


class IngredientMatcher:
    def __init__(
        self,
        synonyms: Optional[SynonymIndex] = None,
        ingredients: Optional[IngredientRegistry] = None,
    ):
        if synonyms is None or ingredients is None:
            from petscans.ontology.knowledge_base import get_knowledge_base
            kb = get_knowledge_base()
            synonyms = kb.synonyms if synonyms is None else synonyms
            ingredients = kb.ingredients if ingredients is None else ingredients
        self._synonyms = synonyms
        self._ingredients = ingredients

    def match(self, raw_text: str) -> List[MatchedIngredient]:
        """One entry per label, in label order. Never raises for any text input."""
        labels = split_labels(raw_text if isinstance(raw_text, str) else "")
        out: List[MatchedIngredient] = []
        unmatched: List[str] = []
        for label in labels:
            ingredient_id, method = self.resolve(label.text)
            ing = self._ingredients.get(ingredient_id)
            out.append(MatchedIngredient(
                label=label.text,
                rank=label.rank,
                ingredient_id=ingredient_id,
                processing_level=ing.processing_level if ing else None,
                match_method=method,
            ))
            if ingredient_id is None:
                unmatched.append(label.text)
        if unmatched:
            logger.info(
                "MATCHER unmatched count=%d of=%d labels=%s",
                len(unmatched), len(labels), unmatched[:10],
            )
        return out

    def resolve(self, label: str) -> Tuple[Optional[str], Optional[MatchMethod]]:
        """Resolve a single raw label to (ingredient_id, method) or (None, None)."""
        key = normalize_label(label)
        if not key:
            return None, None

        hit = self._synonyms.lookup(key)
        if hit is not None:
            return hit, MatchMethod.EXACT

        stripped = strip_descriptors(key)
        hit = self._synonyms.lookup_stripped(stripped)
        if hit is not None:
            logger.debug("MATCHER stripped label=%s key=%s -> %s", label, stripped, hit)
            return hit, MatchMethod.STRIPPED

        candidates = self._synonyms.partial_candidates(key)
        if not candidates and stripped != key:
            candidates = self._synonyms.partial_candidates(stripped)
        if len(candidates) == 1:
            hit = next(iter(candidates))
            logger.debug("MATCHER partial label=%s -> %s", label, hit)
            return hit, MatchMethod.PARTIAL
        if candidates:
            logger.debug("MATCHER ambiguous label=%s candidates=%s", label, sorted(candidates))
        return None, None
