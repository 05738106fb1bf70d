"""
Synonym index: normalized phrase -> canonical ingredient id (many-to-one).
Loaded from data/synonyms.json, seeded with each registry ingredient's common name.
Also keeps a descriptor-stripped view (stripped key -> set of ids) for the second
resolution pass, and a longest-first phrase list for partial matching.
"""
from pathlib import Path
from typing import Iterable, Optional, TYPE_CHECKING
import json
import re
import logging

from petscans.config import get_synonyms_path
from petscans.normalization.normalizer import normalize_label, strip_descriptors

if TYPE_CHECKING:
    from .ingredient_registry import IngredientRegistry

logger = logging.getLogger(__name__)

# Phrases this short ("oil", "pea") are too generic for partial matching
MIN_PARTIAL_PHRASE_LEN = 4


def _word_pattern(phrase: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(phrase) + r"(?![a-z0-9])")


class SynonymIndex:
    def __init__(
        self,
        synonyms_path: Optional[Path] = None,
        registry: Optional["IngredientRegistry"] = None,
    ):
        self._path = synonyms_path or get_synonyms_path()
        self._by_key: dict[str, str] = {}
        self._load(registry)
        self._build_views()

    @classmethod
    def from_mapping(
        cls,
        mapping: dict[str, str],
        registry: Optional["IngredientRegistry"] = None,
    ) -> "SynonymIndex":
        """Build an index from an in-memory phrase -> id mapping."""
        idx = cls.__new__(cls)
        idx._path = None
        idx._by_key = {}
        if registry is not None:
            idx._seed_from_registry(registry)
        idx._add_all(mapping.items())
        idx._build_views()
        return idx

    def _load(self, registry: Optional["IngredientRegistry"]) -> None:
        if registry is not None:
            self._seed_from_registry(registry)
        if not self._path.exists():
            logger.warning("Synonyms file not found at %s; using registry names only.", self._path)
            return
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        self._add_all((data.get("synonyms") or {}).items())
        logger.info("Loaded %d synonym keys from %s", len(self._by_key), self._path)

    def _seed_from_registry(self, registry: "IngredientRegistry") -> None:
        for ing in registry:
            self._add(ing.common_name, ing.id)

    def _add_all(self, pairs: Iterable[tuple[str, str]]) -> None:
        for phrase, ingredient_id in pairs:
            self._add(phrase, ingredient_id)

    def _add(self, phrase: str, ingredient_id: str) -> None:
        key = normalize_label(phrase)
        if not key or not ingredient_id:
            return
        existing = self._by_key.get(key)
        if existing is not None and existing != ingredient_id:
            logger.warning(
                "SYNONYM_CONFLICT key=%s existing=%s ignored=%s", key, existing, ingredient_id,
            )
            return
        self._by_key[key] = ingredient_id

    def _build_views(self) -> None:
        self._stripped: dict[str, set[str]] = {}
        self._phrases_by_id: dict[str, list[str]] = {}
        for key, ingredient_id in self._by_key.items():
            self._stripped.setdefault(strip_descriptors(key), set()).add(ingredient_id)
            self._phrases_by_id.setdefault(ingredient_id, []).append(key)
        # Longest first; ties broken alphabetically so results are stable
        partial = sorted(
            (k for k in self._by_key if len(k) >= MIN_PARTIAL_PHRASE_LEN),
            key=lambda k: (-len(k), k),
        )
        self._partial: list[tuple[str, re.Pattern]] = [(k, _word_pattern(k)) for k in partial]

    def lookup(self, key: str) -> Optional[str]:
        """Exact lookup of an already-normalized key."""
        if not key:
            return None
        return self._by_key.get(key)

    def stripped_candidates(self, stripped_key: str) -> frozenset[str]:
        return frozenset(self._stripped.get(stripped_key, ()))

    def lookup_stripped(self, stripped_key: str) -> Optional[str]:
        """Exact lookup, then the stripped-key view when it denotes exactly one id."""
        hit = self.lookup(stripped_key)
        if hit is not None:
            return hit
        candidates = self._stripped.get(stripped_key)
        if candidates and len(candidates) == 1:
            return next(iter(candidates))
        if candidates:
            logger.debug("SYNONYM stripped key=%s ambiguous ids=%s", stripped_key, sorted(candidates))
        return None

    def partial_candidates(self, key: str) -> set[str]:
        """
        Ids whose phrases occur as whole words inside key (longest first, shorter
        phrases inside an accepted phrase are shadowed). When nothing is contained,
        fall back to phrases that contain key itself as whole words.
        """
        if not key:
            return set()
        accepted: list[str] = []
        for phrase, pattern in self._partial:
            if len(phrase) >= len(key) and phrase != key:
                continue
            if not pattern.search(key):
                continue
            if any(_word_pattern(phrase).search(longer) for longer in accepted):
                continue
            accepted.append(phrase)
        if accepted:
            return {self._by_key[p] for p in accepted}
        if len(key) < MIN_PARTIAL_PHRASE_LEN:
            return set()
        label_pattern = _word_pattern(key)
        return {self._by_key[p] for p, _ in self._partial if p != key and label_pattern.search(p)}

    def phrases_for(self, ingredient_id: str) -> list[str]:
        return list(self._phrases_by_id.get(ingredient_id, ()))

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def keys(self) -> list[str]:
        return list(self._by_key.keys())

    def __len__(self) -> int:
        return len(self._by_key)
