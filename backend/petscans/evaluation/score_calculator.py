"""
Deterministic score calculator. Ranked matches -> explainable ScoreBreakdown.
Safety: species risk baseline + applicable rules + unknown-label penalties, rank decayed.
Suitability: allergen conflicts against the pet's allergen set.
Processing: informational rank-weighted mean; never gates safety or suitability.
Any critical rule caps safety and total.
"""
from dataclasses import replace
from typing import Iterable, List, Optional, Tuple
import re
import logging

from petscans.evaluation.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig
from petscans.models.matched import MatchedIngredient
from petscans.models.score import (
    ExplanationFactor,
    FactorImpact,
    RatingLabel,
    ScoreBreakdown,
    ScoreExplanation,
    ScoreSource,
    WarningFlag,
    WarningType,
)
from petscans.normalization.normalizer import normalize_label
from petscans.ontology.ingredient_registry import IngredientRegistry
from petscans.ontology.ingredient_schema import Category, Ingredient, ProcessingLevel, RiskLevel, Species
from petscans.ontology.synonym_index import SynonymIndex
from petscans.rules.rule_registry import RuleRegistry
from petscans.rules.rule_schema import Severity

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _round(value: float) -> float:
    return round(_clamp(value), 1)


def _word_match(text: str, word: str) -> bool:
    """Whole-word match tolerant of simple plurals: 'egg' matches 'eggs', 'peas' matches 'pea'."""
    stem = word[:-1] if len(word) > 3 and word.endswith("s") else word
    return bool(re.search(r"\b" + re.escape(stem) + r"(?:s|es)?\b", text))


class ScoreCalculator:
    def __init__(
        self,
        ingredients: Optional[IngredientRegistry] = None,
        rules: Optional[RuleRegistry] = None,
        synonyms: Optional[SynonymIndex] = None,
        config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    ):
        if ingredients is None or rules is None or synonyms is None:
            from petscans.ontology.knowledge_base import get_knowledge_base
            kb = get_knowledge_base()
            ingredients = kb.ingredients if ingredients is None else ingredients
            rules = kb.rules if rules is None else rules
            synonyms = kb.synonyms if synonyms is None else synonyms
        self._ingredients = ingredients
        self._rules = rules
        self._synonyms = synonyms
        self._config = config

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def calculate(
        self,
        species: Species,
        category: Category,
        matched: Iterable[MatchedIngredient],
        allergens: frozenset = frozenset(),
        score_source: ScoreSource = ScoreSource.DATABASE_VERIFIED,
        ocr_confidence: Optional[float] = None,
        pet_name: Optional[str] = None,
    ) -> ScoreBreakdown:
        """
        Score a ranked ingredient list for one species and product category.
        Identical inputs always produce an identical breakdown.
        """
        matched = list(matched)
        if not matched:
            return replace(ScoreBreakdown.empty(score_source), ocr_confidence=ocr_confidence)

        resolved = [(m, self._ingredients.get(m.ingredient_id)) for m in matched]

        safety, safety_flags, safety_factors, unmatched, saw_critical = self._safety(
            resolved, species, category,
        )
        suitability, allergen_flags, suitability_factors = self._suitability(
            resolved, allergens or frozenset(), pet_name,
        )
        processing, processing_explanation = self._processing(resolved)

        weights = self._config.weights_for(category).resolved(processing is not None)
        total = weights.safety * safety + weights.suitability * suitability
        if processing is not None:
            total += weights.processing * processing

        if saw_critical:
            safety = min(safety, self._config.critical_cap)
            total = min(total, self._config.critical_cap)
            logger.info(
                "SCORE critical_cap applied species=%s category=%s cap=%s",
                species.value, category.value, self._config.critical_cap,
            )

        breakdown = ScoreBreakdown(
            total=_round(total),
            safety=_round(safety),
            suitability=_round(suitability),
            processing=_round(processing) if processing is not None else None,
            flags=tuple(safety_flags + allergen_flags),
            unmatched=tuple(unmatched),
            matched_count=len(matched) - len(unmatched),
            total_count=len(matched),
            score_source=score_source,
            ocr_confidence=ocr_confidence,
            safety_explanation=self._safety_explanation(safety_factors, saw_critical),
            suitability_explanation=self._suitability_explanation(suitability_factors, pet_name),
            processing_explanation=processing_explanation,
        )
        logger.debug(
            "SCORE species=%s category=%s total=%s safety=%s suitability=%s processing=%s flags=%d",
            species.value, category.value, breakdown.total, breakdown.safety,
            breakdown.suitability, breakdown.processing, len(breakdown.flags),
        )
        return breakdown

    def _safety(
        self,
        resolved: List[Tuple[MatchedIngredient, Optional[Ingredient]]],
        species: Species,
        category: Category,
    ) -> Tuple[float, List[WarningFlag], List[ExplanationFactor], List[str], bool]:
        cfg = self._config
        penalty = 0.0
        flags: List[WarningFlag] = []
        factors: List[ExplanationFactor] = []
        unmatched: List[str] = []
        saw_critical = False

        for m, ing in resolved:
            weight = cfg.rank_weight(m.rank)
            if ing is None:
                # Unknown label, or a synonym pointing at an id missing from the registry
                unmatched.append(m.label)
                penalty += cfg.unknown_penalty(m.rank) * weight
                factors.append(ExplanationFactor(
                    id=f"unknown-{m.label}",
                    description="Unknown ingredient - not in database",
                    impact=FactorImpact.NEGATIVE,
                    ingredient_name=m.label,
                ))
                continue

            risk = ing.risk_for(species)
            penalty += cfg.risk_penalty(risk) * weight
            if risk == RiskLevel.TOXIC:
                factors.append(ExplanationFactor(
                    id=ing.id,
                    description=f"Toxic to {species.display_name.lower()}s",
                    impact=FactorImpact.NEGATIVE,
                    ingredient_name=ing.common_name,
                ))
            elif risk == RiskLevel.CAUTION:
                factors.append(ExplanationFactor(
                    id=ing.id,
                    description="Use with caution",
                    impact=FactorImpact.NEGATIVE,
                    ingredient_name=ing.common_name,
                ))
            elif risk == RiskLevel.SAFE and m.rank <= cfg.positive_factor_rank:
                factors.append(ExplanationFactor(
                    id=ing.id,
                    description="Safe ingredient",
                    impact=FactorImpact.POSITIVE,
                    ingredient_name=ing.common_name,
                ))

            for rule in self._rules.rules_for(ing.id, species, category):
                critical = rule.severity == Severity.CRITICAL
                saw_critical = saw_critical or critical
                penalty += rule.penalty * weight
                flags.append(WarningFlag(
                    severity=rule.severity,
                    title="Critical warning" if critical else "Ingredient warning",
                    explain=rule.explain,
                    type=WarningType.SAFETY,
                    ingredient_id=ing.id,
                    source=rule.source,
                ))
                factors.append(ExplanationFactor(
                    id=f"rule-{rule.id}",
                    description=rule.explain,
                    impact=FactorImpact.NEGATIVE,
                    ingredient_name=ing.common_name,
                ))
                logger.info(
                    "RULE_FIRED rule=%s ingredient=%s severity=%s rank=%d",
                    rule.id, ing.id, rule.severity.value, m.rank,
                )

        return _clamp(100.0 - penalty), flags, factors, unmatched, saw_critical

    def _suitability(
        self,
        resolved: List[Tuple[MatchedIngredient, Optional[Ingredient]]],
        allergens: frozenset,
        pet_name: Optional[str],
    ) -> Tuple[float, List[WarningFlag], List[ExplanationFactor]]:
        pet = pet_name or "your pet"
        suitability = 100.0
        flags: List[WarningFlag] = []
        factors: List[ExplanationFactor] = []
        if not allergens:
            return suitability, flags, factors

        terms = sorted(a for a in (normalize_label(x) for x in allergens) if a)
        for m, ing in resolved:
            if ing is None:
                continue
            names = [normalize_label(ing.common_name)] + self._synonyms.phrases_for(ing.id)
            # One penalty per ingredient, however many allergen terms it hits
            if any(_word_match(name, t) for t in terms for name in names):
                suitability -= self._config.allergen_penalty(m.rank)
                flags.append(WarningFlag(
                    severity=Severity.HIGH,
                    title="Possible allergen",
                    explain=f"{ing.common_name} may conflict with {pet}'s allergen profile.",
                    type=WarningType.ALLERGEN,
                    ingredient_id=ing.id,
                ))
                factors.append(ExplanationFactor(
                    id=f"allergen-{ing.id}",
                    description=f"Matches {pet}'s allergen profile",
                    impact=FactorImpact.NEGATIVE,
                    ingredient_name=ing.common_name,
                ))

        if not factors:
            factors.append(ExplanationFactor(
                id="no-allergens",
                description=f"No known allergens for {pet}",
                impact=FactorImpact.POSITIVE,
            ))
        return _clamp(suitability), flags, factors

    def _processing(
        self,
        resolved: List[Tuple[MatchedIngredient, Optional[Ingredient]]],
    ) -> Tuple[Optional[float], Optional[ScoreExplanation]]:
        cfg = self._config
        weighted = 0.0
        weight_sum = 0.0
        by_level: dict[ProcessingLevel, float] = {}
        factors: List[ExplanationFactor] = []
        for m, ing in resolved:
            if ing is None or ing.processing_level is None:
                continue
            level = ing.processing_level
            w = cfg.rank_weight(m.rank)
            weighted += cfg.processing_scores[level] * w
            weight_sum += w
            by_level[level] = by_level.get(level, 0.0) + w
            if level == ProcessingLevel.ULTRA_PROCESSED:
                factors.append(ExplanationFactor(
                    id=f"processing-{ing.id}",
                    description=level.display_name,
                    impact=FactorImpact.NEGATIVE,
                    ingredient_name=ing.common_name,
                ))
            elif level == ProcessingLevel.UNPROCESSED and m.rank <= cfg.positive_factor_rank:
                factors.append(ExplanationFactor(
                    id=f"processing-{ing.id}",
                    description=level.display_name,
                    impact=FactorImpact.POSITIVE,
                    ingredient_name=ing.common_name,
                ))
        if weight_sum == 0:
            return None, None
        # Ties go to the more processed level
        dominant = max(by_level, key=lambda lvl: (by_level[lvl], lvl.value))
        explanation = ScoreExplanation(
            factors=tuple(factors[: cfg.max_explanation_factors]),
            summary=f"Mostly {dominant.display_name.lower()} ingredients.",
        )
        return weighted / weight_sum, explanation

    def _safety_explanation(self, factors: List[ExplanationFactor], saw_critical: bool) -> ScoreExplanation:
        # A toxic ingredient that also fires a rule still counts once
        negative = len({f.ingredient_name or f.id for f in factors if f.impact == FactorImpact.NEGATIVE})
        if negative == 0:
            summary = "All ingredients appear safe."
        elif negative == 1:
            summary = "One ingredient requires attention."
        else:
            summary = f"{negative} ingredients require attention."
        return ScoreExplanation(
            factors=tuple(factors[: self._config.max_explanation_factors]),
            summary=summary,
            label_override=RatingLabel.AVOID if saw_critical else None,
        )

    def _suitability_explanation(self, factors: List[ExplanationFactor], pet_name: Optional[str]) -> ScoreExplanation:
        pet = pet_name or "your pet"
        count = sum(1 for f in factors if f.impact == FactorImpact.NEGATIVE)
        if count == 0:
            summary = f"No known allergens detected for {pet}."
        elif count == 1:
            summary = f"Contains 1 potential allergen for {pet}."
        else:
            summary = f"Contains {count} potential allergens for {pet}."
        return ScoreExplanation(factors=tuple(factors), summary=summary)
