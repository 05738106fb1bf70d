"""
Scoring weights and penalties. Tuning lives here, not in the calculator.

Rank decay: w(rank) = decay_base ** (rank - 1); 0.8 gives rank 5 ~ 0.41,
rank 10 ~ 0.13, rank 15 ~ 0.04.
"""
from dataclasses import dataclass, field
from typing import Optional

from petscans.ontology.ingredient_schema import Category, ProcessingLevel, RiskLevel


@dataclass(frozen=True)
class CategoryWeights:
    safety: float
    suitability: float
    processing: float

    def resolved(self, has_processing: bool) -> "CategoryWeights":
        """Without a processing score its weight goes proportionally to the other two."""
        if has_processing or self.processing == 0:
            return self
        remaining = self.safety + self.suitability
        return CategoryWeights(
            safety=self.safety / remaining,
            suitability=self.suitability / remaining,
            processing=0.0,
        )


CATEGORY_WEIGHTS: dict[Category, CategoryWeights] = {
    Category.FOOD: CategoryWeights(safety=0.65, suitability=0.25, processing=0.10),
    Category.TREAT: CategoryWeights(safety=0.65, suitability=0.25, processing=0.10),
    Category.COSMETIC: CategoryWeights(safety=0.60, suitability=0.40, processing=0.0),
}

RISK_PENALTIES: dict[RiskLevel, float] = {
    RiskLevel.TOXIC: 40.0,
    RiskLevel.CAUTION: 15.0,
    RiskLevel.SAFE: 0.0,
}

PROCESSING_SCORES: dict[ProcessingLevel, float] = {
    ProcessingLevel.UNPROCESSED: 100.0,
    ProcessingLevel.CULINARY_INGREDIENT: 80.0,
    ProcessingLevel.PROCESSED: 55.0,
    ProcessingLevel.ULTRA_PROCESSED: 25.0,
}


@dataclass(frozen=True)
class ScoringConfig:
    decay_base: float = 0.8
    critical_cap: float = 10.0
    # Ranks at or above this cutoff count as primary ingredients
    top_rank_cutoff: int = 5
    unknown_penalty_top: float = 3.0
    unknown_penalty_other: float = 1.5
    allergen_penalty_top: float = 30.0
    allergen_penalty_other: float = 15.0
    max_explanation_factors: int = 5
    # Safe ingredients within this rank earn a positive explanation factor
    positive_factor_rank: int = 3
    risk_penalties: dict[RiskLevel, float] = field(default_factory=lambda: dict(RISK_PENALTIES))
    processing_scores: dict[ProcessingLevel, float] = field(default_factory=lambda: dict(PROCESSING_SCORES))
    category_weights: dict[Category, CategoryWeights] = field(default_factory=lambda: dict(CATEGORY_WEIGHTS))

    def rank_weight(self, rank: int) -> float:
        return self.decay_base ** (max(1, rank) - 1)

    def unknown_penalty(self, rank: int) -> float:
        return self.unknown_penalty_top if rank <= self.top_rank_cutoff else self.unknown_penalty_other

    def allergen_penalty(self, rank: int) -> float:
        return self.allergen_penalty_top if rank <= self.top_rank_cutoff else self.allergen_penalty_other

    def risk_penalty(self, risk: Optional[RiskLevel]) -> float:
        if risk is None:
            return 0.0
        return self.risk_penalties.get(risk, 0.0)

    def weights_for(self, category: Category) -> CategoryWeights:
        return self.category_weights[category]


DEFAULT_SCORING_CONFIG = ScoringConfig()
