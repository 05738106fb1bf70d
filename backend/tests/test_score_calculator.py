"""
Unit tests: safety/suitability/processing sub-scores, critical cap, explanations and label scenarios.
Run from backend: python -m pytest tests/test_score_calculator.py -v
"""
import pytest


def _ingredient(id, name, dog="safe", cat="safe", level=None, categories=("food", "treat")):
    from petscans.ontology.ingredient_schema import Ingredient
    return Ingredient.from_dict({
        "id": id,
        "common_name": name,
        "species": ["dog", "cat"],
        "categories": list(categories),
        "risk_levels": {"dog": dog, "cat": cat},
        "processing_level": level,
    })


def _rule(id, ingredient_id, severity, impact, species=None, categories=None):
    from petscans.rules import Rule
    return Rule.from_dict({
        "id": id,
        "ingredient_id": ingredient_id,
        "applies_to": {"species": species or [], "categories": categories or []},
        "severity": severity,
        "score_impact": impact,
        "explain": f"{ingredient_id} {severity}",
    })


def _m(label, rank, ingredient_id=None):
    from petscans.models.matched import MatchedIngredient
    return MatchedIngredient(label=label, rank=rank, ingredient_id=ingredient_id)


@pytest.fixture
def calc():
    from petscans.evaluation.score_calculator import ScoreCalculator
    from petscans.ontology.ingredient_registry import IngredientRegistry
    from petscans.ontology.synonym_index import SynonymIndex
    from petscans.rules import RuleRegistry
    registry = IngredientRegistry.from_ingredients([
        _ingredient("chicken", "Chicken", level=1),
        _ingredient("egg", "Egg", level=1),
        _ingredient("onion", "Onion", dog="toxic", cat="toxic", level=1),
        _ingredient("garlic", "Garlic", dog="caution", cat="toxic", level=1),
        _ingredient("bha", "BHA", dog="caution", cat="caution", level=4),
        _ingredient("water", "Water"),
        _ingredient("tea_tree_oil", "Tea Tree Oil", dog="caution", cat="toxic", categories=("cosmetic",)),
    ])
    rules = RuleRegistry.from_rules([
        _rule("onion_high", "onion", "high", -30, categories=["food", "treat"]),
        _rule("tea_tree_cat", "tea_tree_oil", "critical", -50, species=["cat"]),
        _rule("tea_tree_dog", "tea_tree_oil", "high", -25, species=["dog"]),
    ])
    synonyms = SynonymIndex.from_mapping({"whole egg": "egg", "egg yolk": "egg"}, registry=registry)
    return ScoreCalculator(ingredients=registry, rules=rules, synonyms=synonyms)


def test_all_safe_scores_full(calc):
    """Safe, minimally processed ingredients score 100 across the board."""
    from petscans.models.score import RatingLabel
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Chicken", 1, "chicken"), _m("Egg", 2, "egg")])
    assert (b.total, b.safety, b.suitability, b.processing) == (100.0, 100.0, 100.0, 100.0)
    assert b.flags == ()
    assert b.rating_label == RatingLabel.EXCELLENT
    assert b.safety_explanation.summary == "All ingredients appear safe."
    assert b.match_percentage == 100


def test_toxic_ingredient_with_rule(calc):
    """Risk baseline and rule penalty both apply at full weight on rank 1."""
    from petscans.models.score import WarningType
    from petscans.ontology.ingredient_schema import Category, Species
    from petscans.rules import Severity
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Onion", 1, "onion")])
    assert b.safety == 30.0
    assert b.total == 54.5
    [flag] = b.flags
    assert flag.severity == Severity.HIGH
    assert flag.type == WarningType.SAFETY
    assert flag.title == "Ingredient warning"
    assert flag.identity == "high-safety-onion"
    assert b.safety_explanation.summary == "One ingredient requires attention."
    assert not b.has_critical_flags


def test_rank_decay_shrinks_later_penalties(calc):
    """The same toxic ingredient costs less further down the list."""
    from petscans.ontology.ingredient_schema import Category, Species
    first = calc.calculate(Species.DOG, Category.FOOD, [_m("Onion", 1, "onion"), _m("Chicken", 2, "chicken")])
    third = calc.calculate(
        Species.DOG, Category.FOOD,
        [_m("Chicken", 1, "chicken"), _m("Egg", 2, "egg"), _m("Onion", 3, "onion")],
    )
    assert third.safety == pytest.approx(100 - 70 * 0.64, abs=0.05)
    assert third.safety > first.safety


def test_rule_scope_by_category(calc):
    """A food-scoped rule does not fire for a cosmetic; the risk baseline still applies."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.COSMETIC, [_m("Onion", 1, "onion")])
    assert b.flags == ()
    assert b.safety == 60.0


def test_caution_baseline(calc):
    """Caution ingredients cost 15 points at rank 1 and produce a negative factor."""
    from petscans.models.score import FactorImpact
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Garlic", 1, "garlic")])
    assert b.safety == 85.0
    assert b.safety_explanation.factors[0].description == "Use with caution"
    assert b.safety_explanation.factors[0].impact == FactorImpact.NEGATIVE


def test_critical_rule_caps_total(calc):
    """A critical rule caps safety and total and forces an avoid label."""
    from petscans.models.score import RatingLabel
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(
        Species.CAT, Category.COSMETIC,
        [_m("Water", 1, "water"), _m("Water", 2, "water"), _m("Tea Tree Oil", 3, "tea_tree_oil")],
    )
    assert b.has_critical_flags
    assert b.safety <= calc.config.critical_cap
    assert b.total <= calc.config.critical_cap
    assert b.rating_label == RatingLabel.AVOID
    assert b.safety_explanation.label_override == RatingLabel.AVOID
    assert b.flags[0].title == "Critical warning"


def test_species_scoped_rule(calc):
    """The same cosmetic gets a high rule for dogs and no cap."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.COSMETIC, [_m("Tea Tree Oil", 1, "tea_tree_oil")])
    assert not b.has_critical_flags
    assert b.safety == 60.0
    assert b.total == 76.0


def test_unknown_ingredient_penalty(calc):
    """Unmatched labels cost 3.0 in the top five and 1.5 after, rank weighted."""
    from petscans.ontology.ingredient_schema import Category, Species
    top = calc.calculate(Species.DOG, Category.FOOD, [_m("Mystery Meal", 1)])
    assert top.safety == 97.0
    assert top.unmatched == ("Mystery Meal",)
    assert top.matched_count == 0
    assert top.total_count == 1
    assert top.processing is None
    later = calc.calculate(
        Species.DOG, Category.FOOD,
        [_m("Chicken", r, "chicken") for r in range(1, 6)] + [_m("Mystery Meal", 6)],
    )
    assert later.safety == pytest.approx(100 - 1.5 * 0.8 ** 5, abs=0.05)


def test_unknown_monotonicity(calc):
    """Replacing a penalty-free ingredient with an unknown label never raises safety."""
    from petscans.ontology.ingredient_schema import Category, Species
    known = calc.calculate(Species.DOG, Category.FOOD, [_m("Chicken", 1, "chicken"), _m("Egg", 2, "egg")])
    unknown = calc.calculate(Species.DOG, Category.FOOD, [_m("Chicken", 1, "chicken"), _m("Mystery", 2)])
    assert unknown.safety < known.safety


def test_id_missing_from_registry_counts_as_unknown(calc):
    """A matched id the registry does not hold is scored as unknown."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Ghost", 1, "ghost_ingredient")])
    assert b.unmatched == ("Ghost",)
    assert b.safety == 97.0


def test_allergen_penalty_and_flag(calc):
    """An allergen in the top five costs 30 suitability and raises a high allergen flag."""
    from petscans.models.score import WarningType
    from petscans.ontology.ingredient_schema import Category, Species
    from petscans.rules import Severity
    b = calc.calculate(
        Species.DOG, Category.FOOD,
        [_m("Chicken", 1, "chicken"), _m("Whole Egg", 2, "egg")],
        allergens=frozenset({"egg"}),
        pet_name="Rex",
    )
    assert b.suitability == 70.0
    [flag] = b.allergen_flags
    assert flag.severity == Severity.HIGH
    assert flag.type == WarningType.ALLERGEN
    assert flag.title == "Possible allergen"
    assert flag.explain == "Egg may conflict with Rex's allergen profile."
    assert b.other_flags == []
    assert b.suitability_explanation.summary == "Contains 1 potential allergen for Rex."


def test_allergen_plural_and_rank_tier(calc):
    """'eggs' matches Egg; below the top five the penalty is 15."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(
        Species.DOG, Category.FOOD,
        [_m("Chicken", r, "chicken") for r in range(1, 6)] + [_m("Egg", 6, "egg")],
        allergens=frozenset({"eggs"}),
    )
    assert b.suitability == 85.0


def test_allergen_penalized_once_per_ingredient(calc):
    """An ingredient hit by several allergen terms costs one penalty and raises one flag."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(
        Species.DOG, Category.FOOD, [_m("Whole Egg", 1, "egg")],
        allergens=frozenset({"egg", "whole egg", "yolk"}),
    )
    assert b.suitability == 70.0
    assert len(b.allergen_flags) == 1
    assert b.suitability_explanation.summary == "Contains 1 potential allergen for your pet."


def test_allergen_matches_synonym_phrases(calc):
    """Allergen terms are checked against synonym phrases as well as the common name."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Egg", 1, "egg")], allergens=frozenset({"yolk"}))
    assert b.suitability == 70.0


def test_no_allergens_leaves_suitability_untouched(calc):
    """An empty allergen set keeps suitability at exactly 100."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Egg", 1, "egg"), _m("Mystery", 2)])
    assert b.suitability == 100.0
    assert b.allergen_flags == []
    assert b.suitability_explanation.summary == "No known allergens detected for your pet."


def test_allergens_without_conflict_add_positive_factor(calc):
    """A profile with allergens but no conflict says so."""
    from petscans.models.score import FactorImpact
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(
        Species.CAT, Category.FOOD, [_m("Chicken", 1, "chicken")],
        allergens=frozenset({"beef"}), pet_name="Milo",
    )
    assert b.suitability == 100.0
    [factor] = b.suitability_explanation.factors
    assert factor.impact == FactorImpact.POSITIVE
    assert factor.description == "No known allergens for Milo"


def test_processing_rank_weighted_mean(calc):
    """Processing is the rank-weighted mean over ingredients that carry a level."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("BHA", 1, "bha"), _m("Chicken", 2, "chicken")])
    assert b.processing == pytest.approx((25 * 1.0 + 100 * 0.8) / 1.8, abs=0.05)
    assert b.processing_explanation.summary == "Mostly ultra-processed ingredients."


def test_processing_absent_redistributes_weight(calc):
    """Without any processing level the processing weight is spread over the rest."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m("Water", 1, "water")])
    assert b.processing is None
    assert b.processing_explanation is None
    assert b.total == 100.0


def test_scores_always_within_bounds(calc):
    """Even a list of nothing but toxic ingredients stays within [0, 100]."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(
        Species.CAT, Category.FOOD,
        [_m("Onion", r, "onion") for r in range(1, 11)],
        allergens=frozenset({"onion"}),
    )
    for value in (b.total, b.safety, b.suitability, b.processing):
        assert 0.0 <= value <= 100.0
    assert b.safety == 0.0
    assert b.suitability == 0.0


def test_empty_input_returns_empty_breakdown(calc):
    """No labels yields the empty breakdown with the requested source."""
    from petscans.models.score import ScoreSource
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [], score_source=ScoreSource.MANUAL_ENTRY)
    assert b.total == 0.0
    assert b.total_count == 0
    assert b.match_rate == 0.0
    assert b.score_source == ScoreSource.MANUAL_ENTRY


def test_identical_inputs_identical_breakdown(calc):
    """calculate is a pure function of its inputs."""
    from petscans.models.score import ScoreSource
    from petscans.ontology.ingredient_schema import Category, Species
    matched = [_m("Onion", 1, "onion"), _m("Egg", 2, "egg"), _m("Mystery", 3)]
    args = (Species.DOG, Category.TREAT, matched)
    kwargs = dict(allergens=frozenset({"egg"}), score_source=ScoreSource.OCR_ESTIMATED, ocr_confidence=0.8)
    assert calc.calculate(*args, **kwargs) == calc.calculate(*args, **kwargs)


def test_explanation_factors_are_limited(calc):
    """Safety explanations carry at most the configured number of factors."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = calc.calculate(Species.DOG, Category.FOOD, [_m(f"Unknown {r}", r) for r in range(1, 9)])
    assert len(b.safety_explanation.factors) == calc.config.max_explanation_factors
    assert b.safety_explanation.summary == "8 ingredients require attention."


def test_rating_label_thresholds():
    """75/50/25 thresholds; worst label wins."""
    from petscans.models.score import RatingLabel
    assert RatingLabel.from_score(75) == RatingLabel.EXCELLENT
    assert RatingLabel.from_score(74.9) == RatingLabel.GOOD
    assert RatingLabel.from_score(50) == RatingLabel.GOOD
    assert RatingLabel.from_score(25) == RatingLabel.CAUTION
    assert RatingLabel.from_score(24.9) == RatingLabel.AVOID
    assert RatingLabel.worst(RatingLabel.EXCELLENT, None, RatingLabel.CAUTION) == RatingLabel.CAUTION


def test_scoring_config_weights_sum_to_one():
    """Every category's weights sum to 1, with or without processing."""
    from petscans.evaluation.scoring_config import CATEGORY_WEIGHTS
    for weights in CATEGORY_WEIGHTS.values():
        for w in (weights, weights.resolved(False)):
            assert w.safety + w.suitability + w.processing == pytest.approx(1.0)


def _analyze(text, species, category, allergens=()):
    from petscans.analysis import analyze_ingredients_text
    from petscans.config import get_ingredients_path
    if not get_ingredients_path().exists():
        pytest.skip("ingredients.json not found")
    return analyze_ingredients_text(text, species, category, allergens=allergens).breakdown


def test_scenario_chicken_dry_food():
    """Deboned Chicken, Chicken Meal, Brown Rice for a dog scores excellent with full match."""
    from petscans.models.score import RatingLabel
    from petscans.ontology.ingredient_schema import Category, Species
    b = _analyze("Deboned Chicken, Chicken Meal, Brown Rice", Species.DOG, Category.FOOD)
    assert b.match_percentage == 100
    assert not b.has_critical_flags
    assert b.rating_label in (RatingLabel.GOOD, RatingLabel.EXCELLENT)
    assert b.total == 98.5


def test_scenario_tea_tree_shampoo_for_cat():
    """Tea Tree Oil, Water, Glycerin for a cat is capped by the critical rule."""
    from petscans.ontology.ingredient_schema import Category, Species
    from petscans.rules import Severity
    b = _analyze("Tea Tree Oil, Water, Glycerin", Species.CAT, Category.COSMETIC)
    critical = [f for f in b.flags if f.severity == Severity.CRITICAL]
    assert [f.ingredient_id for f in critical] == ["tea_tree_oil"]
    assert b.total <= 10.0


def test_scenario_salmon_allergy():
    """Salmon, Salmon Meal, Rice with a salmon allergy raises two allergen flags."""
    from petscans.ontology.ingredient_schema import Category, Species
    b = _analyze("Salmon, Salmon Meal, Rice", Species.DOG, Category.FOOD, allergens=["Salmon"])
    assert len(b.allergen_flags) == 2
    assert {f.ingredient_id for f in b.allergen_flags} == {"salmon", "salmon_meal"}
    assert b.suitability == 100 - 2 * 30


def test_scenario_grape_treat_is_avoid():
    """Grapes anywhere in a dog treat force an avoid rating."""
    from petscans.models.score import RatingLabel
    from petscans.ontology.ingredient_schema import Category, Species
    b = _analyze("Chicken, Sweet Potato, Oatmeal, Grapes", Species.DOG, Category.TREAT)
    assert b.has_critical_flags
    assert b.rating_label == RatingLabel.AVOID
    assert b.total <= 10.0


def test_scenario_propylene_glycol_species_scope():
    """Propylene glycol is flagged in cat food but not in dog food."""
    from petscans.ontology.ingredient_schema import Category, Species
    text = "Chicken, Rice, Propylene Glycol"
    dog = _analyze(text, Species.DOG, Category.FOOD)
    cat = _analyze(text, Species.CAT, Category.FOOD)
    assert [f.ingredient_id for f in dog.flags] == []
    assert [f.ingredient_id for f in cat.flags] == ["propylene_glycol"]
    assert cat.safety < dog.safety
