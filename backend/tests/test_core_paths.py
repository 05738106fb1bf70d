"""
Unit tests for data path resolution and knowledge base loading. Run from backend directory:
  cd backend && python -m pytest tests/test_core_paths.py -v
"""
import pytest
from pathlib import Path


def test_backend_is_current_or_on_path():
    """Ensure tests run with backend as cwd or on path so 'petscans' resolves."""
    try:
        from petscans import config
    except ImportError:
        pytest.skip("Run tests from backend directory: cd backend && python -m pytest ...")
        return
    assert config._BACKEND_DIR.is_dir()
    assert (config._BACKEND_DIR / "petscans").is_dir()
    assert config._REPO_ROOT.is_dir()
    assert config._REPO_ROOT.name != "petscans"


def test_data_paths_resolve_under_repo_data(monkeypatch):
    """Ingredients, synonyms, rules and product cache live in repo_root/data."""
    from petscans.config import (
        _REPO_ROOT,
        get_ingredients_path,
        get_product_cache_path,
        get_rules_path,
        get_synonyms_path,
    )
    monkeypatch.delenv("PETSCANS_DATA_DIR", raising=False)
    assert get_ingredients_path() == _REPO_ROOT / "data" / "ingredients.json"
    assert get_synonyms_path() == _REPO_ROOT / "data" / "synonyms.json"
    assert get_rules_path() == _REPO_ROOT / "data" / "rules.json"
    assert get_product_cache_path() == _REPO_ROOT / "data" / "product_cache.json"


def test_data_dir_override(monkeypatch, tmp_path):
    """PETSCANS_DATA_DIR moves every data file."""
    from petscans.config import get_data_dir, get_rules_path
    monkeypatch.setenv("PETSCANS_DATA_DIR", str(tmp_path))
    assert get_data_dir() == Path(tmp_path)
    assert get_rules_path() == Path(tmp_path) / "rules.json"


def test_offline_cache_flag(monkeypatch):
    """OFFLINE_CACHE_ENABLED accepts 1/true/yes; anything else disables it."""
    from petscans.config import get_offline_cache_enabled
    monkeypatch.setenv("OFFLINE_CACHE_ENABLED", "yes")
    assert get_offline_cache_enabled() is True
    monkeypatch.setenv("OFFLINE_CACHE_ENABLED", "off")
    assert get_offline_cache_enabled() is False


def test_data_files_exist_when_data_present():
    """When data/ exists in repo, all three knowledge base files exist."""
    from petscans.config import _REPO_ROOT, get_ingredients_path, get_rules_path, get_synonyms_path
    if not (_REPO_ROOT / "data").exists():
        pytest.skip("data/ directory not found")
    for path in (get_ingredients_path(), get_synonyms_path(), get_rules_path()):
        assert path.exists(), f"Expected {path} to exist"


def test_ingredient_registry_loads_from_resolved_path():
    """IngredientRegistry uses config path and loads when file exists."""
    from petscans.config import get_ingredients_path
    from petscans.ontology.ingredient_registry import IngredientRegistry
    if not get_ingredients_path().exists():
        pytest.skip("ingredients.json not found")
    reg = IngredientRegistry()
    assert len(reg) > 0
    assert reg.get_version()
    assert reg.get("chicken") is not None
    assert reg.get(None) is None


def test_rule_registry_loads_from_resolved_path():
    """RuleRegistry uses config path; every rule points at a registered ingredient."""
    from petscans.config import get_ingredients_path, get_rules_path
    from petscans.ontology.ingredient_registry import IngredientRegistry
    from petscans.rules import RuleRegistry
    if not get_rules_path().exists() or not get_ingredients_path().exists():
        pytest.skip("rules.json not found")
    rules = RuleRegistry()
    ingredients = IngredientRegistry()
    assert len(rules) > 0
    for rule_id in rules.list_ids():
        assert rules.get(rule_id).ingredient_id in ingredients


def test_every_ingredient_has_risk_for_each_species():
    """Risk is recorded per species, never as one scalar."""
    from petscans.config import get_ingredients_path
    from petscans.ontology.ingredient_registry import IngredientRegistry
    if not get_ingredients_path().exists():
        pytest.skip("ingredients.json not found")
    for ing in IngredientRegistry():
        for species in ing.species:
            assert ing.risk_for(species) is not None, ing.id


def test_knowledge_base_singleton_and_stats():
    """get_knowledge_base loads once; stats reports all three counts."""
    from petscans.config import get_ingredients_path
    from petscans.ontology.knowledge_base import get_knowledge_base, reset_knowledge_base
    if not get_ingredients_path().exists():
        pytest.skip("ingredients.json not found")
    reset_knowledge_base()
    kb = get_knowledge_base()
    assert get_knowledge_base() is kb
    stats = kb.stats()
    assert stats["ingredients"] > 0
    assert stats["synonyms"] >= stats["ingredients"]
    assert stats["rules"] > 0
