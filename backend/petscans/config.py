"""
Feature flags, paths, and centralized configuration.
All resolution relative to the repository root unless PETSCANS_DATA_DIR is set.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Repo root: backend/petscans/config.py -> parent=petscans, parent.parent=backend, parent.parent.parent=repo
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_REPO_ROOT = _BACKEND_DIR.parent

# --- Feature flags ---
def get_offline_cache_enabled() -> bool:
    return os.environ.get("OFFLINE_CACHE_ENABLED", "true").lower() in ("1", "true", "yes")

# --- Data paths ---
def get_data_dir() -> Path:
    override = os.environ.get("PETSCANS_DATA_DIR", "").strip()
    if override:
        return Path(override)
    return _REPO_ROOT / "data"

def get_ingredients_path() -> Path:
    return get_data_dir() / "ingredients.json"

def get_synonyms_path() -> Path:
    return get_data_dir() / "synonyms.json"

def get_rules_path() -> Path:
    return get_data_dir() / "rules.json"

def get_product_cache_path() -> Path:
    return get_data_dir() / "product_cache.json"

# --- External providers (lazy read from env) ---
def get_upcitemdb_api_key() -> str:
    return os.environ.get("UPCITEMDB_API_KEY", "").strip()

def get_serper_api_key() -> str:
    return os.environ.get("SERPER_API_KEY", "").strip()

def get_firecrawl_api_key() -> str:
    return os.environ.get("FIRECRAWL_API_KEY", "").strip()

# Provider timeout defaults (seconds)
PROVIDER_TIMEOUT = int(os.environ.get("PROVIDER_TIMEOUT", "15"))
# Firecrawl extraction can take a long time for JS-heavy pages
EXTRACTION_TIMEOUT = int(os.environ.get("EXTRACTION_TIMEOUT", "120"))
PRODUCT_CACHE_TTL_SECONDS = int(os.environ.get("PRODUCT_CACHE_TTL_SECONDS", str(30 * 24 * 3600)))

# --- Startup logging ---
def log_config() -> None:
    logger.info(
        "CONFIG: data_dir=%s ingredients=%s synonyms=%s rules=%s offline_cache=%s "
        "upcitemdb_key=%s serper_key=%s firecrawl_key=%s provider_timeout=%ds extraction_timeout=%ds",
        get_data_dir(),
        get_ingredients_path().exists(), get_synonyms_path().exists(), get_rules_path().exists(),
        get_offline_cache_enabled(),
        bool(get_upcitemdb_api_key()), bool(get_serper_api_key()), bool(get_firecrawl_api_key()),
        PROVIDER_TIMEOUT, EXTRACTION_TIMEOUT,
    )
