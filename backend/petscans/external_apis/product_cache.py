"""
Offline product cache: data/product_cache.json keyed by barcode, with TTL.
Only products whose ingredient text was matched successfully are stored.
"""
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from petscans.config import PRODUCT_CACHE_TTL_SECONDS, get_offline_cache_enabled, get_product_cache_path
from petscans.external_apis.base import CachedProduct

logger = logging.getLogger(__name__)


class JsonProductCache:
    def __init__(
        self,
        path: Optional[Path] = None,
        ttl_seconds: int = PRODUCT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._path = path or get_product_cache_path()
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            self._entries = dict(data.get("products") or {})
            logger.info("Loaded %d cached products from %s", len(self._entries), self._path)
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Product cache load failed path=%s error=%s; starting empty", self._path, e)
            self._entries = {}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump({"products": self._entries}, f, indent=2)
        tmp.replace(self._path)

    def lookup_cached(self, barcode: str) -> Optional[CachedProduct]:
        key = (barcode or "").strip()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        age = self._clock() - float(entry.get("cached_at", 0))
        if age > self._ttl:
            logger.info("PRODUCT_CACHE expired barcode=%s age_days=%.1f", key, age / 86400)
            return None
        product = CachedProduct.from_dict(entry)
        if not product.ingredients_text.strip():
            return None
        logger.info("PRODUCT_CACHE hit barcode=%s", key)
        return product

    def store(self, barcode: str, product: CachedProduct) -> None:
        key = (barcode or "").strip()
        if not key or not product.ingredients_text.strip():
            return
        entry = product.to_dict()
        entry["barcode"] = key
        entry["cached_at"] = self._clock()
        with self._lock:
            self._entries[key] = entry
            self._save()
        logger.info("PRODUCT_CACHE stored barcode=%s source=%s", key, product.source)

    def clear(self) -> None:
        with self._lock:
            self._entries = {}
            self._save()

    def __len__(self) -> int:
        return len(self._entries)


_default_cache: Optional[JsonProductCache] = None


def get_product_cache() -> Optional[JsonProductCache]:
    """Process cache, or None when OFFLINE_CACHE_ENABLED is off."""
    if not get_offline_cache_enabled():
        return None
    global _default_cache
    if _default_cache is None:
        _default_cache = JsonProductCache()
    return _default_cache

