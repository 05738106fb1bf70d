"""
Deterministic label normalization. No fuzzy or probabilistic matching.
Produces keys for synonym lookup; resolution itself happens in the matcher.
"""
import re
import logging
from typing import List

logger = logging.getLogger(__name__)

# Known spelling variants (normalized label -> canonical phrase)
KNOWN_VARIANTS: dict[str, str] = {
    # By-product spellings
    "chicken byproduct meal": "chicken by-product meal",
    "chicken by product meal": "chicken by-product meal",
    "meat byproducts": "meat by-products",
    "meat by products": "meat by-products",
    # Common plurals -> canonical singular
    "carrots": "carrot",
    "peas": "pea",
    "blueberries": "blueberry",
    "cranberries": "cranberry",
    "apples": "apple",
    "grapes": "grape",
    "raisins": "raisin",
    "onions": "onion",
    "lentils": "lentil",
    "chickpeas": "chickpea",
    "sweet potatoes": "sweet potato",
    "potatoes": "potato",
    "eggs": "egg",
    # Spelling variants
    "flax seed": "flaxseed",
    "tea-tree oil": "tea tree oil",
    "glycerine": "glycerin",
    "vitamin k3": "menadione",
}

# Descriptor / processing words removed in the second resolution pass.
# "meal" and "fat" name distinct ingredients and are never stripped.
DESCRIPTOR_WORDS: tuple[str, ...] = (
    "dried", "dry", "dehydrated", "freeze-dried", "freeze dried", "air-dried",
    "frozen", "fresh", "raw", "cooked", "roasted", "canned", "prepared",
    "ground", "whole", "minced", "shredded", "flaked", "chopped", "diced",
    "powder", "powdered", "concentrate", "concentrated",
    "organic", "natural", "pure", "refined", "enriched", "fortified",
    "preserved", "deboned", "boneless", "cage-free", "wild-caught", "farm-raised",
)

_DESCRIPTOR_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(w) for w in sorted(DESCRIPTOR_WORDS, key=len, reverse=True)) + r")\b"
)
_BY_PRODUCT_RE = re.compile(r"\s*\bby-?\s?products?\b\s*")
_PERCENT_RE = re.compile(r"\b\d+(?:[.,]\d+)?\s*%")
_NUMBER_RE = re.compile(r"\b\d+(?:[.,]\d+)?\b")
_PAREN_RE = re.compile(r"\([^()]*\)|\[[^\[\]]*\]|\{[^{}]*\}")
_DISALLOWED_RE = re.compile(r"[^a-z0-9\s'/\-%.]")

# Separators used when a label list contains no commas at all
_FALLBACK_SEPARATORS_RE = re.compile(r"[;\n\r•·|]")
_OPENERS = "([{"
_CLOSERS = ")]}"


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_label(text: str) -> str:
    """
    Normalize a raw ingredient label for synonym lookup.
    - Lowercase, normalize smart quotes, drop parentheticals and stray brackets.
    - Keep letters, digits, whitespace, apostrophe, hyphen, slash.
    - Strip surrounding punctuation, apply known variants.
    Returns "" for non-string or empty input.
    """
    if not text or not isinstance(text, str):
        return ""
    t = text.lower()
    t = t.replace("’", "'").replace("‘", "'").replace("`", "'")
    # Innermost first, so nested parentheticals come out whole
    while True:
        stripped = _PAREN_RE.sub(" ", t)
        if stripped == t:
            break
        t = stripped
    t = _DISALLOWED_RE.sub(" ", t)
    # Trailing periods and stray percent signs only survive as part of percentages
    t = re.sub(r"(?<!\d)[.%]|[.](?!\d)", " ", t)
    t = _collapse(t).strip("'-/ ")
    if t in KNOWN_VARIANTS:
        canonical = KNOWN_VARIANTS[t]
        logger.debug("NORMALIZE variant applied raw=%s -> canonical=%s", t, canonical)
        return canonical
    return t


def strip_descriptors(normalized: str) -> str:
    """
    Remove descriptor words, by-product markers, percentages and bare numbers.
    If removal would leave nothing, the input is returned unchanged.
    """
    if not normalized:
        return ""
    t = _PERCENT_RE.sub(" ", normalized)
    t = _NUMBER_RE.sub(" ", t)
    t = _BY_PRODUCT_RE.sub(" ", t)
    t = _DESCRIPTOR_RE.sub(" ", t)
    t = _collapse(t).strip("'-/ ")
    if not t:
        return normalized
    return KNOWN_VARIANTS.get(t, t)


def _split_top_level_commas(text: str) -> List[str]:
    """
    Split on commas outside (), [] and {}. Depth never drops below zero, so a
    stray closer is ignored; an opener that is never closed splits on every comma.
    """
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    for ch in text:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    if depth > 0:
        logger.debug("SPLIT unbalanced parentheses; splitting on every comma")
        return text.split(",")
    return parts


def split_ingredient_list(raw_text: str) -> List[str]:
    """
    Split raw text into ordered, trimmed, non-empty labels.
    Commas outside parentheses are the separator whenever one is present;
    otherwise fall back to semicolons, newlines, bullets and pipes.
    "Chicken Fat (preserved with tocopherols, citric acid)" stays one label.
    """
    if not raw_text or not isinstance(raw_text, str):
        return []
    if "," in raw_text:
        parts = _split_top_level_commas(raw_text)
    else:
        parts = _FALLBACK_SEPARATORS_RE.split(raw_text)
    return [p.strip() for p in parts if p.strip()]
