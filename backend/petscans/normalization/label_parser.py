"""
Turn OCR or pasted free text into comma-separated form for the matcher.
Label text that already carries separators is only tidied; run-on text
("chicken meal brown rice peas") is segmented greedily using known phrases.
"""
import re
import logging
from typing import Iterable, List

logger = logging.getLogger(__name__)

# "Ingredients:" or "Contains:" and anything before them
_PREAMBLE_RE = re.compile(r"\b(?:ingredients?|contains)\s*:\s*", re.IGNORECASE)
# A bare "INGREDIENTS" heading only counts at the start of a line
_HEADING_RE = re.compile(r"^[ \t]*ingredients?\b[ \t]*", re.IGNORECASE | re.MULTILINE)
# At least ~1 separator per 6-7 words means the text is already a list
SEPARATOR_DENSITY_THRESHOLD = 0.15
_PUNCT = ".,;:!?\"'()[]{}"


class LabelTextParser:
    def __init__(self, known_phrases: Iterable[str]):
        self._known: set[str] = {p for p in known_phrases if p}
        self._multi_word: List[str] = sorted(
            (p for p in self._known if " " in p), key=lambda p: (-len(p), p),
        )

    @classmethod
    def from_synonym_index(cls, index) -> "LabelTextParser":
        return cls(index.keys())

    def parse(self, raw_text: str) -> str:
        if not raw_text or not isinstance(raw_text, str):
            return ""
        text = remove_preamble(raw_text)
        if has_existing_separators(text):
            return ", ".join(p.strip() for p in re.split(r"[,;]", text) if p.strip())
        parts = self._segment(text)
        logger.debug("LABEL_PARSER segmented words into %d labels", len(parts))
        return ", ".join(parts)

    def _segment(self, text: str) -> List[str]:
        remaining = " ".join(text.lower().split())
        out: List[str] = []
        while remaining:
            hit = self._match_multi_word(remaining)
            if hit is not None:
                out.append(hit)
                remaining = remaining[len(hit):].strip()
                continue
            first, _, rest = remaining.partition(" ")
            word = first.strip(_PUNCT)
            if word:
                # Known single words and unknown words alike become one label each
                out.append(word)
            remaining = rest.strip()
        return out

    def _match_multi_word(self, text: str):
        for phrase in self._multi_word:
            if text.startswith(phrase):
                after = text[len(phrase):]
                if not after or after[0].isspace() or after[0] == ",":
                    return phrase
        return None


def remove_preamble(text: str) -> str:
    """Drop everything up to an "Ingredients:"/"Contains:" marker, or a bare INGREDIENTS heading line."""
    m = _PREAMBLE_RE.search(text) or _HEADING_RE.search(text)
    if m is None:
        return text.strip()
    return text[m.end():].strip()


def has_existing_separators(text: str) -> bool:
    separators = text.count(",") + text.count(";")
    if separators == 0:
        return False
    words = len(text.split())
    return separators / max(1, words) > SEPARATOR_DENSITY_THRESHOLD
