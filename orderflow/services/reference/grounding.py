"""
Reference Grounding Service

Grounds free-text line fields against the reference catalogue.

Design decisions:
- Exact token / phrase containment first (abbreviations, finish codes, symbols)
- RapidFuzz partial_ratio fallback for names and aliases, to absorb OCR noise
- RapidFuzz 3.x requires explicit preprocessing via processor parameter
- Grounding misses are not errors; callers record them as violations
"""

import re
from typing import Iterable, List, Optional, Set, Tuple, TypeVar

from rapidfuzz import fuzz, utils
import structlog

from orderflow.models.reference_pack import Category, Finish, Manufacturer, ReferencePack

logger = structlog.get_logger(__name__)

T = TypeVar("T")

FUZZY_CUTOFF = 90
FUZZY_MIN_LENGTH = 5  # Short names match too much by accident
MIN_SYMBOL_LENGTH = 2

_TOKEN_RE = re.compile(r"[A-Z0-9]+")


def _tokens(text: str) -> Set[str]:
    return set(_TOKEN_RE.findall(text.upper()))


def _contains_phrase(text_upper: str, phrase: Optional[str]) -> bool:
    if not phrase or not phrase.strip():
        return False
    pattern = r"\b" + re.escape(phrase.strip().upper()) + r"\b"
    return re.search(pattern, text_upper) is not None


def _best_fuzzy(text: str, candidates: Iterable[Tuple[str, T]]) -> Optional[Tuple[T, float]]:
    processed = utils.default_process(text)
    best: Optional[Tuple[T, float]] = None
    for phrase, item in candidates:
        if not phrase or len(phrase.strip()) < FUZZY_MIN_LENGTH:
            continue
        # partial_ratio aligns the shorter string inside the longer one, so
        # text shorter than the phrase would match any fragment of it
        if len(processed) < len(utils.default_process(phrase)):
            continue
        score = fuzz.partial_ratio(
            phrase, text,
            processor=utils.default_process,
            score_cutoff=FUZZY_CUTOFF,
        )
        if score and (best is None or score > best[1]):
            best = (item, score)
    return best


class ReferenceService:
    """
    Synchronous grounding queries over one ReferencePack version.

    The pack is read-only; build a new service after a catalogue update.
    """

    def __init__(self, pack: ReferencePack):
        self.pack = pack

    @property
    def version(self) -> str:
        return self.pack.version

    def normalize_manufacturer(self, text: Optional[str]) -> Optional[Manufacturer]:
        """Match abbreviation token, name/alias phrase, then fuzzy name/alias."""
        if not text or not text.strip():
            return None

        upper = text.upper()
        tokens = _tokens(text)
        for mfr in self.pack.manufacturers:
            if mfr.abbr and mfr.abbr.upper() in tokens:
                return mfr
            if _contains_phrase(upper, mfr.name) or any(_contains_phrase(upper, a) for a in mfr.aliases):
                return mfr

        candidates: List[Tuple[str, Manufacturer]] = []
        for mfr in self.pack.manufacturers:
            candidates.append((mfr.name, mfr))
            candidates.extend((alias, mfr) for alias in mfr.aliases)

        best = _best_fuzzy(text, candidates)
        if best is not None:
            logger.debug("manufacturer_fuzzy_match", abbr=best[0].abbr, score=best[1])
            return best[0]
        return None

    def normalize_finish(self, text: Optional[str]) -> Optional[Finish]:
        """Match US code or BHMA code tokens, then the finish name phrase."""
        if not text or not text.strip():
            return None

        upper = text.upper()
        tokens = _tokens(text)
        for finish in self.pack.finishes:
            if finish.us_code and finish.us_code.upper() in tokens:
                return finish
            if finish.bhma_code and finish.bhma_code.upper() in tokens:
                return finish
            if _contains_phrase(upper, finish.name):
                return finish
        return None

    def detect_category(self, text: Optional[str]) -> Optional[Category]:
        """Match category symbol token, then category or subcategory phrase."""
        if not text or not text.strip():
            return None

        upper = text.upper()
        tokens = _tokens(text)
        for category in self.pack.categories:
            symbol = (category.gordon_symbol or "").upper()
            if len(symbol) >= MIN_SYMBOL_LENGTH and symbol in tokens:
                return category
            if _contains_phrase(upper, category.category) or _contains_phrase(upper, category.subcategory):
                return category
        return None
