"""
Supplier lookup.

Identifies the supplier named on a purchase against the supplier master list
using multiple strategies in priority order:
  1. GSTIN exact match
  2. Name exact match (case-insensitive)
  3. Fuzzy name match (using rapidfuzz)
"""
import logging
import re
from typing import Iterable, Optional

from rapidfuzz import fuzz

from models.supplier import Supplier

logger = logging.getLogger(__name__)

# Minimum fuzzy score (0-100) to accept a name match
FUZZY_THRESHOLD = 75


def _normalise_gstin(gstin: Optional[str]) -> Optional[str]:
    """Strip everything but letters and digits from a GSTIN and uppercase it."""
    if not gstin:
        return None
    cleaned = re.sub(r"[^0-9A-Za-z]", "", gstin).upper()
    return cleaned if cleaned else None


def _normalise_name(name: Optional[str]) -> str:
    return " ".join((name or "").split()).lower()


class SupplierDirectory:
    """
    In-memory view of the supplier master list.

    Build one from Database.all_suppliers() or any iterable of Supplier.
    """

    def __init__(
        self,
        suppliers: Iterable[Supplier] = (),
        fuzzy_threshold: int = FUZZY_THRESHOLD,
    ):
        self.suppliers: list[Supplier] = list(suppliers)
        self.fuzzy_threshold = fuzzy_threshold
        logger.debug("Supplier directory holds %d suppliers", len(self.suppliers))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match(self, name: Optional[str], gstin: Optional[str] = None) -> Optional[Supplier]:
        """
        Try all matching strategies and return the best Supplier,
        or None if no supplier could be identified.
        """
        if not self.suppliers:
            return None

        # 1. GSTIN exact match (most reliable)
        wanted_gstin = _normalise_gstin(gstin)
        if wanted_gstin:
            for s in self.suppliers:
                if s.gstin_normalised and s.gstin_normalised == wanted_gstin:
                    logger.info("Supplier matched by GSTIN: %s -> %s", wanted_gstin, s.name)
                    return s

        # 2. Name exact match (case-insensitive)
        wanted_name = _normalise_name(name)
        if not wanted_name:
            return None
        for s in self.suppliers:
            if _normalise_name(s.name) == wanted_name:
                logger.debug("Supplier matched by exact name: %s", s.name)
                return s

        # 3. Fuzzy name match
        best, score = self._best_fuzzy(wanted_name)
        if best and score >= self.fuzzy_threshold:
            logger.info("Supplier fuzzy matched: '%s' -> '%s' (score=%d)", name, best.name, score)
            return best

        logger.info("No supplier match found for: %s", name)
        return None

    def search(self, term: Optional[str], limit: int = 10) -> list[Supplier]:
        """
        Rank suppliers for a search box. Substring hits on name, phone, email
        or GSTIN come first, then fuzzy name matches above the threshold.
        """
        wanted = _normalise_name(term)
        if not wanted:
            return self.suppliers[:limit]

        scored: list[tuple[float, int, Supplier]] = []
        for index, s in enumerate(self.suppliers):
            haystack = " ".join(
                v for v in (s.name, s.phone, s.email, s.gstin) if v
            ).lower()
            if wanted in haystack:
                scored.append((101.0, index, s))
                continue
            score = fuzz.token_sort_ratio(wanted, _normalise_name(s.name))
            if score >= self.fuzzy_threshold:
                scored.append((score, index, s))

        scored.sort(key=lambda t: (-t[0], t[1]))
        return [s for _, _, s in scored[:limit]]

    def _best_fuzzy(self, wanted_name: str) -> tuple[Optional[Supplier], float]:
        best_score: float = 0
        best_supplier: Optional[Supplier] = None
        for s in self.suppliers:
            score = fuzz.token_sort_ratio(wanted_name, _normalise_name(s.name))
            if score > best_score:
                best_score = score
                best_supplier = s
        logger.debug("Best fuzzy score was %d (threshold=%d)", best_score, self.fuzzy_threshold)
        return best_supplier, best_score
