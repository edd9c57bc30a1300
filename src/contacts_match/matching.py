from __future__ import annotations

import logging
import re
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    UNASSIGNED,
    CandidateContact,
    MatchResult,
    SearchFilters,
    category_priority,
)
from .nicknames import NicknameExpander, normalize_phrase
from .similarity import similarity

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.6
CROSSOVER_JOINER = " & "


def detect_crossover(salespeople: Iterable[str]) -> Optional[str]:
    """
    Name the salesperson(s) holding most of the matched contacts.

    Returns None unless more than one distinct assigned salesperson appears.
    Ties are reported together in first-seen order.
    """
    counts: Counter[str] = Counter(name for name in salespeople if name and name != UNASSIGNED)
    if len(counts) <= 1:
        return None
    top = max(counts.values())
    leaders = [name for name, count in counts.items() if count == top]
    return CROSSOVER_JOINER.join(leaders)


@dataclass
class SearchOutcome:
    results: List[MatchResult] = field(default_factory=list)
    crossover: Optional[str] = None

    @property
    def has_conflict(self) -> bool:
        return bool(self.results)

    @property
    def primary_salesperson(self) -> Optional[str]:
        if not self.results:
            return None
        return self.results[0].salesperson

    @property
    def additional_salespeople(self) -> List[str]:
        primary = self.primary_salesperson
        seen: "OrderedDict[str, None]" = OrderedDict()
        for result in self.results:
            name = result.salesperson
            if name != UNASSIGNED and name != primary:
                seen.setdefault(name, None)
        return list(seen)


class FuzzyContactMatcher:
    """Scores candidates against per-category name queries."""

    threshold = SIMILARITY_THRESHOLD

    def match(
        self, filters: SearchFilters, candidates: Sequence[CandidateContact]
    ) -> SearchOutcome:
        if filters.is_empty():
            return SearchOutcome()

        matched: Dict[str, MatchResult] = {}
        for category, query in filters.active():
            term = query.strip()
            of_category = [candidate for candidate in candidates if candidate.category == category]
            for candidate in of_category:
                score = similarity(candidate.name, term)
                if score < self.threshold:
                    continue
                existing = matched.get(candidate.contact_id)
                if existing is None or score > existing.score:
                    matched[candidate.contact_id] = MatchResult(
                        candidate=candidate, score=score, matched_category=category
                    )

        results = sorted(
            matched.values(), key=lambda result: category_priority(result.candidate.category)
        )
        crossover = detect_crossover(result.salesperson for result in results)
        logger.debug(
            "Fuzzy search over %d candidates (%d filters) -> %d matches, crossover=%s",
            len(candidates),
            filters.filled_count(),
            len(results),
            crossover,
        )
        return SearchOutcome(results=results, crossover=crossover)


def _variant_pattern(variant: str) -> "re.Pattern[str]":
    # "%word1%word2%" as a case-insensitive regex
    words = [re.escape(word) for word in variant.split(" ") if word]
    return re.compile(".*".join(words), re.IGNORECASE)


class ConflictChecker:
    """Looks up existing contacts by a name or any nickname variant of it."""

    def __init__(self, expander: Optional[NicknameExpander] = None):
        self.expander = expander or NicknameExpander()

    def check(self, term: str, candidates: Sequence[CandidateContact]) -> List[CandidateContact]:
        normalized = normalize_phrase(term)
        if not normalized:
            return []

        variants = self.expander.expand_ordered(normalized)
        logger.debug("Conflict check %r expanded to %d variants", normalized, len(variants))

        found: "OrderedDict[str, CandidateContact]" = OrderedDict()
        for variant in variants:
            pattern = _variant_pattern(variant)
            hits = [candidate for candidate in candidates if pattern.search(candidate.name)]
            for candidate in sorted(hits, key=lambda c: c.name.casefold()):
                found.setdefault(candidate.contact_id, candidate)
        return list(found.values())


def fuzzy_search(
    filters: SearchFilters, candidates: Sequence[CandidateContact]
) -> SearchOutcome:
    return FuzzyContactMatcher().match(filters, candidates)
