#!/usr/bin/env python3
"""
Preference Redistributor - post-scoring fairness passes.

Takes an already scored and ordered match list and reshapes it so the
user's choices are visible in the results:
1. City balance: even split across 2-3 selected cities
2. Source diversity: roughly half from each of two job sources
3. Career-path balance: even split across 2 selected paths (premium only)

Passes never rescore and never raise. A pass whose guard is not met returns
its input unchanged; an active pass always preserves the total count.
"""
import logging
import math
from collections import Counter
from typing import List, Dict, Optional, Callable, Tuple

from matching.config_loader import RedistributionConfig
from matching.models import MatchResult
from matching.scorer.career_paths import match_path_for_job

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE = "unknown"


def _select_by_quota(
    matches: List[MatchResult],
    bucket_of: Callable[[MatchResult], Optional[str]],
    targets: List[Tuple[str, int]]
) -> Tuple[List[MatchResult], Dict[str, int]]:
    """
    Take up to ``target`` matches per bucket (in ``targets`` order), then
    backfill with unused matches in their original order.

    Targets sum to len(matches), so the result always has the input length.
    """
    buckets = [bucket_of(m) for m in matches]
    used = set()
    selected: List[MatchResult] = []
    counts: Dict[str, int] = {}

    for key, target in targets:
        taken = 0
        for index, match in enumerate(matches):
            if taken >= target:
                break
            if index in used or buckets[index] != key:
                continue
            selected.append(match)
            used.add(index)
            taken += 1
        counts[key] = taken

    shortfall = len(matches) - len(selected)
    backfill = [m for i, m in enumerate(matches) if i not in used][:shortfall]
    return selected + backfill, counts


class PreferenceRedistributor:
    def __init__(self, config: Optional[RedistributionConfig] = None):
        self.config = config or RedistributionConfig()

    def distribute_by_cities(
        self,
        matches: List[MatchResult],
        user_cities: List[str]
    ) -> List[MatchResult]:
        cities = [c for c in (user_cities or []) if c]
        if len(cities) not in (2, 3) or not matches:
            return matches

        lowered = [c.lower() for c in cities]

        def city_of(match: MatchResult) -> Optional[str]:
            job_city = (match.job.city or match.job.location or "").lower()
            if not job_city:
                return None
            for city in lowered:
                if city in job_city or job_city in city:
                    return city
            return None

        n = len(matches)
        base, remainder = divmod(n, len(lowered))
        targets = [(city, base + (1 if i < remainder else 0)) for i, city in enumerate(lowered)]

        result, counts = _select_by_quota(matches, city_of, targets)
        logger.info(
            f"City distribution applied: {counts} (backfilled {n - sum(counts.values())})",
            extra={"distribution": {
                "pass": "city",
                "targets": dict(targets),
                "selected": counts,
                "total": len(result),
            }}
        )
        return result

    def _pick_sources(self, sources: List[str]) -> List[str]:
        counts = Counter(sources)
        first_seen = list(dict.fromkeys(sources))
        if self.config.source_selection == "largest":
            # sorted() is stable, so ties keep first-appearance order
            return sorted(first_seen, key=lambda s: counts[s], reverse=True)[:2]
        return first_seen[:2]

    def ensure_source_diversity(self, matches: List[MatchResult]) -> List[MatchResult]:
        n = len(matches)
        if n < 3:
            return matches

        sources = [m.job.source or UNKNOWN_SOURCE for m in matches]
        if len(set(sources)) < 2:
            return matches

        first, second = self._pick_sources(sources)
        half = math.ceil(n / 2)
        targets = [(first, half), (second, n - half)]

        result, counts = _select_by_quota(
            matches, lambda m: m.job.source or UNKNOWN_SOURCE, targets
        )
        logger.info(
            f"Source diversity applied: {counts}",
            extra={"distribution": {
                "pass": "source",
                "sources": [first, second],
                "targets": dict(targets),
                "selected": counts,
                "total": len(result),
            }}
        )
        return result

    def distribute_by_career_paths(
        self,
        matches: List[MatchResult],
        user_paths: List[str],
        is_premium: bool
    ) -> List[MatchResult]:
        paths = [p for p in (user_paths or []) if p]
        n = len(matches)
        if not is_premium or len(paths) != 2 or n < 2:
            return matches

        half = math.ceil(n / 2)
        targets = [(paths[0], half), (paths[1], n - half)]

        result, counts = _select_by_quota(
            matches, lambda m: match_path_for_job(m.job.categories, paths), targets
        )
        logger.info(
            f"Career path distribution applied: {counts}",
            extra={"distribution": {
                "pass": "career_path",
                "targets": dict(targets),
                "selected": counts,
                "total": len(result),
            }}
        )
        return result

    def apply_all(
        self,
        matches: List[MatchResult],
        user_cities: List[str],
        user_paths: List[str],
        is_premium: bool
    ) -> List[MatchResult]:
        """Run city, source and career-path passes in that order."""
        if not self.config.enabled:
            return matches

        result = self.distribute_by_cities(matches, user_cities)
        result = self.ensure_source_diversity(result)
        result = self.distribute_by_career_paths(result, user_paths, is_premium)
        return result
