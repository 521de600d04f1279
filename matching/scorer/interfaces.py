from typing import Protocol, runtime_checkable, List, Optional

from matching.models import Job, UserPreferences, MatchResult


@runtime_checkable
class Scorer(Protocol):
    """
    A matching engine that turns a job pool into ranked results.

    Implemented by the LLM-backed SemanticMatchingService and the rule-based
    FallbackScorer. Results are ordered by ``unified_score.overall``
    descending and every score carries the producing engine in ``method``.
    """

    def find_matches(
        self,
        user: UserPreferences,
        jobs: List[Job],
        max_matches: Optional[int] = None
    ) -> List[MatchResult]:
        ...
