#!/usr/bin/env python3
"""
Matching Orchestrator - picks a scoring strategy and post-processes results.

Strategies:
- hybrid: semantic matching first, rule-based fallback when it is not
  configured, raises, or returns nothing
- ai_only: semantic matching only; errors propagate
- fallback_only: rule-based scoring only

Usage:
    orchestrator = MatchingOrchestrator(fallback=FallbackScorer(), semantic=service)
    outcome = orchestrator.generate_matches_for_user(user, jobs)
"""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from matching.config_loader import OrchestratorConfig
from matching.exceptions import SemanticServiceNotConfiguredError
from matching.models import Job, UserPreferences, MatchResult
from matching.redistribution import PreferenceRedistributor
from matching.scorer.fallback import FallbackScorer
from matching.scorer.semantic import SemanticMatchingService

logger = logging.getLogger(__name__)

STRATEGY_HYBRID = "hybrid"
STRATEGY_AI_ONLY = "ai_only"
STRATEGY_FALLBACK_ONLY = "fallback_only"
STRATEGIES = (STRATEGY_HYBRID, STRATEGY_AI_ONLY, STRATEGY_FALLBACK_ONLY)

NO_JOBS_ERROR = "No jobs available for matching"


@dataclass
class MatchingOutcome:
    """Result of one user's matching run."""
    user: str
    matches: List[MatchResult] = field(default_factory=list)
    ai_success: bool = False
    fallback_used: bool = False
    processing_time: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user': self.user,
            'matches': [m.to_dict() for m in self.matches],
            'match_count': self.match_count,
            'ai_success': self.ai_success,
            'fallback_used': self.fallback_used,
            'processing_time': self.processing_time,
            'errors': list(self.errors),
        }


class MatchingOrchestrator:
    def __init__(
        self,
        fallback: FallbackScorer,
        semantic: Optional[SemanticMatchingService] = None,
        redistributor: Optional[PreferenceRedistributor] = None,
        config: Optional[OrchestratorConfig] = None
    ):
        self.fallback = fallback
        self.semantic = semantic
        self.redistributor = redistributor or PreferenceRedistributor()
        self.config = config or OrchestratorConfig()

    def generate_matches_for_user(
        self,
        user: UserPreferences,
        jobs: List[Job],
        strategy: Optional[str] = None
    ) -> MatchingOutcome:
        """
        Run matching for a single user.

        Raises:
            ValueError: if the user has no email or the strategy is unknown
            SemanticServiceNotConfiguredError: for ai_only without a semantic service
        """
        if user is None or not user.email:
            raise ValueError("Invalid user: email is required")

        strategy = strategy or self.config.strategy
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown matching strategy: {strategy}")

        if not jobs:
            return MatchingOutcome(user=user.email, errors=[NO_JOBS_ERROR])

        start = time.monotonic()
        capped_jobs = jobs[:self.config.job_cap]
        max_matches = self.config.per_user_cap
        outcome = MatchingOutcome(user=user.email)

        logger.info(f"Generating matches for {user.email} ({len(capped_jobs)} jobs, strategy={strategy})")

        if strategy == STRATEGY_FALLBACK_ONLY:
            matches = self._run_fallback(user, capped_jobs, max_matches, outcome)
        elif strategy == STRATEGY_AI_ONLY:
            if self.semantic is None:
                raise SemanticServiceNotConfiguredError("ai_only strategy requires a configured semantic service")
            matches = self.semantic.find_matches(user, capped_jobs)
            outcome.ai_success = True
        else:
            matches = self._run_hybrid(user, capped_jobs, max_matches, outcome)

        matches = matches[:max_matches]

        if self.config.apply_redistribution:
            matches = self.redistributor.apply_all(
                matches, user.target_cities, user.career_path, user.is_premium
            )

        outcome.matches = matches
        outcome.processing_time = time.monotonic() - start

        logger.info(
            f"Matching for {user.email} finished: {len(matches)} matches, "
            f"ai_success={outcome.ai_success}, fallback_used={outcome.fallback_used}, "
            f"{outcome.processing_time:.2f}s"
        )
        return outcome

    def _run_fallback(
        self,
        user: UserPreferences,
        jobs: List[Job],
        max_matches: int,
        outcome: MatchingOutcome
    ) -> List[MatchResult]:
        outcome.fallback_used = True
        return self.fallback.score(jobs, user, max_matches)

    def _run_hybrid(
        self,
        user: UserPreferences,
        jobs: List[Job],
        max_matches: int,
        outcome: MatchingOutcome
    ) -> List[MatchResult]:
        if self.semantic is None:
            logger.info(f"Semantic matching not configured, using fallback for {user.email}")
            return self._run_fallback(user, jobs, max_matches, outcome)

        try:
            matches = self.semantic.find_matches(user, jobs)
            outcome.ai_success = True
        except Exception as e:
            logger.error(f"Semantic matching failed for {user.email}: {e}")
            outcome.errors.append(str(e))
            matches = []

        if not matches:
            logger.info(f"Using fallback matching for {user.email}")
            return self._run_fallback(user, jobs, max_matches, outcome)
        return matches

    def generate_outcomes_for_users(
        self,
        users: List[UserPreferences],
        jobs: List[Job],
        strategy: Optional[str] = None
    ) -> List[MatchingOutcome]:
        """Run matching for up to ``user_cap`` users, in order.

        A failing user gets an outcome with no matches and the error recorded.
        """
        outcomes: List[MatchingOutcome] = []

        for user in users[:self.config.user_cap]:
            email = user.email if user is not None else ""
            try:
                outcomes.append(self.generate_matches_for_user(user, jobs, strategy=strategy))
            except Exception as e:
                logger.error(f"Matching failed for user {email or '<missing email>'}: {e}")
                outcomes.append(MatchingOutcome(user=email, errors=[str(e)]))

        logger.info(f"Generated matches for {len(outcomes)} users")
        return outcomes

    def generate_matches_for_users(
        self,
        users: List[UserPreferences],
        jobs: List[Job],
        strategy: Optional[str] = None
    ) -> Dict[str, List[MatchResult]]:
        """Matches keyed by user email; a failing user gets an empty list."""
        return {
            outcome.user: outcome.matches
            for outcome in self.generate_outcomes_for_users(users, jobs, strategy=strategy)
        }

    def check_components(self) -> Dict[str, bool]:
        """Smoke-test each component with a synthetic job and user."""
        status = {
            'semantic_configured': self.semantic is not None,
            'fallback_scorer': False,
            'redistributor': False,
        }

        probe_job = Job(
            title="Test Job",
            company="Test Company",
            description="Test description",
            city="Test City",
            categories=("general",),
            experience_required="entry-level",
            source="test",
            job_hash="test-hash",
        )
        probe_user = UserPreferences(email="test@example.com", target_cities=["Test City"], career_path=["unsure"])
        scored: List[MatchResult] = []

        try:
            scored = self.fallback.score([probe_job], probe_user, 1)
            status['fallback_scorer'] = len(scored) == 1 and scored[0].unified_score.overall >= 0
        except Exception as e:
            logger.error(f"Fallback scorer check failed: {e}")

        try:
            redistributed = self.redistributor.apply_all(scored, ["Test City", "Other"], [], False)
            status['redistributor'] = bool(scored) and len(redistributed) == len(scored)
        except Exception as e:
            logger.error(f"Redistributor check failed: {e}")

        return status
