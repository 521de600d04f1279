#!/usr/bin/env python3
"""
Fallback Scorer - deterministic rule-based matching.

Used whenever the semantic service is unavailable or returns nothing.
Five weighted signals are combined per job:
- skills (career keywords found in title/description)
- experience level fit
- location fit
- career path relevance (sliding partial credit)
- recency of posting

Results are then passed through a balanced distribution so every selected
city and career path gets a fair share of the final slots.
"""
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import List, Dict, Optional, Callable, Tuple

from matching.config_loader import FallbackConfig, FallbackWeights
from matching.models import (
    Job, UserPreferences, MatchResult, UnifiedScore, ScoreComponents, METHOD_RULE
)
from matching.scorer.career_paths import category_matches_path, paths_for_category
from matching.scorer.explanation import get_score_quality, generate_score_explanation
from matching.utils import clamp_score

logger = logging.getLogger(__name__)

EXPERIENCE_LEVELS: Dict[str, int] = {
    'entry': 1,
    'junior': 1,
    'graduate': 1,
    'intermediate': 2,
    'mid': 2,
    'senior': 3,
    'lead': 3,
    'principal': 3,
}
_LEVEL_PATTERN = re.compile(r"\b(" + "|".join(sorted(EXPERIENCE_LEVELS, key=len, reverse=True)) + r")\b")

# (max days since posting, score); anything older scores 0
RECENCY_STEPS: Tuple[Tuple[float, float], ...] = (
    (1, 100.0),
    (3, 90.0),
    (7, 75.0),
    (14, 50.0),
    (30, 25.0),
)

CAREER_MATCH_THRESHOLD = 0.40
DEFAULT_REASON = "Rule-based match based on your preferences"


@dataclass(frozen=True)
class SignalScores:
    """Raw per-signal scores for one job, each in [0, 100]."""
    skills: float
    experience: float
    location: float
    career_path: float
    recency: float


def resolve_experience_level(text: str) -> Optional[int]:
    """Ordinal level of the first level keyword in ``text`` (None if none)."""
    if not text:
        return None
    found = _LEVEL_PATTERN.search(text.lower())
    if not found:
        return None
    return EXPERIENCE_LEVELS[found.group(0)]


def score_skills(job: Job, user: UserPreferences) -> float:
    keywords = [k.strip().lower() for k in (user.career_keywords or "").split(",")]
    keywords = [k for k in keywords if k]
    if not keywords:
        return 0.0
    text = f"{job.title} {job.description}".lower()
    found = sum(1 for k in keywords if k in text)
    return found / len(keywords) * 100.0


def score_experience(job: Job, user: UserPreferences) -> float:
    user_level = resolve_experience_level(user.entry_level_preference)
    job_level = resolve_experience_level(job.experience_required)
    if user_level is None or job_level is None:
        return 0.0
    distance = abs(user_level - job_level)
    if distance == 0:
        return 100.0
    if distance == 1:
        return 75.0
    return 25.0


def score_location(job: Job, user: UserPreferences) -> float:
    """First user city with any match wins: exact city, then country, then substring."""
    job_city = (job.city or "").strip().lower()
    job_country = (job.country or "").strip().lower()
    job_location = (job.location or "").lower()

    for city in user.target_cities:
        wanted = (city or "").strip().lower()
        if not wanted:
            continue
        if wanted == job_city:
            return 100.0
        if wanted == job_country:
            return 75.0
        if wanted in job_location or (job_city and wanted in job_city):
            return 60.0
    return 0.0


def score_career_path(job: Job, user: UserPreferences) -> float:
    paths = [p for p in user.career_path if p]
    tags = [c for c in job.categories if c]
    if not paths or not tags:
        return 0.0

    covered = set()
    matched_tags = 0
    for tag in tags:
        hits = paths_for_category(tag, paths)
        if hits:
            matched_tags += 1
            covered.update(hits)

    ratio = matched_tags / len(tags)
    if ratio >= CAREER_MATCH_THRESHOLD:
        return (0.7 * ratio + 0.3 * (len(covered) / len(paths))) * 100.0
    return ratio * 30.0


def score_recency(job: Job, now: datetime) -> float:
    if job.posted_at is None:
        return 0.0
    posted_at = job.posted_at
    if posted_at.tzinfo is None:
        posted_at = posted_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    days = (now - posted_at).total_seconds() / 86400.0
    for max_days, score in RECENCY_STEPS:
        if days <= max_days:
            return score
    return 0.0


def build_match_reason(signals: SignalScores, overall: float) -> str:
    phrases = []
    if signals.skills >= 70:
        phrases.append("strong skills match")
    if signals.experience >= 75:
        phrases.append("experience level fits")
    if signals.location >= 60:
        phrases.append("preferred location")
    if signals.career_path >= 50:
        phrases.append("career path alignment")
    if signals.recency >= 75:
        phrases.append("recently posted")

    if not phrases:
        return DEFAULT_REASON
    return f"{', '.join(phrases)} ({get_score_quality(overall)} match)"


class FallbackScorer:
    """Rule-based scorer; pure and deterministic for a fixed ``now``."""

    def __init__(
        self,
        config: Optional[FallbackConfig] = None,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or FallbackConfig()
        self._now = now or (lambda: datetime.now(timezone.utc))

    @property
    def weights(self) -> FallbackWeights:
        return self.config.weights

    def compute_signals(self, job: Job, user: UserPreferences, now: datetime) -> SignalScores:
        return SignalScores(
            skills=score_skills(job, user),
            experience=score_experience(job, user),
            location=score_location(job, user),
            career_path=score_career_path(job, user),
            recency=score_recency(job, now),
        )

    def combine(self, signals: SignalScores) -> float:
        """
        Weighted sum of signals, clamped to [0, 100].

        With the default weights the raw sum can reach 110; clamping happens
        before the score is bucketed or used for ranking.
        """
        w = self.weights
        raw = (
            signals.skills * w.skills
            + signals.experience * w.experience
            + signals.location * w.location
            + signals.career_path * w.career_path
            + signals.recency * w.recency
        )
        if w.normalize and w.total > 0:
            raw = raw / w.total
        return clamp_score(raw)

    def score_job(self, job: Job, user: UserPreferences, now: Optional[datetime] = None) -> MatchResult:
        signals = self.compute_signals(job, user, now or self._now())
        overall = self.combine(signals)
        score = UnifiedScore(
            overall=overall,
            components=ScoreComponents(
                relevance=clamp_score(signals.skills),
                quality=clamp_score(signals.career_path),
                opportunity=clamp_score(signals.experience),
                timing=clamp_score(signals.recency),
            ),
            confidence=clamp_score(self.config.confidence),
            method=METHOD_RULE,
        )
        score = replace(score, explanation=generate_score_explanation(score, job.title))
        return MatchResult(job=job, unified_score=score, match_reason=build_match_reason(signals, overall))

    def score(
        self,
        jobs: List[Job],
        user: UserPreferences,
        max_matches: Optional[int] = None
    ) -> List[MatchResult]:
        """Score every job, rank by overall and apply balanced distribution."""
        if max_matches is None:
            max_matches = self.config.max_matches
        if max_matches <= 0 or not jobs:
            return []

        now = self._now()
        scored = [self.score_job(job, user, now) for job in jobs]
        # sorted() is stable: equal scores keep input order
        scored = sorted(scored, key=lambda m: m.unified_score.overall, reverse=True)

        return self._apply_balanced_distribution(scored, user, max_matches)

    def find_matches(
        self,
        user: UserPreferences,
        jobs: List[Job],
        max_matches: Optional[int] = None
    ) -> List[MatchResult]:
        return self.score(jobs, user, max_matches)

    def _apply_balanced_distribution(
        self,
        scored: List[MatchResult],
        user: UserPreferences,
        max_matches: int
    ) -> List[MatchResult]:
        cities = [c for c in user.target_cities if c]
        paths = [p for p in user.career_path if p]

        if not cities and not paths:
            return scored[:max_matches]

        per_city = max_matches // len(cities) if cities else max_matches
        per_path = max_matches // len(paths) if paths else max_matches
        city_counts = {c.lower(): 0 for c in cities}
        path_counts = {p: 0 for p in paths}

        selected: List[MatchResult] = []
        used = set()

        # Round 1: admit only while both matched quotas have room
        for index, match in enumerate(scored):
            if len(selected) >= max_matches:
                break
            job = match.job
            job_city = (job.city or job.location or "").lower()

            matched_city = None
            for city in cities:
                key = city.lower()
                if key in job_city and city_counts[key] < per_city:
                    matched_city = key
                    break

            matched_path = None
            for path in paths:
                if path_counts[path] < per_path and any(
                    category_matches_path(c, path) for c in job.categories
                ):
                    matched_path = path
                    break

            if (not cities or matched_city) and (not paths or matched_path):
                selected.append(match)
                used.add(index)
                if matched_city:
                    city_counts[matched_city] += 1
                if matched_path:
                    path_counts[matched_path] += 1

        # Round 2: fill remaining slots by score
        for index, match in enumerate(scored):
            if len(selected) >= max_matches:
                break
            if index in used:
                continue
            selected.append(match)
            used.add(index)

        logger.info(
            f"Applied balanced distribution for {user.email}: {len(selected)} matches",
            extra={"distribution": {
                "user": user.email,
                "location_counts": city_counts,
                "career_path_counts": path_counts,
                "total_matches": len(selected),
            }}
        )
        return selected
