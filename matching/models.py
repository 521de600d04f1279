#!/usr/bin/env python3
"""
Matching Models - Data structures shared by every scoring strategy.

- Job: read-only posting owned by the ingestion subsystem
- UserPreferences: candidate preferences from the profile store
- ScoreComponents / UnifiedScore: the common score contract
- MatchResult: one scored job, never mutated after creation
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple
import logging

from dateutil import parser as date_parser

from matching.utils import JobFingerprinter

logger = logging.getLogger(__name__)

PREMIUM_TIERS = ('premium', 'premium_pending')

METHOD_AI = "ai"
METHOD_RULE = "rule"


def _parse_posted_at(value: Any) -> Optional[datetime]:
    """Parse an upstream timestamp into an aware datetime, or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.isoparse(str(value))
        except (ValueError, OverflowError) as e:
            logger.warning(f"Could not parse posted_at {value!r}: {e}")
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_list(value: Any) -> List[str]:
    """Coerce a scalar-or-list preference field into a list of strings."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


@dataclass(frozen=True)
class Job:
    """Job posting as produced by the ingestion subsystem."""
    title: str = ""
    company: str = ""
    description: str = ""
    city: str = ""
    country: str = ""
    location: str = ""
    categories: Tuple[str, ...] = ()
    posted_at: Optional[datetime] = None
    source: str = ""
    job_hash: str = ""
    job_url: str = ""
    experience_required: str = ""

    @property
    def identity(self) -> str:
        """Stable identity used for de-duplication."""
        if self.job_hash:
            return self.job_hash
        if self.job_url:
            return self.job_url
        return JobFingerprinter.calculate(self.company, self.title, self.location or self.city)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        categories = data.get('categories') or ()
        if isinstance(categories, str):
            categories = (categories,)
        return cls(
            title=data.get('title') or "",
            company=data.get('company') or "",
            description=data.get('description') or "",
            city=data.get('city') or "",
            country=data.get('country') or "",
            location=data.get('location') or "",
            categories=tuple(str(c) for c in categories if c),
            posted_at=_parse_posted_at(data.get('posted_at')),
            source=data.get('source') or "",
            job_hash=data.get('job_hash') or "",
            job_url=data.get('job_url') or "",
            experience_required=data.get('experience_required') or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'company': self.company,
            'description': self.description,
            'city': self.city,
            'country': self.country,
            'location': self.location,
            'categories': list(self.categories),
            'posted_at': self.posted_at.isoformat() if self.posted_at else None,
            'source': self.source,
            'job_hash': self.job_hash,
            'job_url': self.job_url,
            'experience_required': self.experience_required,
        }


@dataclass
class UserPreferences:
    """Candidate preferences supplied by the user profile store."""
    email: str
    target_cities: List[str] = field(default_factory=list)
    career_path: List[str] = field(default_factory=list)
    entry_level_preference: str = ""
    career_keywords: str = ""
    subscription_tier: str = "free"

    @property
    def is_premium(self) -> bool:
        return (self.subscription_tier or "").lower() in PREMIUM_TIERS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        keywords = data.get('career_keywords') or ""
        if not isinstance(keywords, str):
            keywords = ", ".join(str(k) for k in keywords)
        return cls(
            email=data.get('email') or "",
            target_cities=_as_list(data.get('target_cities')),
            career_path=_as_list(data.get('career_path')),
            entry_level_preference=data.get('entry_level_preference') or "",
            career_keywords=keywords,
            subscription_tier=data.get('subscription_tier') or "free",
        )


@dataclass(frozen=True)
class ScoreComponents:
    """Four canonical sub-scores, each in [0, 100]."""
    relevance: float = 0.0
    quality: float = 0.0
    opportunity: float = 0.0
    timing: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            'relevance': self.relevance,
            'quality': self.quality,
            'opportunity': self.opportunity,
            'timing': self.timing,
        }


@dataclass(frozen=True)
class UnifiedScore:
    """Score contract shared by the semantic and rule-based engines.

    ``overall`` is the only field used for ranking; ``method`` records
    which engine produced the score.
    """
    overall: float
    components: ScoreComponents
    confidence: float
    method: str
    explanation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'overall': self.overall,
            'components': self.components.as_dict(),
            'confidence': self.confidence,
            'method': self.method,
            'explanation': self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnifiedScore":
        components = data.get('components') or {}
        return cls(
            overall=float(data.get('overall', 0.0)),
            components=ScoreComponents(
                relevance=float(components.get('relevance', 0.0)),
                quality=float(components.get('quality', 0.0)),
                opportunity=float(components.get('opportunity', 0.0)),
                timing=float(components.get('timing', 0.0)),
            ),
            confidence=float(data.get('confidence', 0.0)),
            method=data.get('method', METHOD_RULE),
            explanation=data.get('explanation'),
        )


@dataclass(frozen=True)
class MatchResult:
    """Scored job returned to downstream consumers (UI/email layers)."""
    job: Job
    unified_score: UnifiedScore
    match_reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'job': self.job.to_dict(),
            'unified_score': self.unified_score.to_dict(),
            'match_reason': self.match_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchResult":
        return cls(
            job=Job.from_dict(data.get('job') or {}),
            unified_score=UnifiedScore.from_dict(data.get('unified_score') or {}),
            match_reason=data.get('match_reason') or "",
        )


# Rule-based results use the same shape.
FallbackMatch = MatchResult
