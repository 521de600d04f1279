#!/usr/bin/env python3
"""
Semantic Matching Service - LLM-backed job matching.

Jobs are sent to the LLM in small batches, strictly one after another, with
a pause between batches. Each batch is cached by (user signature, job set
signature). A failing batch contributes no results; the others still count.
"""
import json
import logging
import time
from dataclasses import dataclass, replace
from typing import List, Any, Optional, Callable

from matching.cache.match_cache import MatchCache
from matching.config_loader import SemanticConfig, LlmConfig
from matching.exceptions import SemanticServiceNotConfiguredError, ResponseParseError
from matching.llm.interfaces import LLMProvider
from matching.llm.prompts import build_match_prompt
from matching.llm.system_prompts import SEMANTIC_MATCHING_SYSTEM_PROMPT
from matching.models import (
    Job, UserPreferences, MatchResult, UnifiedScore, ScoreComponents, METHOD_AI
)
from matching.scorer.explanation import generate_score_explanation
from matching.utils import JobFingerprinter, clamp_score

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 85.0
DEFAULT_MATCH_REASON = "AI analyzed match"

# Breakdown field -> canonical component, with the share of overall used
# when the field is missing.
BREAKDOWN_MAPPING = (
    ('skills', 'relevance', 0.40),
    ('company', 'quality', 0.30),
    ('experience', 'opportunity', 0.20),
    ('location', 'timing', 0.10),
)


@dataclass
class MatchingOptions:
    """Per-call knobs for a semantic matching run."""
    use_cache: bool = True
    model: str = "gpt-4o-mini"
    max_tokens: int = 2000
    temperature: float = 0.3


def strip_code_fences(content: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    text = (content or "").strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[len("```"):]
    if text.endswith("```"):
        text = text[:-len("```")]
    return text.strip()


def _build_components(overall: float, breakdown: Any) -> ScoreComponents:
    breakdown = breakdown if isinstance(breakdown, dict) else {}
    values = {}
    for field, component, share in BREAKDOWN_MAPPING:
        if breakdown.get(field) is not None:
            values[component] = clamp_score(breakdown[field])
        else:
            values[component] = clamp_score(overall * share)
    return ScoreComponents(**values)


def parse_match_response(content: str, batch: List[Job]) -> List[MatchResult]:
    """
    Parse an LLM response of shape {"matches": [...]} into MatchResults.

    ``jobIndex`` is 0-based within ``batch``; entries with a missing or
    out-of-range index are skipped.

    Raises:
        ResponseParseError: if the content is not JSON or lacks a matches list
    """
    try:
        payload = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in match response: {e}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get('matches'), list):
        raise ResponseParseError("Match response has no 'matches' list")

    results = []
    for entry in payload['matches']:
        if not isinstance(entry, dict):
            continue
        index = entry.get('jobIndex')
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(batch):
            logger.debug(f"Skipping match entry with invalid jobIndex: {index!r}")
            continue

        job = batch[index]
        overall = clamp_score(entry.get('matchScore', 0))
        confidence = clamp_score(entry.get('confidenceScore', DEFAULT_CONFIDENCE))
        score = UnifiedScore(
            overall=overall,
            components=_build_components(overall, entry.get('scoreBreakdown')),
            confidence=confidence,
            method=METHOD_AI,
        )
        score = replace(score, explanation=generate_score_explanation(score, job.title))
        results.append(MatchResult(
            job=job,
            unified_score=score,
            match_reason=entry.get('matchReason') or DEFAULT_MATCH_REASON,
        ))
    return results


class SemanticMatchingService:
    """
    Batched LLM matching with caching and per-batch failure isolation.

    Usage:
        service = SemanticMatchingService(llm=OpenAIService(...), cache=InMemoryMatchCache())
        matches = service.find_matches(user, jobs)
    """

    def __init__(
        self,
        llm: Optional[LLMProvider],
        cache: Optional[MatchCache] = None,
        config: Optional[SemanticConfig] = None,
        llm_config: Optional[LlmConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        if llm is None:
            raise SemanticServiceNotConfiguredError(
                "Semantic matching requires an LLM provider; configure llm.api_key or use the fallback scorer"
            )
        self.llm = llm
        self.cache = cache
        self.config = config or SemanticConfig()
        self.llm_config = llm_config or LlmConfig()
        self._sleep = sleep

    def default_options(self) -> MatchingOptions:
        return MatchingOptions(
            use_cache=self.config.use_cache,
            model=self.llm_config.model,
            max_tokens=self.llm_config.max_tokens,
            temperature=self.llm_config.temperature,
        )

    @staticmethod
    def user_signature(user: UserPreferences) -> str:
        return JobFingerprinter.signature([
            (user.email or "").lower(),
            (user.entry_level_preference or "").lower(),
            (user.career_keywords or "").lower(),
            ",".join(c.lower() for c in user.target_cities),
            ",".join(p.lower() for p in user.career_path),
            "premium" if user.is_premium else "free",
        ])

    @staticmethod
    def job_set_signature(jobs: List[Job]) -> str:
        return JobFingerprinter.signature(job.identity for job in jobs)

    def cache_key(self, user: UserPreferences, batch: List[Job], options: MatchingOptions) -> str:
        return JobFingerprinter.signature([
            self.user_signature(user),
            self.job_set_signature(batch),
            options.model,
        ])

    def find_matches(
        self,
        user: UserPreferences,
        jobs: List[Job],
        max_matches: Optional[int] = None,
        options: Optional[MatchingOptions] = None
    ) -> List[MatchResult]:
        """
        Score ``jobs`` for ``user`` through the LLM.

        Never raises for provider or parsing failures; a failing batch simply
        contributes no results. Output is sorted by overall score, descending.
        """
        options = options or self.default_options()
        batch_size = max(1, self.config.batch_size)
        batches = [jobs[i:i + batch_size] for i in range(0, len(jobs), batch_size)]

        results: List[MatchResult] = []
        failed_batches = 0
        for number, batch in enumerate(batches, start=1):
            try:
                batch_results = self._process_batch(user, batch, options)
                results.extend(batch_results)
                logger.debug(f"Batch {number}/{len(batches)} produced {len(batch_results)} matches")
            except Exception as e:
                failed_batches += 1
                logger.error(f"Semantic matching batch {number}/{len(batches)} failed for {user.email}: {e}")

            if number < len(batches):
                self._sleep(self.config.batch_delay_seconds)

        results = sorted(results, key=lambda m: m.unified_score.overall, reverse=True)
        if max_matches is not None:
            results = results[:max(0, max_matches)]

        logger.info(
            f"Semantic matching for {user.email}: {len(results)} matches from "
            f"{len(jobs)} jobs ({len(batches)} batches, {failed_batches} failed)"
        )
        return results

    def _process_batch(
        self,
        user: UserPreferences,
        batch: List[Job],
        options: MatchingOptions
    ) -> List[MatchResult]:
        use_cache = options.use_cache and self.cache is not None
        key = self.cache_key(user, batch, options) if use_cache else None

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Using cached matches for batch of {len(batch)} jobs")
                return cached

        content = self.llm.complete_chat(
            system_prompt=SEMANTIC_MATCHING_SYSTEM_PROMPT,
            user_prompt=build_match_prompt(user, batch),
            model=options.model,
            max_tokens=options.max_tokens,
            temperature=options.temperature,
        )
        batch_results = parse_match_response(content, batch)

        if use_cache:
            self.cache.set(key, batch_results)
        return batch_results
