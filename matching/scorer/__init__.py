#!/usr/bin/env python3
"""
Scoring Module - semantic and rule-based job scoring.

Public API:
- SemanticMatchingService: batched LLM matching with caching
- FallbackScorer: deterministic five-signal rule model
- Scorer: protocol both engines implement

Supporting modules:
- career_paths.py: canonical career paths and their keywords
- explanation.py: quality buckets and explanation strings
"""

from matching.scorer.interfaces import Scorer
from matching.scorer.fallback import FallbackScorer
from matching.scorer.semantic import SemanticMatchingService, MatchingOptions
from matching.scorer.explanation import get_score_quality, generate_score_explanation

__all__ = [
    'Scorer',
    'FallbackScorer',
    'SemanticMatchingService',
    'MatchingOptions',
    'get_score_quality',
    'generate_score_explanation',
]
