"""
Job Match Core - matches job postings to candidate preferences.

Semantic (LLM) and rule-based scoring share one score contract; results are
then redistributed across the user's cities, job sources and career paths.
"""
from matching.models import Job, UserPreferences, ScoreComponents, UnifiedScore, MatchResult, FallbackMatch

__all__ = [
    'Job',
    'UserPreferences',
    'ScoreComponents',
    'UnifiedScore',
    'MatchResult',
    'FallbackMatch',
]
