"""Score quality buckets and human-readable explanations."""
from typing import Optional

from matching.models import UnifiedScore, ScoreComponents

QUALITY_EXCELLENT = "excellent"
QUALITY_GOOD = "good"
QUALITY_FAIR = "fair"
QUALITY_LOW = "low"

_COMPONENT_LABELS = {
    'relevance': "relevance",
    'quality': "career fit",
    'opportunity': "experience fit",
    'timing': "timing",
}


def get_score_quality(overall: float) -> str:
    """Bucket an overall score into excellent / good / fair / low."""
    if overall >= 80:
        return QUALITY_EXCELLENT
    if overall >= 65:
        return QUALITY_GOOD
    if overall >= 45:
        return QUALITY_FAIR
    return QUALITY_LOW


def _strongest_component(components: ScoreComponents) -> Optional[str]:
    values = components.as_dict()
    best = max(values, key=lambda k: values[k])
    if values[best] <= 0:
        return None
    return best


def generate_score_explanation(score: UnifiedScore, job_title: str = "") -> str:
    """
    Build a one-line explanation for a unified score.

    Example: "Excellent match for Data Analyst (87/100): strongest factor relevance (92)"
    """
    quality = get_score_quality(score.overall).capitalize()
    target = f" for {job_title}" if job_title else ""
    explanation = f"{quality} match{target} ({round(score.overall)}/100)"

    strongest = _strongest_component(score.components)
    if strongest:
        value = getattr(score.components, strongest)
        explanation += f": strongest factor {_COMPONENT_LABELS[strongest]} ({round(value)})"

    if score.method == "rule":
        explanation += " [rule-based]"
    return explanation
