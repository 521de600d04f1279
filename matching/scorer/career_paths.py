"""
Career Path Table - canonical career paths and the keywords that identify them.

Shared by the fallback scorer and the career-path redistribution pass so both
agree on what "this job belongs to path X" means.
"""
from typing import Dict, Iterable, List, Optional, Tuple

CAREER_PATH_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    'strategy': ('strategy', 'business-design', 'consulting'),
    'data': ('data', 'analytics', 'data-science'),
    'sales': ('sales', 'business-development', 'client-success'),
    'marketing': ('marketing', 'growth', 'brand'),
    'finance': ('finance', 'accounting', 'investment'),
    'operations': ('operations', 'supply-chain', 'logistics'),
    'product': ('product', 'product-management', 'innovation'),
    'tech': ('tech', 'technology', 'transformation'),
    'sustainability': ('sustainability', 'esg', 'environmental'),
    'unsure': ('general', 'graduate', 'trainee', 'rotational'),
}


def keywords_for_path(path: str) -> Tuple[str, ...]:
    """Keywords for a path; unknown paths match on their own name."""
    key = (path or "").strip().lower()
    if not key:
        return ()
    return CAREER_PATH_KEYWORDS.get(key, (key,))


def category_matches_path(category: str, path: str) -> bool:
    """True if any keyword of ``path`` occurs in ``category`` (case-insensitive)."""
    tag = (category or "").strip().lower()
    if not tag:
        return False
    return any(keyword in tag for keyword in keywords_for_path(path))


def paths_for_category(category: str, paths: Iterable[str]) -> List[str]:
    """All of ``paths`` matched by one category tag, in the given order."""
    return [p for p in paths if category_matches_path(category, p)]


def match_path_for_job(categories: Iterable[str], paths: Iterable[str]) -> Optional[str]:
    """First path (in ``paths`` order) matched by any of the job's categories."""
    categories = list(categories)
    for path in paths:
        if any(category_matches_path(c, path) for c in categories):
            return path
    return None
