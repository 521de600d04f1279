import hashlib
import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)


def clamp_score(value: Any, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp a numeric score into [low, high]. Non-numeric values become ``low``."""
    if isinstance(value, bool):
        return low
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if number != number:  # NaN
        return low
    return max(low, min(high, number))


class JobFingerprinter:
    """
    Pure logic for creating deterministic fingerprints for identity and cache keys.
    """

    @staticmethod
    def calculate(company: str, title: str, location_text: str) -> str:
        """
        Create a deterministic hash of the core immutable fields.
        Formula: SHA256(lowercase(Company) + lowercase(JobTitle) + lowercase(City/Location))
        """
        raw_string = f"{(company or '').lower().strip()}|{(title or '').lower().strip()}|{(location_text or '').lower().strip()}"
        return hashlib.sha256(raw_string.encode('utf-8')).hexdigest()

    @staticmethod
    def signature(parts: Iterable[Any]) -> str:
        """SHA256 over the ordered, pipe-joined string form of ``parts``."""
        raw_string = "|".join("" if p is None else str(p) for p in parts)
        return hashlib.sha256(raw_string.encode('utf-8')).hexdigest()
