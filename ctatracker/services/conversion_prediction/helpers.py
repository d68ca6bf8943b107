"""Shared helpers for the conversion prediction engine.

Cross-cutting utilities used by the models, the click prediction engine,
the wasted-attention analyzer and the funnel calculator. Includes:
- Safe numeric coercion (never raises, never yields NaN)
- Clamping
- Keyword extraction for text matching
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Optional


# =============================================================================
# Safe Numeric Coercion
# =============================================================================

def _safe_numeric(value: Any) -> Optional[float]:
    """Coerce str/int/float to float. Returns None on failure (no exceptions).

    - "12" -> 12.0
    - 12 -> 12.0
    - float("nan"), float("inf") -> None
    - "abc", None, [], {} -> None
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def non_negative(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float >= 0, substituting ``default`` for junk."""
    result = _safe_numeric(value)
    if result is None:
        return default
    return max(0.0, result)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp01(value: Any, default: float = 0.0) -> float:
    """Clamp to [0, 1], mapping non-numeric and NaN input to ``default``."""
    result = _safe_numeric(value)
    if result is None:
        return default
    return clamp(result, 0.0, 1.0)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (0.5 -> 1).

    Built-in ``round`` uses banker's rounding (``round(60.5) == 60``), which
    under-counts visitors and conversions.
    """
    return int(math.floor(value + 0.5))


# =============================================================================
# Text Helpers
# =============================================================================

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    """Lowercase ``text``, strip punctuation and split on whitespace."""
    return [w for w in _NON_WORD.sub(" ", (text or "").lower()).split() if w]


def extract_keywords(
    text: str,
    stop_words: Iterable[str] = (),
    limit: Optional[int] = None,
) -> List[str]:
    """Words longer than two characters that are not stop words, in order.

    Args:
        text: Free text (headings, button copy, CTA text).
        stop_words: Words to drop.
        limit: Keep only the first ``limit`` keywords.
    """
    stop = set(stop_words)
    keywords = [w for w in tokenize(text) if len(w) > 2 and w not in stop]
    if limit is not None:
        keywords = keywords[:limit]
    return keywords


def contains_any(text: str, needles: Iterable[str]) -> bool:
    lowered = (text or "").lower()
    return any(n in lowered for n in needles)
