"""Display helpers for estimator output.

All helpers render an infinite value as ``"∞"`` and ``None`` as ``"n/a"`` so
unbounded quantities (e.g. restore time over a zero-bandwidth tier) stay
visibly distinct from real numbers.
"""

import math
from typing import Optional

UNBOUNDED = "∞"
MISSING = "n/a"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded towards +inf.

    Python's built-in ``round`` uses banker's rounding; the dashboard figures
    are defined with half-up rounding.
    """
    return math.floor(value + 0.5)


def _special(value: Optional[float]) -> Optional[str]:
    if value is None:
        return MISSING
    if math.isnan(value):
        return MISSING
    if math.isinf(value):
        return UNBOUNDED if value > 0 else f"-{UNBOUNDED}"
    return None


def format_gb(value: Optional[float]) -> str:
    """Format a size in GB, switching to MB below 1 GB."""
    special = _special(value)
    if special is not None:
        return special
    if value < 1:
        return f"{value * 1024:.0f} MB"
    return f"{value:.1f} GB"


def format_pct(value: Optional[float]) -> str:
    special = _special(value)
    if special is not None:
        return special
    return f"{value:.1f}%"


def format_duration(seconds: Optional[float]) -> str:
    """Format a duration, switching to milliseconds below one second."""
    special = _special(seconds)
    if special is not None:
        return special
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.2f}s"


def format_usd(value: Optional[float]) -> str:
    """Format a dollar amount; millions are abbreviated (``$1.23M``)."""
    special = _special(value)
    if special is not None:
        return special
    if value >= 1e6:
        return f"${value / 1e6:.2f}M"
    return f"${round_half_up(value):,}"


def format_count(value: Optional[float]) -> str:
    special = _special(value)
    if special is not None:
        return special
    return f"{round_half_up(value):,}"
