"""Facility performance ratings derived from the complaint collection."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from .constants import RESOLVED_STATUSES, UNNAMED_FACILITY
from .models import Complaint

MAX_RATING = 5.0


class FacilityStats(BaseModel):
    facility_name: str
    total_raised: int
    total_resolved: int
    rating: float


def _round_rating(value: float) -> float:
    # Half-up to one decimal: 0.25 -> 0.3, not banker's 0.2
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def facility_stats(complaints: Iterable[Complaint], known_facilities: Iterable[str] = ()) -> List[FacilityStats]:
    """Rate every known facility plus any facility seen in ``complaints``.

    rating = resolved / raised * 5, one decimal; an empty facility rates 5.0.
    Sorted best first; facilities with equal ratings keep encounter order.
    """
    counts: Dict[str, List[int]] = {name: [0, 0] for name in known_facilities}

    for complaint in complaints:
        name = complaint.facility_name or UNNAMED_FACILITY
        tally = counts.setdefault(name, [0, 0])
        tally[0] += 1
        if complaint.status in RESOLVED_STATUSES:
            tally[1] += 1

    stats = []
    for name, (raised, resolved) in counts.items():
        rating = _round_rating(resolved / raised * MAX_RATING) if raised else MAX_RATING
        stats.append(
            FacilityStats(
                facility_name=name,
                total_raised=raised,
                total_resolved=resolved,
                rating=rating,
            )
        )
    return sorted(stats, key=lambda s: s.rating, reverse=True)


def search_facilities(stats: List[FacilityStats], query: Optional[str]) -> List[FacilityStats]:
    """Case-insensitive substring filter used by the facility browser."""
    if not query:
        return stats
    needle = query.strip().lower()
    return [s for s in stats if needle in s.facility_name.lower()]


__all__ = ["FacilityStats", "facility_stats", "search_facilities"]
