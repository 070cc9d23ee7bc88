from __future__ import annotations

import math
from collections import Counter, defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from jobdash.records import Record


SKILLS_TOP_N = 20
PINNED_SKILL = "Python"

REMOTE_LABELS = {0: "On-site", 50: "Hybrid", 100: "Remote"}


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value) or math.isinf(float(value)):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def count_by(records: Iterable[Record], key_fn: Callable[[Record], Hashable]) -> Dict[Hashable, int]:
    return dict(Counter(key_fn(r) for r in records))


def mean_of(records: Iterable[Record], value_fn: Callable[[Record], Any]) -> float:
    """Mean of the numeric values; 0 when there is nothing to average."""
    total = 0.0
    n = 0
    for r in records:
        v = value_fn(r)
        if v is None or isinstance(v, bool):
            continue
        try:
            v = float(v)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(v):
            continue
        total += v
        n += 1
    return total / n if n else 0


def min_mid_max(counts: Union[Mapping[Any, float], Iterable[float]]) -> Tuple[float, float, float]:
    """Color-scale domain over the positive counts; (0, 1, 1) when there are none."""
    values = counts.values() if isinstance(counts, Mapping) else counts
    positive = [v for v in values if v is not None and v > 0]
    lo = min(positive) if positive else 0
    hi = max(positive) if positive else 1
    mid = round_half_up((lo + hi) / 2)
    return lo, int(mid) if mid is not None else 0, hi


def months_of(records: Iterable[Record]) -> List[str]:
    return sorted({r.month for r in records if r.month})


def universe(records: Iterable[Record], key_fn: Callable[[Record], Any]) -> List[str]:
    return sorted({str(v) for v in (key_fn(r) for r in records) if v not in (None, "")})


def location_names(records: Iterable[Record]) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for r in records:
        if r.location_key and r.location_key not in names:
            names[r.location_key] = r.company_location
    return names


def count_by_month_and_location(records: Iterable[Record]) -> Dict[str, Dict[str, int]]:
    out: Dict[str, Dict[str, int]] = defaultdict(dict)
    for r in records:
        if not r.month or not r.location_key:
            continue
        by_loc = out[r.month]
        by_loc[r.location_key] = by_loc.get(r.location_key, 0) + 1
    return dict(out)


def country_summary(records: Sequence[Record], keys: Iterable[str], names: Optional[Mapping[str, str]] = None) -> List[Dict[str, Any]]:
    names = names or location_names(records)
    by_key: Dict[str, List[Record]] = defaultdict(list)
    for r in records:
        by_key[r.location_key].append(r)
    rows = []
    for key in keys:
        group = by_key.get(key, [])
        rows.append(
            {
                "location_key": key,
                "country": names.get(key, key),
                "jobs": len(group),
                "avg_salary_usd": round_half_up(mean_of(group, lambda r: r.salary_usd)),
                "remote_pct": round_half_up(mean_of(group, lambda r: r.remote_ratio)),
            }
        )
    return rows


def remote_label(ratio: Any) -> str:
    try:
        return REMOTE_LABELS.get(ratio, "Unrecognized")
    except TypeError:
        return "Unrecognized"


def skill_universe(records: Iterable[Record], pinned: str = PINNED_SKILL) -> List[str]:
    skills = sorted({s for r in records for s in r.required_skills})
    if pinned in skills:
        skills.remove(pinned)
        skills.insert(0, pinned)
    return skills


def skill_demand(records: Iterable[Record], skills: Iterable[str], top_n: int = SKILLS_TOP_N) -> List[Dict[str, Any]]:
    """Postings per job title among records requiring any of `skills`, busiest first."""
    wanted = frozenset(skills)
    totals = count_by((r for r in records if r.required_skills & wanted), lambda r: r.job_title)
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"job_title": title, "total": total} for title, total in ranked[: max(0, int(top_n))]]
