from __future__ import annotations

import math
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from jobdash.records import Record
from jobdash.state import FilterState, TimeMode


SALARY_TOLERANCE_PCT = 0.05  # ±5%

Clause = Callable[[Record, FilterState], bool]


def _finite(value: object) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False


def salary_bounds(target: float, tolerance: float = SALARY_TOLERANCE_PCT) -> Tuple[float, float]:
    return target * (1 - tolerance), target * (1 + tolerance)


def salary_in_range(value: Optional[float], target: Optional[float], tolerance: float = SALARY_TOLERANCE_PCT) -> bool:
    """Inclusive ±tolerance match. A non-finite target imposes no constraint."""
    if not _finite(target):
        return True
    if not _finite(value):
        return False
    low, high = salary_bounds(float(target), tolerance)  # type: ignore[arg-type]
    return low <= float(value) <= high  # type: ignore[arg-type]


def job_clause(record: Record, state: FilterState) -> bool:
    return not state.selected_jobs or record.job_title in state.selected_jobs


def country_clause(record: Record, state: FilterState) -> bool:
    # selected_countries holds location keys (see state.normalize_patch)
    return not state.selected_countries or record.location_key in state.selected_countries


def time_clause(record: Record, state: FilterState) -> bool:
    if state.time_mode is not TimeMode.MONTH:
        return True
    return record.month is not None and record.month == state.selected_month


def scatter_clause(record: Record, state: FilterState) -> bool:
    sel = state.scatter_selection
    if sel is None:
        return True
    return (
        salary_in_range(record.salary_usd, sel.salary_usd)
        and record.job_title == sel.job_title
        and (not sel.month or record.month == sel.month)
    )


CLAUSES: List[Tuple[str, Clause]] = [
    ("job", job_clause),
    ("country", country_clause),
    ("time", time_clause),
    ("scatter", scatter_clause),
]
CLAUSE_NAMES = tuple(name for name, _ in CLAUSES)


def _active_clauses(exclude: Sequence[str]) -> List[Clause]:
    unknown = set(exclude) - set(CLAUSE_NAMES)
    if unknown:
        raise ValueError(f"Unknown clause(s) {sorted(unknown)}; expected a subset of {list(CLAUSE_NAMES)}")
    return [clause for name, clause in CLAUSES if name not in exclude]


def is_visible(record: Record, state: FilterState, *, exclude: Sequence[str] = ()) -> bool:
    return all(clause(record, state) for clause in _active_clauses(exclude))


def filter_visible(records: Iterable[Record], state: FilterState, *, exclude: Sequence[str] = ()) -> List[Record]:
    """Stable filter: visible records in their original order."""
    clauses = _active_clauses(exclude)
    return [r for r in records if all(clause(r, state) for clause in clauses)]
