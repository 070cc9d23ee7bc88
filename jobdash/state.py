from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from jobdash.records import Record, location_key


logger = logging.getLogger(__name__)


class InvalidPatchError(ValueError):
    """Raised when a patch names an unknown field or carries an unusable value."""


class TimeMode(str, Enum):
    OVERALL = "overall"
    MONTH = "month"


@dataclass(frozen=True)
class ScatterSelection:
    """Salary/job/month fingerprint of one clicked scatter point. Compared by value."""

    salary_usd: Optional[float]
    job_title: str
    month: Optional[str] = None

    @classmethod
    def from_record(cls, record: Record) -> "ScatterSelection":
        return cls(salary_usd=record.salary_usd, job_title=record.job_title, month=record.month or None)

    def as_dict(self) -> Dict[str, Any]:
        return {"salary_usd": self.salary_usd, "job_title": self.job_title, "month": self.month}


@dataclass(frozen=True)
class FilterState:
    selected_jobs: FrozenSet[str] = field(default_factory=frozenset)
    selected_countries: FrozenSet[str] = field(default_factory=frozenset)
    time_mode: TimeMode = TimeMode.OVERALL
    selected_month: Optional[str] = None
    scatter_selection: Optional[ScatterSelection] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "selected_jobs": sorted(self.selected_jobs),
            "selected_countries": sorted(self.selected_countries),
            "time_mode": self.time_mode.value,
            "selected_month": self.selected_month,
            "scatter_selection": self.scatter_selection.as_dict() if self.scatter_selection else None,
        }


STATE_FIELDS = tuple(f.name for f in fields(FilterState))

# camelCase names used by browser clients.
FIELD_ALIASES = {
    "selectedJobs": "selected_jobs",
    "selectedCountries": "selected_countries",
    "timeMode": "time_mode",
    "scatterTimeMode": "time_mode",
    "selectedMonth": "selected_month",
    "scatterSelection": "scatter_selection",
    "selectedScatter": "scatter_selection",
}


def _as_str_set(values: Optional[Iterable[object]], *, key: Callable[[object], str] = lambda v: str(v).strip()) -> FrozenSet[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    out = set()
    for v in values:
        if v is None:
            continue
        k = key(v)
        if k:
            out.add(k)
    return frozenset(out)


def _as_time_mode(value: object) -> TimeMode:
    if isinstance(value, TimeMode):
        return value
    try:
        return TimeMode(str(value).strip().lower())
    except ValueError:
        raise InvalidPatchError(f"time_mode must be one of {[m.value for m in TimeMode]}, got {value!r}") from None


def _as_month(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _as_scatter(value: object) -> Optional[ScatterSelection]:
    if value is None or isinstance(value, ScatterSelection):
        return value
    if isinstance(value, Mapping):
        job_title = value.get("job_title", value.get("jobTitle"))
        if "salary_usd" not in value and "salaryUsd" not in value:
            raise InvalidPatchError("scatter_selection needs salary_usd")
        if not job_title:
            raise InvalidPatchError("scatter_selection needs job_title")
        salary = value.get("salary_usd", value.get("salaryUsd"))
        if salary is None:
            raise InvalidPatchError("scatter_selection.salary_usd must not be null")
        try:
            salary = float(salary)
        except (TypeError, ValueError):
            raise InvalidPatchError(f"scatter_selection.salary_usd is not numeric: {salary!r}") from None
        return ScatterSelection(salary_usd=salary, job_title=str(job_title), month=_as_month(value.get("month")))
    raise InvalidPatchError(f"scatter_selection must be a mapping or None, got {type(value).__name__}")


def normalize_patch(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce a raw patch (API body, widget values) into FilterState field values."""
    out: Dict[str, Any] = {}
    unknown = []
    for name, value in raw.items():
        canonical = FIELD_ALIASES.get(name, name)
        if canonical not in STATE_FIELDS:
            unknown.append(name)
            continue
        if canonical == "selected_jobs":
            out[canonical] = _as_str_set(value)
        elif canonical == "selected_countries":
            out[canonical] = _as_str_set(value, key=location_key)
        elif canonical == "time_mode":
            out[canonical] = _as_time_mode(value)
        elif canonical == "selected_month":
            out[canonical] = _as_month(value)
        else:
            out[canonical] = _as_scatter(value)
    if unknown:
        raise InvalidPatchError(f"Unknown filter field(s): {', '.join(sorted(unknown))}")
    return out


Handler = Callable[[FilterState], None]


class FilterStore:
    """Single source of truth for the selection state shared by every view."""

    def __init__(self, initial: Optional[FilterState] = None):
        self._state = initial if initial is not None else FilterState()
        self._handlers: List[Handler] = []
        # merge + notify is one critical section; re-entrant so a handler may patch again
        self._lock = threading.RLock()

    def get_state(self) -> FilterState:
        return self._state

    def patch(self, partial: Optional[Mapping[str, Any]] = None, **changes: Any) -> FilterState:
        raw: Dict[str, Any] = dict(partial or {})
        raw.update(changes)
        values = normalize_patch(raw)
        with self._lock:
            self._state = replace(self._state, **values)
            for handler in list(self._handlers):
                # a handler may have patched again; later handlers see the latest state
                try:
                    handler(self._state)
                except Exception:
                    logger.exception("Filter state subscriber %r failed", handler)
            return self._state

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def reset(self) -> FilterState:
        defaults = FilterState()
        return self.patch({name: getattr(defaults, name) for name in STATE_FIELDS})
