"""Selection-toggle protocol: how a view turns a UI event into a store patch.

Every helper returns a plain patch dict for `FilterStore.patch`; nothing here
mutates the store.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, Optional, Sequence

from jobdash.records import Record, location_key
from jobdash.state import FilterState, ScatterSelection, TimeMode, normalize_patch
from jobdash.aggregations import PINNED_SKILL


SET_FIELDS = ("selected_jobs", "selected_countries")


def toggle_member(values: Iterable[str], value: str) -> FrozenSet[str]:
    current = frozenset(values)
    return current - {value} if value in current else current | {value}


def toggle_job(state: FilterState, job_title: str) -> Dict[str, Any]:
    return {"selected_jobs": toggle_member(state.selected_jobs, job_title)}


def toggle_country(state: FilterState, country: str) -> Dict[str, Any]:
    return {"selected_countries": toggle_member(state.selected_countries, location_key(country))}


def replace_scalar(field: str, value: Any) -> Dict[str, Any]:
    # validates the field name and value eagerly
    return normalize_patch({field: value})


def set_time_mode(mode: Any) -> Dict[str, Any]:
    return replace_scalar("time_mode", mode)


def set_month(state: FilterState, month: Optional[str]) -> Dict[str, Any]:
    """Month slider move; only meaningful while in month mode."""
    if state.time_mode is not TimeMode.MONTH:
        return {}
    return replace_scalar("selected_month", month)


def advance_month(state: FilterState, months: Sequence[str]) -> Dict[str, Any]:
    """One auto-play tick: step to the next month, wrapping to the first."""
    if not months or state.time_mode is not TimeMode.MONTH:
        return {}
    try:
        nxt = (list(months).index(state.selected_month) + 1) % len(months)
    except ValueError:
        nxt = 0
    return {"selected_month": months[nxt]}


def same_scatter_selection(selection: Optional[ScatterSelection], record: Record) -> bool:
    if selection is None:
        return False
    return selection == ScatterSelection.from_record(record)


def toggle_scatter_selection(state: FilterState, clicked: ScatterSelection) -> Dict[str, Any]:
    if state.scatter_selection == clicked:
        return {"scatter_selection": None}
    return {"scatter_selection": clicked}


def toggle_scatter(state: FilterState, record: Record) -> Dict[str, Any]:
    """Click on a scatter point: select it, or deselect when it is the current selection."""
    return toggle_scatter_selection(state, ScatterSelection.from_record(record))


def clear_scatter() -> Dict[str, Any]:
    return {"scatter_selection": None}


def _check_set_field(field: str) -> None:
    if field not in SET_FIELDS:
        raise ValueError(f"{field!r} is not a multi-select field; expected one of {list(SET_FIELDS)}")


def select_all(field: str, values: Iterable[str]) -> Dict[str, Any]:
    _check_set_field(field)
    return normalize_patch({field: list(values)})


def select_none(field: str) -> Dict[str, Any]:
    _check_set_field(field)
    return {field: frozenset()}


def toggle_skill(selected: Iterable[str], skill: str, fallback: str = PINNED_SKILL) -> FrozenSet[str]:
    """Skills chart checkbox. The selection never becomes empty."""
    out = toggle_member(selected, skill)
    return out or frozenset([fallback])
