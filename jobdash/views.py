"""Per-view payloads (JSON-serializable) computed from the filter state and loaded data.

Each view re-runs the predicate engine over the full record collection and
summarizes the visible subset; none of them touch the store.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from jobdash.aggregations import (
    PINNED_SKILL,
    SKILLS_TOP_N,
    count_by,
    count_by_month_and_location,
    country_summary,
    location_names,
    mean_of,
    min_mid_max,
    months_of,
    remote_label,
    round_half_up,
    skill_demand,
    skill_universe,
)
from jobdash.charts import choropleth_chart, scatter_chart, skills_bar_chart, to_vega_spec
from jobdash.predicates import filter_visible, salary_bounds
from jobdash.records import Record, records_to_frame
from jobdash.state import FilterState, ScatterSelection, TimeMode
from jobdash.toggles import same_scatter_selection


SCATTER_HINT = "Click a point in the scatterplot to filter the map by salary (±5%) and the same month."


def _records(data_ctx: Dict[str, Any]) -> Sequence[Record]:
    return data_ctx.get("records", ()) or ()


def month_label(state: FilterState) -> str:
    if state.time_mode is TimeMode.MONTH:
        return state.selected_month or ""
    return "Overall"


def describe_scatter_selection(sel: Optional[ScatterSelection]) -> Optional[Dict[str, Any]]:
    if sel is None:
        return None
    low = high = None
    if sel.salary_usd is not None and pd.notna(sel.salary_usd):
        lo, hi = salary_bounds(float(sel.salary_usd))
        low, high = round_half_up(lo), round_half_up(hi)
    text = f"{sel.job_title}, Salary ${low:,.0f} – ${high:,.0f} (±5%), Month {sel.month or '-'}" if low is not None else (
        f"{sel.job_title}, Month {sel.month or '-'}"
    )
    return {"job_title": sel.job_title, "salary_min": low, "salary_max": high, "month": sel.month, "text": text}


def point_label(point: Dict[str, Any]) -> str:
    return f"{point['job_title']} · ${point['salary_usd']:,.0f} · {point.get('month') or '-'}"


def compute_map_view(state: FilterState, data_ctx: Dict[str, Any]) -> Dict[str, Any]:
    records = _records(data_ctx)
    names = data_ctx.get("location_names") or location_names(records)
    visible = filter_visible(records, state)

    counts = count_by((r for r in visible if r.location_key), lambda r: r.location_key)
    lo, mid, hi = min_mid_max(counts)
    country_counts = sorted(
        ({"location_key": k, "country": names.get(k, k), "jobs": v} for k, v in counts.items()),
        key=lambda row: (-row["jobs"], row["country"]),
    )

    # hover counts ignore the country selection itself
    hover_pool = filter_visible(records, state, exclude=("country",))
    by_key: Dict[str, List[Record]] = {}
    for r in hover_pool:
        by_key.setdefault(r.location_key, []).append(r)
    tooltips = {
        k: {"country": names.get(k, k), "jobs": len(v), "remote_pct": round_half_up(mean_of(v, lambda r: r.remote_ratio))}
        for k, v in by_key.items()
        if k
    }

    sel = state.scatter_selection
    details: Dict[str, Any]
    if not state.selected_countries and sel is None:
        details = {"message": "No country selected", "rows": []}
    else:
        if state.selected_countries:
            keys = sorted(state.selected_countries, key=lambda k: names.get(k, k))
        else:
            keys = sorted({r.location_key for r in visible if r.location_key}, key=lambda k: names.get(k, k))
        details = {"message": None, "rows": country_summary(visible, keys, names)}

    # per-month counts under every other filter, for the slider and auto-play steps
    monthly_counts = count_by_month_and_location(filter_visible(records, state, exclude=("time",)))

    scatter_desc = describe_scatter_selection(sel)
    return {
        "filters": state.as_dict(),
        "month_label": month_label(state),
        "months": data_ctx.get("months") or months_of(records),
        "legend": {"min": lo, "mid": mid, "max": hi},
        "monthly_counts": monthly_counts,
        "counts": country_counts,
        "tooltips": tooltips,
        "hint": scatter_desc["text"] if scatter_desc else SCATTER_HINT,
        "scatter_selection": scatter_desc,
        "details": details,
        "visible_count": len(visible),
        "charts": {"choropleth": to_vega_spec(choropleth_chart(country_counts, (lo, hi)))},
    }


def compute_scatter_view(state: FilterState, data_ctx: Dict[str, Any]) -> Dict[str, Any]:
    records = _records(data_ctx)
    # the scatter plot shows every candidate point and only highlights its own selection
    visible = [r for r in filter_visible(records, state, exclude=("scatter",)) if r.salary_usd is not None and r.years_experience is not None]
    points = [
        {
            "job_title": r.job_title,
            "company_location": r.company_location,
            "month": r.month,
            "years_experience": r.years_experience,
            "salary_usd": r.salary_usd,
            "remote_ratio": r.remote_ratio,
            "remote_label": remote_label(r.remote_ratio),
            "selected": same_scatter_selection(state.scatter_selection, r),
        }
        for r in visible
    ]
    label = f"({state.selected_month})" if state.time_mode is TimeMode.MONTH and state.selected_month else ""
    payload: Dict[str, Any] = {
        "filters": state.as_dict(),
        "month_label": label,
        "points": points,
        "message": None if points else "No data for current selection",
        "options": {
            "jobs": data_ctx.get("jobs", []),
            "countries": data_ctx.get("countries", []),
        },
        "charts": {},
    }
    if points:
        payload["charts"]["scatter"] = to_vega_spec(scatter_chart(pd.DataFrame(points)))
    return payload


def default_skills(all_skills: Sequence[str]) -> List[str]:
    if PINNED_SKILL in all_skills:
        return [PINNED_SKILL]
    return list(all_skills[:1])


def compute_skills_view(
    state: FilterState,
    data_ctx: Dict[str, Any],
    *,
    skills: Optional[Iterable[str]] = None,
    top_n: int = SKILLS_TOP_N,
) -> Dict[str, Any]:
    records = _records(data_ctx)
    all_skills = data_ctx.get("skills") or skill_universe(records)
    selected = [s for s in (skills or []) if s in set(all_skills)] or default_skills(all_skills)
    visible = filter_visible(records, state)
    totals = skill_demand(visible, selected, top_n=top_n)
    totals_df = pd.DataFrame(totals, columns=["job_title", "total"])
    return {
        "filters": state.as_dict(),
        "skills": all_skills,
        "selected_skills": selected,
        "totals": totals,
        "charts": {"skills_bar": to_vega_spec(skills_bar_chart(totals_df))},
    }


def export_frame(view: str, state: FilterState, data_ctx: Dict[str, Any]) -> pd.DataFrame:
    """Records visible to `view`, as a flat table."""
    records = _records(data_ctx)
    if view == "map" or view == "skills":
        return records_to_frame(filter_visible(records, state))
    if view == "scatter":
        return records_to_frame(filter_visible(records, state, exclude=("scatter",)))
    raise KeyError(view)
