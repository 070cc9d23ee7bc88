import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from jobdash.data import DatasetNotFoundError, get_dataset_path, load_dashboard_data
from jobdash.state import FilterState, FilterStore, TimeMode
from jobdash.toggles import (
    advance_month,
    clear_scatter,
    select_all,
    select_none,
    set_month,
    set_time_mode,
    toggle_scatter,
    toggle_skill,
)
from jobdash.views import (
    compute_map_view,
    compute_scatter_view,
    compute_skills_view,
    default_skills,
    export_frame,
    point_label,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(state: FilterState, names: Dict[str, str]) -> str:
    job_chip = f"Jobs: {len(state.selected_jobs)} selected" if state.selected_jobs else "Jobs: All"
    country_chip = (
        f"Countries: {', '.join(sorted(names.get(k, k) for k in state.selected_countries))}"
        if state.selected_countries
        else "Countries: All"
    )
    time_chip = f"Month: {state.selected_month}" if state.time_mode is TimeMode.MONTH else "Time: Overall"
    chips = [job_chip, country_chip, time_chip]
    if state.scatter_selection is not None:
        chips.append(f"Point: {state.scatter_selection.job_title}")
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def get_store() -> FilterStore:
    if "filter_store" not in st.session_state:
        st.session_state["filter_store"] = FilterStore()
    return st.session_state["filter_store"]


def _skill_key(skill: str) -> str:
    return f"skill::{skill}"


def on_skill_click(skill: str, all_skills: List[str]) -> None:
    chosen = toggle_skill(st.session_state.get("selected_skills", []), skill)
    st.session_state["selected_skills"] = sorted(chosen)
    # keep every checkbox in step, including a fallback skill re-checked by the toggle
    for s in all_skills:
        st.session_state[_skill_key(s)] = s in chosen


# ---------- UI setup ----------
st.set_page_config(page_title="AI Job Market Dashboard", layout="wide")
inject_base_styles()
st.title("AI Job Market Dashboard")
st.caption("Map, scatter plot and skills chart share one selection; every filter narrows all three views.")

try:
    data_ctx = load_dashboard_data()
except DatasetNotFoundError:
    st.error(f"No dataset found. Place ai_job_dataset.csv at {get_dataset_path()} or set JOBDASH_DATASET.")
    st.stop()

records = data_ctx.get("records", ())
if not records:
    st.error("The dataset has no usable rows.")
    st.stop()

store = get_store()
names: Dict[str, str] = data_ctx.get("location_names", {})
months: List[str] = data_ctx.get("months", [])

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    b1, b2 = st.columns(2)
    if b1.button("All jobs"):
        store.patch(select_all("selected_jobs", data_ctx.get("jobs", [])))
    if b2.button("No jobs"):
        store.patch(select_none("selected_jobs"))
    state = store.get_state()
    selected_jobs = st.multiselect("Job titles", options=data_ctx.get("jobs", []), default=sorted(state.selected_jobs))

    b3, b4 = st.columns(2)
    if b3.button("All countries"):
        store.patch(select_all("selected_countries", data_ctx.get("countries", [])))
    if b4.button("No countries"):
        store.patch(select_none("selected_countries"))
    state = store.get_state()
    selected_countries = st.multiselect(
        "Company locations",
        options=data_ctx.get("countries", []),
        default=sorted(names.get(k, k) for k in state.selected_countries if k in names),
    )
    store.patch(selected_jobs=selected_jobs, selected_countries=selected_countries)

    st.markdown("---")
    mode = st.radio("Time", ["overall", "month"], index=0 if state.time_mode is TimeMode.OVERALL else 1, horizontal=True)
    store.patch(set_time_mode(mode))
    if store.get_state().time_mode is TimeMode.MONTH and months:
        current = store.get_state().selected_month
        if current not in months:
            store.patch(set_month(store.get_state(), months[0]))
        if st.button("Next month"):
            store.patch(advance_month(store.get_state(), months))
        month = st.select_slider("Month", options=months, value=store.get_state().selected_month)
        store.patch(set_month(store.get_state(), month))

state = store.get_state()
st.markdown(f"<div class='chip-row'>{format_filter_summary(state, names)}</div>", unsafe_allow_html=True)

map_payload = compute_map_view(state, data_ctx)
scatter_payload = compute_scatter_view(state, data_ctx)

left, right = st.columns([3, 2])
with left:
    with card(f"Postings by country ({map_payload['month_label']})"):
        st.caption(map_payload["hint"])
        st.vega_lite_chart(spec=map_payload["charts"]["choropleth"], use_container_width=True)
        legend = map_payload["legend"]
        st.caption(f"Min: {legend['min']} · Mid: {legend['mid']} · Max: {legend['max']}")
        if state.time_mode is TimeMode.MONTH:
            per_month = {m: sum(by_loc.values()) for m, by_loc in map_payload["monthly_counts"].items()}
            st.caption("Postings per month: " + " · ".join(f"{m}: {per_month.get(m, 0)}" for m in months))
        details = map_payload["details"]
        if details["message"]:
            st.markdown(f"*{details['message']}*")
        else:
            st.dataframe(pd.DataFrame(details["rows"]).drop(columns=["location_key"]), hide_index=True, use_container_width=True)

with right:
    with card(f"Experience vs salary {scatter_payload['month_label']}"):
        if scatter_payload["message"]:
            st.info(scatter_payload["message"])
        else:
            st.vega_lite_chart(spec=scatter_payload["charts"]["scatter"], use_container_width=True)
            candidates = [r for r in records if r.salary_usd is not None]
            point_idx: Optional[int] = st.selectbox(
                "Scatter point",
                options=range(len(scatter_payload["points"])),
                format_func=lambda i: point_label(scatter_payload["points"][i]),
            )
            c1, c2 = st.columns(2)
            if c1.button("Toggle point filter") and point_idx is not None:
                point = scatter_payload["points"][point_idx]
                clicked = next(
                    r
                    for r in candidates
                    if r.job_title == point["job_title"] and r.salary_usd == point["salary_usd"] and r.month == point["month"]
                )
                store.patch(toggle_scatter(store.get_state(), clicked))
                st.rerun()
            if c2.button("Clear point filter"):
                store.patch(clear_scatter())
                st.rerun()

with card("Demand for selected skills"):
    skills_all = data_ctx.get("skills", [])
    if "selected_skills" not in st.session_state:
        st.session_state["selected_skills"] = default_skills(skills_all)
        for s in skills_all:
            st.session_state[_skill_key(s)] = s in st.session_state["selected_skills"]
    columns = st.columns(4)
    for i, skill in enumerate(skills_all):
        columns[i % 4].checkbox(skill, key=_skill_key(skill), on_change=on_skill_click, args=(skill, skills_all))
    skills_payload = compute_skills_view(state, data_ctx, skills=st.session_state["selected_skills"])
    st.vega_lite_chart(spec=skills_payload["charts"]["skills_bar"], use_container_width=True)

st.download_button(
    "Export visible postings (CSV)",
    data=export_frame("map", state, data_ctx).to_csv(index=False).encode("utf-8"),
    file_name="visible_postings.csv",
    mime="text/csv",
)
