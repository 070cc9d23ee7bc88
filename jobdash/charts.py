from __future__ import annotations

from typing import Any, Dict, List, Tuple

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

WORLD_ATLAS_URL = "https://cdn.jsdelivr.net/npm/world-atlas@2/countries-110m.json"

REMOTE_DOMAIN = ["On-site", "Hybrid", "Remote", "Unrecognized"]
REMOTE_RANGE = ["#1f77b4", "#ffbf00", "#2ca02c", "#9ca3af"]
ACTIVE_COLOR = "#1f77b4"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def choropleth_chart(counts: List[Dict[str, Any]], domain: Tuple[float, float], *, width: int = 900, height: int = 460) -> alt.LayerChart:
    """World map colored by postings per country.

    `counts` rows carry `location_key`, `country` and `jobs`; countries are joined on
    the lowercased atlas name so matching uses the same key as the filters.
    """
    countries = alt.topo_feature(WORLD_ATLAS_URL, "countries")
    values = [{"location_key": c["location_key"], "country": c["country"], "jobs": int(c["jobs"])} for c in counts]
    base = alt.Chart(countries).mark_geoshape(fill="#eee", stroke="#999", strokeWidth=0.4)
    filled = (
        alt.Chart(countries)
        .mark_geoshape(stroke="#999", strokeWidth=0.4)
        .transform_calculate(location_key="lower(datum.properties.name)")
        .transform_lookup(
            lookup="location_key",
            from_=alt.LookupData(data=alt.InlineData(values=values), key="location_key", fields=["country", "jobs"]),
        )
        .transform_filter("datum.jobs > 0")
        .encode(
            color=alt.Color(
                "jobs:Q",
                title="Postings",
                scale=alt.Scale(scheme="yellowgreenblue", domain=list(domain)),
            ),
            tooltip=[alt.Tooltip("country:N", title="Country"), alt.Tooltip("jobs:Q", title="Jobs", format=",")],
        )
    )
    return alt.layer(base, filled).project("equalEarth").properties(width=width, height=height)


def scatter_chart(points: pd.DataFrame, *, height: int = 420) -> alt.Chart:
    return (
        alt.Chart(points)
        .mark_circle(size=60, opacity=0.75)
        .encode(
            x=alt.X("years_experience:Q", title="Experience (years)", scale=alt.Scale(zero=False, nice=True)),
            y=alt.Y("salary_usd:Q", title="Salary (USD)", scale=alt.Scale(zero=False, nice=True), axis=alt.Axis(format="$~s")),
            color=alt.Color("remote_label:N", title="Work mode", scale=alt.Scale(domain=REMOTE_DOMAIN, range=REMOTE_RANGE)),
            stroke=alt.value("#111"),
            strokeWidth=alt.condition("datum.selected", alt.value(2), alt.value(0)),
            tooltip=[
                alt.Tooltip("job_title:N", title="Job"),
                alt.Tooltip("company_location:N", title="Location"),
                alt.Tooltip("month:N", title="Month"),
                alt.Tooltip("years_experience:Q", title="Experience (yrs)"),
                alt.Tooltip("salary_usd:Q", title="Salary", format="$,.0f"),
                alt.Tooltip("remote_label:N", title="Remote"),
            ],
        )
        .properties(height=height)
    )


def skills_bar_chart(totals: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(totals)
        .mark_bar(color=ACTIVE_COLOR, cornerRadiusEnd=6)
        .encode(
            x=alt.X("total:Q", title="Number of Job Postings"),
            y=alt.Y("job_title:N", title="Job Role", sort="-x"),
            tooltip=[alt.Tooltip("job_title:N", title="Job"), alt.Tooltip("total:Q", title="Postings", format=",")],
        )
        .properties(title="Demand for Selected Skills Across AI Job Roles")
    )
