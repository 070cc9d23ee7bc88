from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import FilterPatchModel, MetaListResponse, MonthModel, ScatterPointModel, TimeModeModel, ToggleValueModel
from jobdash.data import DatasetNotFoundError, load_dashboard_data
from jobdash.state import FilterStore, InvalidPatchError, ScatterSelection
from jobdash.toggles import (
    advance_month,
    clear_scatter,
    select_all,
    select_none,
    set_month,
    set_time_mode,
    toggle_country,
    toggle_job,
    toggle_scatter_selection,
)
from jobdash.views import compute_map_view, compute_scatter_view, compute_skills_view, export_frame


app = FastAPI(title="AI Job Market Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One shared selection state per API process.
store = FilterStore()

DIMENSIONS = {"jobs": "selected_jobs", "countries": "selected_countries"}
VIEWS = ("map", "scatter", "skills")


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
                frozenset: sorted,
            },
        ),
    )


def _error(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _failure(name: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, DatasetNotFoundError):
        logger.error("%s: %s", name, exc)
        return _error(exc, 503)
    if isinstance(exc, InvalidPatchError):
        return _error(exc, 400)
    logger.exception("%s failed", name)
    return _error(exc, 500)


def _state_response() -> JSONResponse:
    return _json(store.get_state().as_dict())


def _apply(patch: Dict[str, Any]) -> JSONResponse:
    if patch:
        store.patch(patch)
    return _state_response()


def _meta(key: str) -> JSONResponse:
    try:
        data_ctx = load_dashboard_data()
        values: List[str] = [str(v) for v in data_ctx.get(key, []) or []]
        return _json(MetaListResponse(values=values).model_dump())
    except Exception as exc:
        return _failure(f"meta_{key}", exc)


@app.get("/meta/jobs")
def meta_jobs():
    return _meta("jobs")


@app.get("/meta/countries")
def meta_countries():
    return _meta("countries")


@app.get("/meta/months")
def meta_months():
    return _meta("months")


@app.get("/meta/skills")
def meta_skills():
    return _meta("skills")


@app.get("/meta/report")
def meta_report():
    try:
        data_ctx = load_dashboard_data()
        return _json({"path": str(data_ctx["path"]), "report": data_ctx.get("report", {})})
    except Exception as exc:
        return _failure("meta_report", exc)


@app.get("/state")
def get_state():
    return _state_response()


@app.post("/state")
def patch_state(body: FilterPatchModel):
    patch = body.model_dump(exclude_unset=True)
    patch.update(body.model_extra or {})
    try:
        return _apply(patch)
    except Exception as exc:
        return _failure("patch_state", exc)


@app.post("/state/reset")
def reset_state():
    store.reset()
    return _state_response()


@app.post("/toggle/job")
def toggle_job_endpoint(body: ToggleValueModel):
    return _apply(toggle_job(store.get_state(), body.value))


@app.post("/toggle/country")
def toggle_country_endpoint(body: ToggleValueModel):
    return _apply(toggle_country(store.get_state(), body.value))


@app.post("/toggle/scatter")
def toggle_scatter_endpoint(body: ScatterPointModel):
    clicked = ScatterSelection(salary_usd=body.salary_usd, job_title=body.job_title, month=body.month or None)
    return _apply(toggle_scatter_selection(store.get_state(), clicked))


@app.post("/scatter/clear")
def clear_scatter_endpoint():
    return _apply(clear_scatter())


@app.post("/time-mode")
def time_mode_endpoint(body: TimeModeModel):
    try:
        return _apply(set_time_mode(body.time_mode))
    except Exception as exc:
        return _failure("time_mode", exc)


@app.post("/month")
def month_endpoint(body: MonthModel):
    return _apply(set_month(store.get_state(), body.month))


@app.post("/month/advance")
def advance_month_endpoint():
    try:
        data_ctx = load_dashboard_data()
        return _apply(advance_month(store.get_state(), data_ctx.get("months", [])))
    except Exception as exc:
        return _failure("advance_month", exc)


@app.post("/select-all/{dimension}")
def select_all_endpoint(dimension: str):
    field = DIMENSIONS.get(dimension)
    if field is None:
        return _error(KeyError(f"Unknown dimension: {dimension}"), 404)
    try:
        data_ctx = load_dashboard_data()
        return _apply(select_all(field, data_ctx.get(dimension, [])))
    except Exception as exc:
        return _failure("select_all", exc)


@app.post("/select-none/{dimension}")
def select_none_endpoint(dimension: str):
    field = DIMENSIONS.get(dimension)
    if field is None:
        return _error(KeyError(f"Unknown dimension: {dimension}"), 404)
    return _apply(select_none(field))


@app.get("/views/map")
def map_view():
    try:
        return _json(compute_map_view(store.get_state(), load_dashboard_data()))
    except Exception as exc:
        return _failure("map_view", exc)


@app.get("/views/scatter")
def scatter_view():
    try:
        return _json(compute_scatter_view(store.get_state(), load_dashboard_data()))
    except Exception as exc:
        return _failure("scatter_view", exc)


@app.get("/views/skills")
def skills_view(skills: Optional[List[str]] = Query(default=None), top_n: int = Query(default=20, ge=1, le=200)):
    try:
        return _json(compute_skills_view(store.get_state(), load_dashboard_data(), skills=skills, top_n=top_n))
    except Exception as exc:
        return _failure("skills_view", exc)


@app.get("/export/{view}")
def export_view(view: str):
    if view not in VIEWS:
        return _error(KeyError(f"Unknown view: {view}"), 404)
    try:
        export_df = export_frame(view, store.get_state(), load_dashboard_data())
    except Exception as exc:
        return _failure("export", exc)
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={view}.csv"})
