from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict


class ScatterSelectionModel(BaseModel):
    salary_usd: float
    job_title: str
    month: Optional[str] = None


class FilterPatchModel(BaseModel):
    """Partial filter state; only the fields a client sends are applied."""

    # unknown fields reach the store, which rejects them by name
    model_config = ConfigDict(extra="allow")

    selected_jobs: Optional[List[str]] = None
    selected_countries: Optional[List[str]] = None
    time_mode: Optional[Literal["overall", "month"]] = None
    selected_month: Optional[str] = None
    scatter_selection: Optional[ScatterSelectionModel] = None


class ToggleValueModel(BaseModel):
    value: str


class ScatterPointModel(BaseModel):
    salary_usd: float
    job_title: str
    month: Optional[str] = None


class TimeModeModel(BaseModel):
    time_mode: Literal["overall", "month"]


class MonthModel(BaseModel):
    month: Optional[str] = None


class MetaListResponse(BaseModel):
    values: List[str]
