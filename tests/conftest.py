from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

import pytest

from jobdash.data import clear_cache
from jobdash.records import Record
from jobdash.state import FilterStore


SAMPLE_CSV = """job_id,job_title,salary_usd,experience_level,company_location,remote_ratio,required_skills,posting_date,years_experience
AI00001,ML Engineer,100000,MI,Germany,0,"Python, PyTorch",2024-01-15,3
AI00002,ML Engineer,104000,MI,Germany,50,"Python, SQL",2024-02-03,4
AI00003,Data Scientist,90000,EN,United States,100,"SQL, Tableau",2024-01-20,1
AI00004,Data Scientist,120000,SE,united states,100,"Python,  , SQL",not a date,8
AI00005,AI Researcher,150000,EX,France,75,PyTorch,2024-03-01,10
"""


def build_record(
    job: str = "ML Engineer",
    loc: str = "Germany",
    month: Optional[str] = "2024-01",
    salary: Optional[float] = 100000.0,
    years: Optional[float] = 3.0,
    remote: object = 0,
    skills: Iterable[str] = ("Python",),
) -> Record:
    posting_date = date(int(month[:4]), int(month[5:7]), 15) if month else None
    return Record(
        job_title=job,
        company_location=loc,
        location_key=loc.strip().lower(),
        posting_date=posting_date,
        month=month,
        salary_usd=salary,
        years_experience=years,
        remote_ratio=remote,
        required_skills=frozenset(skills),
    )


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def records():
    return [
        build_record("ML Engineer", "Germany", "2024-01", 100000, 3, 0, ["Python", "PyTorch"]),
        build_record("ML Engineer", "Germany", "2024-02", 104000, 4, 50, ["Python", "SQL"]),
        build_record("Data Scientist", "United States", "2024-01", 90000, 1, 100, ["SQL", "Tableau"]),
        build_record("Data Scientist", "United States", None, 120000, 8, 100, ["Python", "SQL"]),
        build_record("AI Researcher", "France", "2024-03", 150000, 10, 75, ["PyTorch"]),
    ]


@pytest.fixture
def store():
    return FilterStore()


@pytest.fixture
def dataset_csv(tmp_path, monkeypatch):
    path = tmp_path / "ai_job_dataset.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    monkeypatch.setenv("JOBDASH_DATASET", str(path))
    clear_cache()
    yield path
    clear_cache()
