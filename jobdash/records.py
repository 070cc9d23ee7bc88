from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd


logger = logging.getLogger(__name__)

REMOTE_RATIOS = (0, 50, 100)

COLUMN_ALIASES = {
    "job_title": "job_title",
    "Job Title": "job_title",
    "jobTitle": "job_title",
    "company_location": "company_location",
    "Company Location": "company_location",
    "companyLocation": "company_location",
    "posting_date": "posting_date",
    "Posting Date": "posting_date",
    "postingDate": "posting_date",
    "salary_usd": "salary_usd",
    "Salary USD": "salary_usd",
    "salaryUsd": "salary_usd",
    "years_experience": "years_experience",
    "Years Experience": "years_experience",
    "yearsExperience": "years_experience",
    "remote_ratio": "remote_ratio",
    "Remote Ratio": "remote_ratio",
    "remoteRatio": "remote_ratio",
    "required_skills": "required_skills",
    "Required Skills": "required_skills",
    "requiredSkills": "required_skills",
}


@dataclass(frozen=True)
class Record:
    job_title: str
    company_location: str
    location_key: str
    posting_date: Optional[date] = None
    month: Optional[str] = None
    salary_usd: Optional[float] = None
    years_experience: Optional[float] = None
    remote_ratio: Any = None
    required_skills: FrozenSet[str] = field(default_factory=frozenset)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "job_title": self.job_title,
            "company_location": self.company_location,
            "location_key": self.location_key,
            "posting_date": self.posting_date.isoformat() if self.posting_date else None,
            "month": self.month,
            "salary_usd": self.salary_usd,
            "years_experience": self.years_experience,
            "remote_ratio": self.remote_ratio,
            "required_skills": sorted(self.required_skills),
        }


@dataclass
class NormalizeReport:
    rows_in: int = 0
    rows_kept: int = 0
    rows_dropped: int = 0
    unparsed_dates: int = 0
    bad_remote_ratios: int = 0
    bad_remote_values: List[Any] = field(default_factory=list)


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if pd.api.types.is_scalar(value):
        try:
            return bool(pd.isna(value))
        except (TypeError, ValueError):
            return False
    return False


def _clean_str(value: object) -> str:
    if _is_missing(value):
        return ""
    return str(value).strip()


def _finite_or_none(value: object) -> Optional[float]:
    if _is_missing(value) or isinstance(value, bool):
        return None
    num = pd.to_numeric(value, errors="coerce")
    if _is_missing(num):
        return None
    out = float(num)
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def location_key(value: object) -> str:
    """Canonical form used for every location comparison."""
    return _clean_str(value).lower()


def parse_month(value: object) -> Tuple[Optional[date], Optional[str]]:
    """Parse a posting date into (date, 'YYYY-MM'); (None, None) when unparseable."""
    if _is_missing(value):
        return None, None
    if isinstance(value, str) and not value.strip():
        return None, None
    ts = pd.to_datetime(value, errors="coerce")
    if _is_missing(ts):
        return None, None
    return ts.date(), f"{ts.year:04d}-{ts.month:02d}"


def parse_remote_ratio(value: object) -> Tuple[Any, bool]:
    """Return (ratio, ok). Values outside 0/50/100 are passed through as given."""
    num = _finite_or_none(value)
    if num is not None and num.is_integer() and int(num) in REMOTE_RATIOS:
        return int(num), True
    return (None if _is_missing(value) else value), False


def split_skills(value: object) -> FrozenSet[str]:
    text = _clean_str(value)
    if not text:
        return frozenset()
    return frozenset(s.strip() for s in text.split(",") if s.strip())


def _canonical_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in row.items():
        name = COLUMN_ALIASES.get(str(key).strip())
        if name and (name not in out or _is_missing(out[name])):
            out[name] = value
    return out


def coerce_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Canonical column names, with dates and numbers coerced a column at a time."""
    out = pd.DataFrame(index=df.index)
    for col in df.columns:
        name = COLUMN_ALIASES.get(str(col).strip())
        if not name:
            continue
        out[name] = df[col] if name not in out else out[name].combine_first(df[col])

    if "posting_date" in out:
        dates = out["posting_date"].where(out["posting_date"].astype(str).str.strip() != "")
        out["posting_date"] = pd.to_datetime(dates, errors="coerce", format="mixed")
    for col in ("salary_usd", "years_experience"):
        if col in out:
            out[col] = pd.to_numeric(out[col], errors="coerce")
    return out


def normalize_with_report(raw_rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> Tuple[List[Record], NormalizeReport]:
    if isinstance(raw_rows, pd.DataFrame):
        raw_rows = coerce_frame(raw_rows).to_dict(orient="records")

    report = NormalizeReport()
    records: List[Record] = []
    for raw in raw_rows:
        report.rows_in += 1
        if not isinstance(raw, Mapping):
            report.rows_dropped += 1
            continue
        row = _canonical_row(raw)
        job_title = _clean_str(row.get("job_title"))
        company_location = _clean_str(row.get("company_location"))
        if not job_title and not company_location:
            report.rows_dropped += 1
            continue

        posting_date, month = parse_month(row.get("posting_date"))
        if month is None:
            report.unparsed_dates += 1

        remote_ratio, remote_ok = parse_remote_ratio(row.get("remote_ratio"))
        if not remote_ok:
            report.bad_remote_ratios += 1
            report.bad_remote_values.append(remote_ratio)

        records.append(
            Record(
                job_title=job_title,
                company_location=company_location,
                location_key=location_key(company_location),
                posting_date=posting_date,
                month=month,
                salary_usd=_finite_or_none(row.get("salary_usd")),
                years_experience=_finite_or_none(row.get("years_experience")),
                remote_ratio=remote_ratio,
                required_skills=split_skills(row.get("required_skills")),
            )
        )

    report.rows_kept = len(records)
    if report.bad_remote_ratios:
        seen = Counter(repr(v) for v in report.bad_remote_values).most_common(5)
        logger.warning(
            "%d record(s) have a remote_ratio outside %s; kept as given (most common: %s)",
            report.bad_remote_ratios,
            list(REMOTE_RATIOS),
            ", ".join(f"{v} x{n}" for v, n in seen),
        )
    if report.rows_dropped:
        logger.info("Dropped %d unusable row(s) of %d", report.rows_dropped, report.rows_in)
    return records, report


def normalize(raw_rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> List[Record]:
    records, _ = normalize_with_report(raw_rows)
    return records


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    columns = [
        "job_title",
        "company_location",
        "location_key",
        "posting_date",
        "month",
        "salary_usd",
        "years_experience",
        "remote_ratio",
        "required_skills",
    ]
    rows = [r.as_dict() for r in records]
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows, columns=columns)
    df["required_skills"] = df["required_skills"].apply(lambda s: ", ".join(s))
    return df
