from __future__ import annotations

import logging
import os
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

import pandas as pd

from jobdash.aggregations import location_names, months_of, skill_universe, universe
from jobdash.records import normalize_with_report


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
DATASET_FILENAME = "ai_job_dataset.csv"
DATASET_ENV = "JOBDASH_DATASET"


class DatasetNotFoundError(FileNotFoundError):
    pass


def get_dataset_path() -> Path:
    override = os.environ.get(DATASET_ENV, "").strip()
    return Path(override) if override else DATA_DIR / DATASET_FILENAME


def file_signature(path: Path) -> Tuple[str, float, int]:
    stat = path.stat()
    return (str(path.resolve()), stat.st_mtime, stat.st_size)


def read_postings_csv(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]
    return df


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[str, float, int]) -> Dict[str, object]:
    path = Path(files_sig[0])
    raw = read_postings_csv(path)
    records, report = normalize_with_report(raw)
    records = tuple(records)
    names = location_names(records)
    logger.info("Loaded %d job posting(s) from %s (%d row(s) read)", len(records), path.name, report.rows_in)
    return {
        "path": path,
        "records": records,
        "report": {k: v for k, v in asdict(report).items() if k != "bad_remote_values"},
        "months": months_of(records),
        "jobs": universe(records, lambda r: r.job_title),
        "countries": sorted(names.values()),
        "location_names": names,
        "skills": skill_universe(records),
    }


def load_dashboard_data(path: Optional[Path] = None) -> Dict[str, object]:
    """Read and normalize the postings CSV once per file version."""
    path = Path(path) if path is not None else get_dataset_path()
    if not path.is_file():
        raise DatasetNotFoundError(f"Dataset not found: {path}")
    return _load_dashboard_data_cached(file_signature(path))


def clear_cache() -> None:
    _load_dashboard_data_cached.cache_clear()
