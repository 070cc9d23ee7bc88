import pytest
from fastapi.testclient import TestClient

from api import main


@pytest.fixture
def client(dataset_csv):
    main.store.reset()
    yield TestClient(main.app)
    main.store.reset()


def test_meta_endpoints(client):
    assert client.get("/meta/jobs").json() == {"values": ["AI Researcher", "Data Scientist", "ML Engineer"]}
    assert client.get("/meta/countries").json() == {"values": ["France", "Germany", "United States"]}
    assert client.get("/meta/months").json() == {"values": ["2024-01", "2024-02", "2024-03"]}
    assert client.get("/meta/skills").json()["values"][0] == "Python"
    assert client.get("/meta/report").json()["report"]["rows_kept"] == 5


def test_missing_dataset_is_503(tmp_path, monkeypatch):
    monkeypatch.setenv("JOBDASH_DATASET", str(tmp_path / "missing.csv"))
    resp = TestClient(main.app).get("/meta/jobs")
    assert resp.status_code == 503
    assert resp.json()["type"] == "DatasetNotFoundError"


def test_state_patch_and_validation(client):
    resp = client.post("/state", json={"selected_jobs": ["ML Engineer"], "time_mode": "month"})
    assert resp.status_code == 200
    assert resp.json()["selected_jobs"] == ["ML Engineer"]
    assert resp.json()["time_mode"] == "month"

    bad = client.post("/state", json={"bogus": 1})
    assert bad.status_code == 400
    assert bad.json()["type"] == "InvalidPatchError"
    assert client.get("/state").json()["selected_jobs"] == ["ML Engineer"]


def test_state_patch_applies_only_sent_fields(client):
    client.post("/state", json={"selected_jobs": ["ML Engineer"], "time_mode": "month", "selected_month": "2024-01"})
    state = client.post("/state", json={"selectedCountries": ["Germany"]}).json()
    assert state["selected_jobs"] == ["ML Engineer"]
    assert state["selected_month"] == "2024-01"
    assert state["selected_countries"] == ["germany"]

    point = {"salary_usd": 100000, "job_title": "ML Engineer"}
    assert client.post("/state", json={"scatter_selection": point}).json()["scatter_selection"] == {
        "salary_usd": 100000.0,
        "job_title": "ML Engineer",
        "month": None,
    }
    assert client.post("/state", json={"time_mode": "weekly"}).status_code == 422


def test_scatter_selection_requires_a_salary(client):
    bad = {"salary_usd": None, "job_title": "ML Engineer", "month": "2024-01"}
    assert client.post("/toggle/scatter", json=bad).status_code == 422
    assert client.post("/toggle/scatter", json={"job_title": "ML Engineer"}).status_code == 422
    assert client.post("/state", json={"scatter_selection": bad}).status_code == 422
    assert client.get("/state").json()["scatter_selection"] is None


def test_country_toggle_round_trip(client):
    assert client.post("/toggle/country", json={"value": "Germany"}).json()["selected_countries"] == ["germany"]
    assert client.post("/toggle/country", json={"value": "GERMANY"}).json()["selected_countries"] == []


def test_job_toggle_and_select_all_none(client):
    assert client.post("/toggle/job", json={"value": "Data Scientist"}).json()["selected_jobs"] == ["Data Scientist"]
    assert client.post("/select-all/jobs").json()["selected_jobs"] == ["AI Researcher", "Data Scientist", "ML Engineer"]
    assert client.post("/select-none/jobs").json()["selected_jobs"] == []
    assert client.post("/select-all/countries").json()["selected_countries"] == ["france", "germany", "united states"]
    assert client.post("/select-all/skills").status_code == 404


def test_scatter_toggle_and_clear(client):
    point = {"salary_usd": 100000, "job_title": "ML Engineer", "month": "2024-01"}
    selected = client.post("/toggle/scatter", json=point).json()["scatter_selection"]
    assert selected == {"salary_usd": 100000.0, "job_title": "ML Engineer", "month": "2024-01"}
    assert client.post("/toggle/scatter", json=point).json()["scatter_selection"] is None

    client.post("/toggle/scatter", json=point)
    assert client.post("/scatter/clear").json()["scatter_selection"] is None


def test_month_slider_and_autoplay(client):
    # slider is ignored in overall mode
    assert client.post("/month", json={"month": "2024-02"}).json()["selected_month"] is None
    client.post("/time-mode", json={"time_mode": "month"})
    assert client.post("/month", json={"month": "2024-03"}).json()["selected_month"] == "2024-03"
    assert client.post("/month/advance").json()["selected_month"] == "2024-01"
    assert client.post("/time-mode", json={"time_mode": "weekly"}).status_code == 422


def test_map_view_follows_state(client):
    client.post("/time-mode", json={"time_mode": "month"})
    client.post("/month", json={"month": "2024-01"})
    payload = client.get("/views/map").json()
    assert payload["month_label"] == "2024-01"
    assert {row["country"]: row["jobs"] for row in payload["counts"]} == {"Germany": 1, "United States": 1}
    assert payload["legend"] == {"min": 1, "mid": 1, "max": 1}
    assert payload["charts"]["choropleth"]


def test_scatter_and_skills_views(client):
    client.post("/toggle/country", json={"value": "United States"})
    scatter = client.get("/views/scatter").json()
    assert [p["job_title"] for p in scatter["points"]] == ["Data Scientist", "Data Scientist"]

    skills = client.get("/views/skills", params={"skills": ["SQL"]}).json()
    assert skills["totals"] == [{"job_title": "Data Scientist", "total": 2}]


def test_export(client):
    client.post("/toggle/job", json={"value": "AI Researcher"})
    resp = client.get("/export/map")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("job_title,company_location")
    assert len(lines) == 2
    assert client.get("/export/nope").status_code == 404
