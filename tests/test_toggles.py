import pytest

from jobdash.state import FilterState, InvalidPatchError, ScatterSelection, TimeMode
from jobdash.toggles import (
    advance_month,
    clear_scatter,
    replace_scalar,
    same_scatter_selection,
    select_all,
    select_none,
    set_month,
    set_time_mode,
    toggle_country,
    toggle_job,
    toggle_member,
    toggle_scatter,
    toggle_skill,
)

MONTHS = ["2024-01", "2024-02", "2024-03"]


def test_toggle_member_adds_then_removes():
    start = frozenset({"a"})
    once = toggle_member(start, "b")
    assert once == {"a", "b"}
    assert toggle_member(once, "b") == start
    assert toggle_member(start, "a") == frozenset()


def test_job_toggle_twice_is_identity(store):
    before = store.get_state().selected_jobs
    store.patch(toggle_job(store.get_state(), "ML Engineer"))
    assert store.get_state().selected_jobs == {"ML Engineer"}
    store.patch(toggle_job(store.get_state(), "ML Engineer"))
    assert store.get_state().selected_jobs == before


def test_country_toggle_uses_location_key(store):
    store.patch(toggle_country(store.get_state(), "Germany"))
    assert store.get_state().selected_countries == {"germany"}
    store.patch(toggle_country(store.get_state(), "GERMANY"))
    assert store.get_state().selected_countries == frozenset()


def test_replace_scalar_validates():
    assert replace_scalar("selected_month", "2024-02") == {"selected_month": "2024-02"}
    with pytest.raises(InvalidPatchError):
        replace_scalar("month", "2024-02")
    assert set_time_mode("MONTH") == {"time_mode": TimeMode.MONTH}


def test_set_month_only_applies_in_month_mode():
    assert set_month(FilterState(), "2024-02") == {}
    assert set_month(FilterState(time_mode=TimeMode.MONTH), "2024-02") == {"selected_month": "2024-02"}


def test_advance_month_wraps_around():
    state = FilterState(time_mode=TimeMode.MONTH, selected_month="2024-03")
    assert advance_month(state, MONTHS) == {"selected_month": "2024-01"}
    assert advance_month(FilterState(time_mode=TimeMode.MONTH, selected_month="2024-01"), MONTHS) == {"selected_month": "2024-02"}
    assert advance_month(FilterState(time_mode=TimeMode.MONTH), MONTHS) == {"selected_month": "2024-01"}
    assert advance_month(FilterState(), MONTHS) == {}
    assert advance_month(state, []) == {}


def test_scatter_toggle_round_trip(store, make_record):
    point = make_record(job="Data Scientist", salary=120000, month="2024-04")
    before = store.get_state().scatter_selection
    store.patch(toggle_scatter(store.get_state(), point))
    assert store.get_state().scatter_selection == ScatterSelection(120000, "Data Scientist", "2024-04")
    store.patch(toggle_scatter(store.get_state(), point))
    assert store.get_state().scatter_selection == before


def test_clicking_a_different_point_replaces_selection(store, make_record):
    store.patch(toggle_scatter(store.get_state(), make_record(salary=100000)))
    store.patch(toggle_scatter(store.get_state(), make_record(salary=100001)))
    assert store.get_state().scatter_selection.salary_usd == 100001


def test_same_scatter_selection_is_value_equality(make_record):
    sel = ScatterSelection(100000, "ML Engineer", "2024-01")
    assert same_scatter_selection(sel, make_record())
    assert same_scatter_selection(ScatterSelection(100000.0, "ML Engineer", "2024-01"), make_record())
    assert not same_scatter_selection(sel, make_record(month=None))
    assert not same_scatter_selection(None, make_record())
    assert same_scatter_selection(ScatterSelection(100000, "ML Engineer", None), make_record(month=None))


def test_clear_scatter_always_clears(store, make_record):
    assert clear_scatter() == {"scatter_selection": None}
    store.patch(toggle_scatter(store.get_state(), make_record()))
    store.patch(clear_scatter())
    assert store.get_state().scatter_selection is None
    store.patch(clear_scatter())
    assert store.get_state().scatter_selection is None


def test_select_all_and_none():
    assert select_all("selected_jobs", ["a", "b"]) == {"selected_jobs": frozenset({"a", "b"})}
    assert select_all("selected_countries", ["Germany"]) == {"selected_countries": frozenset({"germany"})}
    assert select_none("selected_countries") == {"selected_countries": frozenset()}
    with pytest.raises(ValueError):
        select_all("time_mode", ["month"])


def test_toggle_skill_never_empties_selection():
    assert toggle_skill({"Python"}, "SQL") == {"Python", "SQL"}
    assert toggle_skill({"Python", "SQL"}, "SQL") == {"Python"}
    assert toggle_skill({"SQL"}, "SQL") == {"Python"}
    assert toggle_skill({"SQL"}, "SQL", fallback="Rust") == {"Rust"}
