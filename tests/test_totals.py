# tests/test_totals.py
import pytest

from database import doc_path
from schemas import Goal, Period
from totals import compute_totals, pct, recalculate_day_totals

from tests.conftest import DAY_KEY, PLAN_ID, SCHOOL_ID, make_plan


@pytest.mark.parametrize("earned,possible,expected", [
    (1, 3, 33),
    (1, 8, 13),   # 12.5 rounds up
    (5, 8, 63),   # 62.5 rounds up
    (2, 3, 67),
    (0, 5, 0),
    (4, 4, 100),
    (0, 0, 0),
])
def test_pct_rounds_half_up(earned, possible, expected):
    assert pct(earned, possible) == expected


def test_same_inputs_same_totals():
    plan = make_plan()
    matrix = {"A1": {"on_task": 1, "kind": True}, "B2": {"on_task": 2}}
    assert compute_totals(plan, matrix) == compute_totals(plan, matrix)


def test_no_recorded_cells_is_zero_not_nan():
    totals = compute_totals(make_plan(), {})
    assert totals.pct == 0
    assert totals.am_pct == 0
    assert totals.pm_pct == 0


def test_stepper_all_twos_is_full_marks():
    plan = make_plan(goals=[Goal(id="g", label="G", kind="stepper")])
    matrix = {p.id: {"g": 2} for p in plan.schedule}
    assert compute_totals(plan, matrix).pct == 100


def test_unset_checkbox_periods_are_excluded():
    plan = make_plan(goals=[Goal(id="c", label="C", kind="checkbox")])
    half = plan.schedule[: len(plan.schedule) // 2]
    matrix = {p.id: {"c": True} for p in half}
    assert compute_totals(plan, matrix).pct == 100


def test_null_cells_are_excluded():
    plan = make_plan(goals=[Goal(id="c", label="C", kind="checkbox")])
    matrix = {"A1": {"c": True}, "A2": {"c": None}}
    assert compute_totals(plan, matrix).pct == 100


def test_checkbox_one_of_three():
    plan = make_plan(
        plan_type="Percentage",
        periods=[Period(id=f"P{i}", label=str(i)) for i in range(3)],
        goals=[Goal(id="c", label="C", kind="checkbox")],
    )
    matrix = {"P0": {"c": True}, "P1": {"c": False}, "P2": {"c": False}}
    assert compute_totals(plan, matrix).pct == 33


def test_am_pm_halves_are_independent():
    plan = make_plan(goals=[Goal(id="g", label="G", kind="stepper")])
    # AM periods A1/B1, PM periods A2/B2
    matrix = {"A1": {"g": 2}, "B1": {"g": 2}, "A2": {"g": 0}, "B2": {"g": 1}}
    totals = compute_totals(plan, matrix)
    assert totals.am_pct == 100
    assert totals.pm_pct == 25
    assert totals.pct == 63  # 5 / 8

    pm_changed = {**matrix, "A2": {"g": 2}}
    assert compute_totals(plan, pm_changed).am_pct == 100


def test_am_only_leaves_pm_at_zero():
    plan = make_plan(goals=[Goal(id="g", label="G", kind="stepper")])
    totals = compute_totals(plan, {"A1": {"g": 1}})
    assert totals.am_pct == 50
    assert totals.pm_pct == 0


def test_plain_percentage_plan_has_no_halves():
    plan = make_plan(plan_type="Percentage")
    totals = compute_totals(plan, {"A1": {"on_task": 2, "kind": False}})
    assert totals.pct == 67
    assert totals.am_pct is None and totals.pm_pct is None


def test_cells_outside_schedule_are_ignored():
    plan = make_plan(plan_type="Percentage")
    totals = compute_totals(plan, {"Z9": {"on_task": 0}, "A1": {"unknown_goal": 0, "on_task": 2}})
    assert totals.pct == 100


def test_recalculate_writes_totals(store, plan):
    day_path = doc_path("schools", SCHOOL_ID, "plans", PLAN_ID, "days", DAY_KEY)
    store.set(day_path, {"matrix": {"A1": {"on_task": 1}}})
    totals = recalculate_day_totals(store, SCHOOL_ID, PLAN_ID, DAY_KEY)
    assert totals.pct == 50
    assert store.get(day_path)["totals"] == {"pct": 50, "am_pct": 50, "pm_pct": 0}


def test_recalculate_without_plan_or_day_is_noop(store, plan):
    assert recalculate_day_totals(store, SCHOOL_ID, "missing", DAY_KEY) is None
    assert recalculate_day_totals(store, SCHOOL_ID, PLAN_ID, "2024-01-01") is None
