# tests/test_seed.py
from datetime import datetime

import mongomock
import pytest

from database import DocumentStore, doc_path
from dates import SCHOOL_TZ
from errors import ValidationError
from loaders import load_day, load_plan, load_specials_day, load_teacher_students
from schemas import Day, Plan
from seed import seed_demo, seeded_random
from totals import compute_totals

from tests.conftest import SCHOOL_ID

TODAY = datetime(2024, 3, 13, 10, 0, tzinfo=SCHOOL_TZ)


def _seeded(**kwargs):
    store = DocumentStore(mongomock.MongoClient()["seed_test"])
    result = seed_demo(store, SCHOOL_ID, today=TODAY, **kwargs)
    return store, result


def test_seeded_random_is_repeatable():
    a, b = seeded_random(42), seeded_random(42)
    assert [a() for _ in range(5)] == [b() for _ in range(5)]


def test_seed_is_deterministic():
    first, result = _seeded()
    second, _ = _seeded()
    assert result == {"students_created": 10}
    for i in range(1, 11):
        assert load_plan(first, SCHOOL_ID, f"demo_plan_{i}") == load_plan(second, SCHOOL_ID, f"demo_plan_{i}")
        assert load_day(first, SCHOOL_ID, f"demo_plan_{i}", "2024-03-12") == \
            load_day(second, SCHOOL_ID, f"demo_plan_{i}", "2024-03-12")


def test_seeded_totals_match_recomputation():
    store, _ = _seeded()
    for i in range(1, 11):
        plan = Plan.model_validate(load_plan(store, SCHOOL_ID, f"demo_plan_{i}"))
        days = store.query(doc_path("schools", SCHOOL_ID, "plans", f"demo_plan_{i}", "days"))
        assert [d["id"] for d in days] == [f"2024-03-{n:02d}" for n in range(6, 13)]
        for doc in days:
            day = Day.model_validate(doc)
            assert day.totals == compute_totals(plan, day.matrix)


def test_specials_roster_by_day_code():
    store, _ = _seeded()
    assert len(load_specials_day(store, SCHOOL_ID, "A")) == 10
    assert len(load_specials_day(store, SCHOOL_ID, "C2")) == 10
    assert load_specials_day(store, SCHOOL_ID, "M") == []
    roster = load_specials_day(store, SCHOOL_ID, "B")
    assert all(s["plan"]["id"] == s["active_plan_id"] for s in roster)


def test_weekday_rotation():
    store, _ = _seeded(specials_mode="MF")
    plan = load_plan(store, SCHOOL_ID, "demo_plan_1")
    assert [p["id"] for p in plan["schedule"]][:4] == ["M1", "M2", "T1", "T2"]
    assert len(load_specials_day(store, SCHOOL_ID, "TH")) == 10


def test_teacher_roster_split():
    store, _ = _seeded()
    t1 = load_teacher_students(store, SCHOOL_ID, "teacher_001")
    t2 = load_teacher_students(store, SCHOOL_ID, "teacher_002")
    assert len(t1) + len(t2) == 10
    assert all(s["teacher_id"] == "teacher_001" for s in t1)


def test_unknown_mode_rejected(store):
    with pytest.raises(ValidationError):
        seed_demo(store, SCHOOL_ID, specials_mode="XYZ")
