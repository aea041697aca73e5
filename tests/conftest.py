# tests/conftest.py
import logging
import sys

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import DocumentStore, doc_path, get_store
from schemas import ActingContext, Goal, Period, Plan

SCHOOL_ID = "s1"
PLAN_ID = "p1"
DAY_KEY = "2024-03-05"


@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    root = logging.getLogger()
    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
               for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)


@pytest.fixture
def store():
    return DocumentStore(mongomock.MongoClient()["behavior_tracker_test"])


def make_plan(plan_type="PercentageAMPM", periods=None, goals=None, **extra) -> Plan:
    if periods is None:
        periods = [
            Period(id="A1", label="A", am=True),
            Period(id="A2", label="A", am=False),
            Period(id="B1", label="B", am=True),
            Period(id="B2", label="B", am=False),
        ]
    if goals is None:
        goals = [
            Goal(id="on_task", label="On Task", kind="stepper"),
            Goal(id="kind", label="Kind Words", kind="checkbox"),
        ]
    return Plan(student_id="stu1", teacher_id="t1", plan_type=plan_type, schedule=periods, goals=goals, **extra)


@pytest.fixture
def plan(store):
    p = make_plan()
    store.set(doc_path("schools", SCHOOL_ID, "plans", PLAN_ID), p.model_dump())
    return p


@pytest.fixture
def ctx():
    return ActingContext(acted_by="t1", as_role="teacher", as_user_id="t1")


def audit_entries(store, school_id=SCHOOL_ID):
    return store.query(doc_path("schools", school_id, "audit_logs"))


def day_doc(store, plan_id=PLAN_ID, day_key=DAY_KEY, school_id=SCHOOL_ID):
    return store.get(doc_path("schools", school_id, "plans", plan_id, "days", day_key))


@pytest.fixture
def client(store):
    from main import app
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    from main import create_access_token

    def _make(uid="t1", roles=("teacher",), school_id=SCHOOL_ID, **extra):
        claims = {"sub": uid, **extra}
        if roles is not None:
            claims["roles"] = list(roles)
        if school_id is not None:
            claims["schoolId"] = school_id
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return _make
