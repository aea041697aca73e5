"""
Read side. Absent documents come back as None (or an empty list) so callers
can create on demand; nothing here raises for a missing record.
"""

from typing import Any, Dict, List, Optional

from database import DocumentStore, doc_path


def load_school(store: DocumentStore, school_id: str) -> Optional[Dict[str, Any]]:
    return store.get(doc_path("schools", school_id))


def load_staff(store: DocumentStore, school_id: str, uid: str) -> Optional[Dict[str, Any]]:
    return store.get(doc_path("schools", school_id, "staff", uid))


def load_plan(store: DocumentStore, school_id: str, plan_id: str) -> Optional[Dict[str, Any]]:
    return store.get(doc_path("schools", school_id, "plans", plan_id))


def load_day(store: DocumentStore, school_id: str, plan_id: str, day_key: str) -> Optional[Dict[str, Any]]:
    return store.get(doc_path("schools", school_id, "plans", plan_id, "days", day_key))


def load_accommodations(store: DocumentStore, school_id: str, student_id: str) -> Optional[Dict[str, Any]]:
    return store.get(doc_path("schools", school_id, "accommodations", student_id))


def load_teacher_students(store: DocumentStore, school_id: str, teacher_id: str) -> List[Dict[str, Any]]:
    return store.query(doc_path("schools", school_id, "students"), {"teacher_id": teacher_id})


def load_specials_day(store: DocumentStore, school_id: str, day_code: str) -> List[Dict[str, Any]]:
    """Students whose active plan has a period matching ``day_code`` (e.g. 'A', 'M').

    A period matches on either its id or its label. Each student is returned
    with its plan attached under ``plan``.
    """
    students = []
    for student in store.query(doc_path("schools", school_id, "students")):
        plan_id = student.get("active_plan_id")
        if not plan_id:
            continue
        plan = load_plan(store, school_id, plan_id)
        if plan is None:
            continue
        if any(p.get("label") == day_code or p.get("id") == day_code for p in plan.get("schedule") or []):
            students.append({**student, "plan": plan})
    return students
