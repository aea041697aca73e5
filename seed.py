"""
Deterministic demo data: ten students, each with an AM/PM plan and a week of
scored days. The same seed always produces the same documents.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from database import DocumentStore, doc_path
from dates import SCHOOL_TZ, get_today_key
from errors import ValidationError
from schemas import CustomButton, Goal, IncentiveThreshold, Incentives, Period, Plan, Student
from totals import compute_totals

logger = logging.getLogger(__name__)

STUDENT_NAMES = [
    "Emma Johnson", "Liam Smith", "Olivia Brown", "Noah Davis", "Ava Wilson",
    "Ethan Martinez", "Sophia Anderson", "Mason Taylor", "Isabella Moore", "Lucas Jackson",
]
GRADES = ["3rd", "4th", "5th"]
TEACHER_IDS = ["teacher_001", "teacher_002"]

# specials rotation: letter days A-E or weekdays M-F, one AM and one PM block each
DAY_CODES = {
    "AE": ["A", "B", "C", "D", "E"],
    "MF": ["M", "T", "W", "TH", "F"],
}

GOALS = [
    Goal(id="goal_1", label="On Task", kind="stepper"),
    Goal(id="goal_2", label="Following Directions", kind="stepper"),
    Goal(id="goal_3", label="Respectful", kind="checkbox"),
]


def seeded_random(seed: int) -> Callable[[], float]:
    value = seed

    def rng() -> float:
        nonlocal value
        value = (value * 9301 + 49297) % 233280
        return value / 233280

    return rng


def demo_schedule(specials_mode: str) -> List[Period]:
    schedule = []
    for code in DAY_CODES[specials_mode]:
        schedule.append(Period(id=f"{code}1", label=code, am=True))
        schedule.append(Period(id=f"{code}2", label=code, am=False))
    return schedule


def seed_demo(store: DocumentStore, school_id: str, seed: int = 1337, specials_mode: str = "AE",
              today: Optional[datetime] = None) -> Dict[str, int]:
    if specials_mode not in DAY_CODES:
        raise ValidationError("specials_mode must be 'AE' or 'MF'")

    rng = seeded_random(seed)
    today = today or datetime.now(SCHOOL_TZ)
    schedule = demo_schedule(specials_mode)

    for i, name in enumerate(STUDENT_NAMES, start=1):
        student_id = f"demo_student_{i}"
        plan_id = f"demo_plan_{i}"

        student = Student(
            name=name,
            grade=GRADES[int(rng() * len(GRADES))],
            teacher_id=TEACHER_IDS[int(rng() * len(TEACHER_IDS))],
            active_plan_id=plan_id,
            parent_emails=[f"parent{i}@example.com"],
            parent_portal_id=f"portal_{i}",
        )
        store.set(doc_path("schools", school_id, "students", student_id), student.model_dump())

        plan = Plan(
            student_id=student_id,
            teacher_id=TEACHER_IDS[int(rng() * len(TEACHER_IDS))],
            plan_type="PercentageAMPM",
            schedule=schedule,
            goals=GOALS,
            incentives=Incentives(thresholds=[
                IncentiveThreshold(pct=70, label="Bronze Star"),
                IncentiveThreshold(pct=85, label="Silver Star"),
                IncentiveThreshold(pct=95, label="Gold Star"),
            ]),
            custom_buttons=[
                CustomButton(id="btn_1", label="Great Job!", color_hex="#4CAF50"),
                CustomButton(id="btn_2", label="Needs Redirect", color_hex="#FF9800"),
            ],
        )
        store.set(doc_path("schools", school_id, "plans", plan_id), plan.model_dump())

        for offset in range(-7, 0):
            day_key = get_today_key(today + timedelta(days=offset))
            matrix = {}
            for period in schedule:
                matrix[period.id] = {}
                for goal in GOALS:
                    if goal.kind == "stepper":
                        matrix[period.id][goal.id] = int(rng() * 3)
                    else:
                        matrix[period.id][goal.id] = rng() > 0.3
            store.set(doc_path("schools", school_id, "plans", plan_id, "days", day_key), {
                "matrix": matrix,
                "totals": compute_totals(plan, matrix).model_dump(exclude_none=True),
                "comments": {"teacher": "Great progress today!" if rng() > 0.5 else "", "specials": {}},
                "incidents": [],
            })

    logger.info("Seeded %d demo students into %s (seed=%d, mode=%s)", len(STUDENT_NAMES), school_id, seed, specials_mode)
    return {"students_created": len(STUDENT_NAMES)}
