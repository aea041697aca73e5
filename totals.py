"""
Day totals: a pure function of a Day's matrix and its Plan's schedule/goals.

Only recorded cells count. An unset (absent or None) cell adds nothing to
either points earned or points possible, so ``pct`` reflects performance on
what was actually scored.
"""

import logging
from typing import Any, Dict, Mapping

from database import DocumentStore, doc_path
from schemas import Plan, Totals

logger = logging.getLogger(__name__)

STEPPER_MAX = 2
# bumped by every matrix write; totals are written against the revision they read
MATRIX_REV = "matrix_rev"


def pct(earned: int, possible: int) -> int:
    """round(100 * earned / possible), ties rounded up; 0 when nothing is possible.

    Integer arithmetic keeps 12.5 -> 13 exact instead of relying on float rounding.
    """
    if possible <= 0:
        return 0
    return (200 * earned + possible) // (2 * possible)


def compute_totals(plan: Plan, matrix: Mapping[str, Mapping[str, Any]]) -> Totals:
    earned = possible = 0
    halves = {True: [0, 0], False: [0, 0]}  # am flag -> [earned, possible]

    for period in plan.schedule:
        row = matrix.get(period.id) or {}
        for goal in plan.goals:
            value = row.get(goal.id)
            if value is None:
                continue
            if goal.kind == "stepper":
                got, out_of = int(value), STEPPER_MAX
            else:
                got, out_of = (1 if value else 0), 1
            earned += got
            possible += out_of
            halves[period.am][0] += got
            halves[period.am][1] += out_of

    totals = Totals(pct=pct(earned, possible))
    if plan.splits_am_pm:
        totals.am_pct = pct(*halves[True])
        totals.pm_pct = pct(*halves[False])
    return totals


def recalculate_day_totals(store: DocumentStore, school_id: str, plan_id: str, day_key: str) -> Totals | None:
    """Re-read the plan and the day, recompute, and write ``totals`` back.

    The write only lands if ``matrix_rev`` is unchanged since the read; when a
    concurrent cell write got in between, the day is read again and
    recomputed. Returns None without writing when either document is missing.
    """
    plan_doc = store.get(doc_path("schools", school_id, "plans", plan_id))
    if plan_doc is None:
        return None
    plan = Plan.model_validate(plan_doc)
    day_path = doc_path("schools", school_id, "plans", plan_id, "days", day_key)

    while True:
        day_doc = store.get(day_path)
        if day_doc is None:
            return None
        matrix: Dict[str, Dict[str, Any]] = day_doc.get("matrix") or {}
        totals = compute_totals(plan, matrix)
        # a missing matrix_rev matches documents written before counting began
        if store.update(day_path, {"totals": totals.model_dump(exclude_none=True)},
                        expect={MATRIX_REV: day_doc.get(MATRIX_REV)}):
            logger.debug("Totals for %s/%s: %s", plan_id, day_key, totals)
            return totals
        logger.debug("Matrix of %s/%s changed during recompute, retrying", plan_id, day_key)
