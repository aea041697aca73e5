"""
Scoring pipeline: every write to a Day's scorable state goes through here.

Each operation persists first, then refreshes derived data (totals), then
appends an audit entry. A failure after the write has committed does not undo
the write; it surfaces as :class:`errors.PartialWriteError` so the caller can
tell "nothing happened" apart from "saved, but totals/audit are stale".
"""

import logging
import secrets
import time
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

import audit
from config import ATOMIC_INCIDENT_APPEND
from database import DocumentStore, doc_path, utcnow
from errors import NotFound, PartialWriteError, ValidationError
from schemas import ActingContext, CellValue, CustomButton, Incident, Plan, check_key
from totals import MATRIX_REV, recalculate_day_totals

logger = logging.getLogger(__name__)

TEACHER_ROLE = "teacher"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def day_doc_path(school_id: str, plan_id: str, day_key: str) -> str:
    return doc_path("schools", school_id, "plans", plan_id, "days", day_key)


def check_day_key(day_key: str) -> str:
    try:
        parsed = datetime.strptime(day_key, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise ValidationError(f"day key must be YYYY-MM-DD, got {day_key!r}")
    if parsed.strftime("%Y-%m-%d") != day_key:
        raise ValidationError(f"day key must be YYYY-MM-DD, got {day_key!r}")
    return day_key


def new_incident_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"inc_{int(time.time() * 1000)}_{suffix}"


def _load_plan(store: DocumentStore, school_id: str, plan_id: str) -> Plan:
    doc = store.get(doc_path("schools", school_id, "plans", plan_id))
    if doc is None:
        raise NotFound(f"Plan {plan_id} not found")
    return Plan.model_validate(doc)


def check_cell_value(plan: Plan, period_id: str, goal_id: str, value: CellValue) -> None:
    if plan.period(period_id) is None:
        raise ValidationError(f"Unknown period {period_id!r} for this plan")
    goal = plan.goal(goal_id)
    if goal is None:
        raise ValidationError(f"Unknown goal {goal_id!r} for this plan")
    if value is None:
        return
    if goal.kind == "stepper":
        if isinstance(value, bool) or not isinstance(value, int) or value not in (0, 1, 2):
            raise ValidationError(f"Goal {goal_id!r} is a stepper: value must be 0, 1 or 2")
    elif not isinstance(value, bool):
        raise ValidationError(f"Goal {goal_id!r} is a checkbox: value must be true or false")


def _follow_up(target: str, steps: List[Tuple[str, Callable[[], Any]]]) -> None:
    """Run post-write steps in order; keep going past failures, then report them together."""
    failed: List[str] = []
    causes: List[BaseException] = []
    for stage, step in steps:
        try:
            step()
        except Exception as exc:
            logger.exception("Partial write on %s: %s step failed after data was saved", target, stage)
            failed.append(stage)
            causes.append(exc)
    if failed:
        raise PartialWriteError(target, failed, causes)


def record_cell(store: DocumentStore, school_id: str, plan_id: str, day_key: str,
                period_id: str, goal_id: str, value: CellValue, ctx: ActingContext) -> None:
    check_day_key(day_key)
    plan = _load_plan(store, school_id, plan_id)
    check_cell_value(plan, period_id, goal_id, value)

    store.update(
        day_doc_path(school_id, plan_id, day_key),
        {f"matrix.{period_id}.{goal_id}": value, "last_modified": utcnow()},
        upsert=True,
        inc={MATRIX_REV: 1},
    )

    target = f"{plan_id}/{day_key}"
    _follow_up(target, [
        ("totals", lambda: recalculate_day_totals(store, school_id, plan_id, day_key)),
        ("audit", lambda: audit.record(
            store, school_id, ctx, audit.MATRIX_CELL_UPDATE, target,
            {"period_id": period_id, "goal_id": goal_id, "value": value},
        )),
    ])


def record_comment(store: DocumentStore, school_id: str, plan_id: str, day_key: str,
                   role: str, text: str, ctx: ActingContext) -> None:
    """Save the teacher's comment, or a specials comment keyed by subject id."""
    check_day_key(day_key)
    try:
        check_key(role)
    except ValueError as exc:
        raise ValidationError(str(exc))
    _load_plan(store, school_id, plan_id)

    field = "comments.teacher" if role == TEACHER_ROLE else f"comments.specials.{role}"
    store.update(
        day_doc_path(school_id, plan_id, day_key),
        {field: text, "last_modified": utcnow()},
        upsert=True,
    )

    # length only: comment text stays out of the audit trail
    target = f"{plan_id}/{day_key}"
    _follow_up(target, [
        ("audit", lambda: audit.record(
            store, school_id, ctx, audit.COMMENT_SAVE, target,
            {"role": role, "text_length": len(text)},
        )),
    ])


def log_incident(store: DocumentStore, school_id: str, plan_id: str, day_key: str,
                 button: CustomButton, note: Optional[str], source: str, ctx: ActingContext,
                 atomic: bool = ATOMIC_INCIDENT_APPEND) -> Incident:
    """Append a new incident to the day. Replaying this call logs a second incident."""
    check_day_key(day_key)
    _load_plan(store, school_id, plan_id)

    incident = Incident(
        id=new_incident_id(),
        label=button.label,
        color_hex=button.color_hex,
        note=note or None,
        ts=int(time.time() * 1000),
        source=source,
    )
    path = day_doc_path(school_id, plan_id, day_key)
    if atomic:
        store.push(path, "incidents", incident.model_dump(), {"last_modified": utcnow()})
    else:
        # Two loggers reading before either writes lose one incident.
        logger.warning("Incident append on %s uses read-modify-write; concurrent appends may be lost", path)
        day = store.get(path)
        current = (day or {}).get("incidents") or []
        store.update(path, {"incidents": [*current, incident.model_dump()], "last_modified": utcnow()}, upsert=True)

    target = f"{plan_id}/{day_key}"
    _follow_up(target, [
        ("audit", lambda: audit.record(
            store, school_id, ctx, audit.INCIDENT_LOG, target,
            {"label": button.label, "source": source, "has_note": bool(note)},
        )),
    ])
    return incident
