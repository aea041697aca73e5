import logging
from typing import Any, Dict

import audit
from claims import save_staff
from database import DocumentStore, doc_path
from errors import NotFound
from schemas import ActingContext, School, Staff, Theme

logger = logging.getLogger(__name__)


def create_school(store: DocumentStore, school_id: str, school: School, ctx: ActingContext) -> None:
    path = doc_path("schools", school_id)
    store.set(path, school.model_dump())
    audit.record(store, school_id, ctx, audit.SCHOOL_CREATE, path, {"name": school.name})


def set_theme(store: DocumentStore, school_id: str, theme: Theme, ctx: ActingContext) -> None:
    """Replace the school's theme (mode + CSS variable overrides)."""
    path = doc_path("schools", school_id)
    if not store.update(path, {"theme": theme.model_dump()}):
        raise NotFound(f"School {school_id} not found")
    audit.record(store, school_id, ctx, audit.THEME_UPDATE, path, {"mode": theme.mode, "vars": len(theme.vars)})


def update_staff(store: DocumentStore, school_id: str, uid: str, staff: Staff,
                 ctx: ActingContext) -> Dict[str, Any]:
    """Save a staff profile; claims follow through the staff sync hook."""
    data = staff.model_dump(exclude_none=True)
    data["schoolId"] = school_id
    saved = save_staff(store, school_id, uid, data)
    audit.record(store, school_id, ctx, audit.STAFF_UPDATE, doc_path("staff", uid), {"roles": saved.get("roles", [])})
    logger.info("Staff %s saved in %s", uid, school_id)
    return saved
