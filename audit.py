"""
Append-only audit trail under ``schools/{schoolId}/audit_logs``.

Entries are written once and never read back or changed by the application.
"""

import logging
from typing import Any, Dict, Optional

from database import DocumentStore, doc_path, utcnow
from schemas import ActingContext, AuditEntry

logger = logging.getLogger(__name__)

MATRIX_CELL_UPDATE = "matrix_cell_update"
COMMENT_SAVE = "comment_save"
INCIDENT_LOG = "incident_log"
THEME_UPDATE = "theme_update"
SCHOOL_CREATE = "school_create"
STAFF_UPDATE = "staff_update"
CLAIMS_SET = "claims_set"
DEMO_SEED = "demo_seed"


def record(store: DocumentStore, school_id: str, ctx: ActingContext, action: str, target: str,
           details: Optional[Dict[str, Any]] = None) -> str:
    entry = AuditEntry(ts=utcnow(), action=action, target=target, details=details or {}, **ctx.model_dump())
    entry_id = store.add(doc_path("schools", school_id, "audit_logs"), entry.model_dump())
    logger.info("audit %s %s by %s as %s/%s", action, target, ctx.acted_by, ctx.as_user_id, ctx.as_role)
    return entry_id
