"""
Custom claims (``roles`` + ``schoolId``) carried in each user's token.

Claims live on the user record at ``users/{uid}`` and are copied into the JWT
at login. The staff document is the source of truth; :func:`sync_staff_claims`
reconciles claims after a staff write, and the new claims reach a session only
once the user signs in again.
"""

import logging
from typing import Any, Dict, List, Optional

import audit
from database import DocumentStore, doc_path, utcnow
from errors import PermissionDenied, Unauthenticated, ValidationError
from schemas import ROLES
from session import Session

logger = logging.getLogger(__name__)


def issue_claims(store: DocumentStore, uid: str, roles: List[str], school_id: str) -> None:
    store.update(doc_path("users", uid), {"claims": {"roles": list(roles), "schoolId": school_id}}, upsert=True)


def get_claims(store: DocumentStore, uid: str) -> Dict[str, Any]:
    user = store.get(doc_path("users", uid))
    return (user or {}).get("claims") or {}


def admin_exists(store: DocumentStore) -> bool:
    return bool(store.query("users", {"claims.roles": "admin"}, limit=1))


def sync_staff_claims(store: DocumentStore, school_id: str, uid: str,
                      before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> bool:
    """Re-issue claims when a staff write changed ``roles`` or ``schoolId``.

    Returns True when claims were written. Never raises: a failed sync is
    logged and the previous claims stay in effect.
    """
    if after is None:
        logger.info("Staff document deleted for %s, skipping claim sync", uid)
        return False

    roles = after.get("roles") or []
    if before is not None:
        roles_changed = before.get("roles") != roles
        school_changed = before.get("schoolId") != school_id
        if not roles_changed and not school_changed:
            logger.debug("No role/school changes for %s, skipping claim sync", uid)
            return False

    try:
        issue_claims(store, uid, roles, school_id)
    except Exception:
        logger.exception("Error syncing claims for %s", uid)
        return False
    logger.info("Claims synced for %s: roles=%s school=%s", uid, roles, school_id)
    return True


def save_staff(store: DocumentStore, school_id: str, uid: str, data: Dict[str, Any],
               claims_updated: bool = False) -> Dict[str, Any]:
    """Merge ``data`` into the staff document, then reconcile the user's claims."""
    path = doc_path("schools", school_id, "staff", uid)
    before = store.get(path)
    fields = dict(data)
    if claims_updated:
        fields["claims_updated_at"] = utcnow()
    store.set(path, fields, merge=True)
    after = store.get(path)
    sync_staff_claims(store, school_id, uid, before, after)
    return after


def set_custom_claims(store: DocumentStore, caller: Optional[Session], uid: str,
                      roles: Any, school_id: str) -> Dict[str, Any]:
    """Admin action: set a user's roles and school, mirrored onto the staff document.

    Before any admin exists, a caller whose token has no ``roles`` claim may
    grant claims to themselves once, to bootstrap the first admin.
    """
    if caller is None:
        raise Unauthenticated("Must be logged in to set claims")

    if not caller.has_role("admin"):
        if "roles" in caller.claims:
            raise PermissionDenied("Only admins can set custom claims")
        if uid != caller.uid:
            raise PermissionDenied("First-time setup may only set the caller's own claims")
        if admin_exists(store):
            raise PermissionDenied("An admin already exists; ask them to set your claims")
        logger.info("Bootstrapping first admin %s in %s", caller.uid, school_id)

    if not uid or not isinstance(roles, list) or not school_id:
        raise ValidationError("uid, roles array, and schoolId are required")
    unknown = [r for r in roles if r not in ROLES]
    if unknown:
        raise ValidationError(f"Unknown roles: {', '.join(map(str, unknown))}")

    issue_claims(store, uid, roles, school_id)
    save_staff(store, school_id, uid, {"roles": roles, "schoolId": school_id}, claims_updated=True)
    audit.record(store, school_id, caller.audit_context(), audit.CLAIMS_SET, doc_path("staff", uid),
                 {"roles": roles})
    return {"success": True, "message": "Claims updated successfully"}
