"""
Signed-in session: who is acting, with which claims, and whether an admin is
imitating someone else.

A Session is built per request from the bearer token and passed explicitly to
whatever needs it. Claims are taken as issued; a role change on the staff
document only reaches a session after the user signs in again and receives a
fresh token.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import PermissionDenied, ValidationError
from schemas import ROLES, ActingContext

logger = logging.getLogger(__name__)


@dataclass
class Imitation:
    target_uid: str
    as_role: str


@dataclass
class Session:
    uid: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)
    imitation: Optional[Imitation] = None

    @classmethod
    def from_token(cls, payload: Dict[str, Any]) -> "Session":
        claims = {k: payload[k] for k in ("roles", "schoolId") if k in payload}
        return cls(uid=payload["sub"], email=payload.get("email"), claims=claims)

    @property
    def roles(self) -> List[str]:
        return list(self.claims.get("roles") or [])

    @property
    def school_id(self) -> Optional[str]:
        return self.claims.get("schoolId")

    def has_role(self, *roles: str) -> bool:
        return any(r in self.roles for r in roles)

    def start_imitate(self, target_uid: str, as_role: str) -> None:
        if not self.has_role("admin"):
            raise PermissionDenied("Only admins can imitate")
        if not target_uid or as_role not in ROLES:
            raise ValidationError("target uid and a known role are required to imitate")
        self.imitation = Imitation(target_uid=target_uid, as_role=as_role)
        logger.info("%s imitating %s as %s", self.uid, target_uid, as_role)

    def stop_imitate(self) -> None:
        self.imitation = None

    def audit_context(self) -> ActingContext:
        if self.imitation:
            return ActingContext(
                acted_by=self.uid,
                as_role=self.imitation.as_role,
                as_user_id=self.imitation.target_uid,
            )
        return ActingContext(
            acted_by=self.uid,
            as_role=self.roles[0] if self.roles else "unknown",
            as_user_id=self.uid,
        )
