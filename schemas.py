"""
Document Schemas for the Behavior Tracker

Each Pydantic model below describes a document stored under a school, e.g.
``schools/{schoolId}/plans/{planId}/days/{dayKey}`` for :class:`Day`.
Use these to validate data and as the source of truth for the application domain.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal, Union
from datetime import datetime

Role = Literal["admin", "teacher", "specials", "achievement", "parent"]
ROLES = ("admin", "teacher", "specials", "achievement", "parent")

# stepper -> 0/1/2, checkbox -> bool, None -> cleared
CellValue = Optional[Union[bool, int]]


def check_key(value: str) -> str:
    """Ids become dotted document keys (``matrix.{period}.{goal}``)."""
    if not value or "." in value or "/" in value or value.startswith("$"):
        raise ValueError(f"invalid id {value!r}: must be non-empty, no '.', '/' or leading '$'")
    return value


# Tenant
class Theme(BaseModel):
    mode: Literal["light", "dark", "system"] = "light"
    vars: Dict[str, str] = Field(default_factory=dict, description="CSS variable overrides")

class School(BaseModel):
    name: str
    logo_url: Optional[str] = None
    theme: Theme = Field(default_factory=Theme)

class Student(BaseModel):
    name: str
    grade: Optional[str] = None
    teacher_id: Optional[str] = None
    active_plan_id: Optional[str] = None
    parent_emails: List[str] = Field(default_factory=list)
    parent_portal_id: Optional[str] = None

class Staff(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    roles: List[Role] = Field(default_factory=list)
    schoolId: Optional[str] = None
    subject_id: Optional[str] = Field(None, description="specials subject, e.g. art|music|pe")


# Plans
class Period(BaseModel):
    id: str
    label: str
    am: bool = Field(True, description="morning half of the day")

    @field_validator("id")
    @classmethod
    def valid_id(cls, v: str) -> str:
        return check_key(v)

class Goal(BaseModel):
    id: str
    label: str
    kind: Literal["stepper", "checkbox"]

    @field_validator("id")
    @classmethod
    def valid_id(cls, v: str) -> str:
        return check_key(v)

class IncentiveThreshold(BaseModel):
    pct: int = Field(..., ge=0, le=100)
    label: str

class Incentives(BaseModel):
    thresholds: List[IncentiveThreshold] = Field(default_factory=list)

class CustomButton(BaseModel):
    id: str
    label: str
    color_hex: str = Field("#607D8B", pattern=r"^#[0-9A-Fa-f]{6}$")

class Plan(BaseModel):
    student_id: str
    teacher_id: Optional[str] = None
    active: bool = True
    plan_type: str = Field("Percentage", description="Percentage | PercentageAMPM")
    schedule: List[Period] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    incentives: Optional[Incentives] = None
    custom_buttons: List[CustomButton] = Field(default_factory=list)
    accommodations: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_ids(self):
        for name, items in (("period", self.schedule), ("goal", self.goals)):
            ids = [i.id for i in items]
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {name} id in plan")
        return self

    @property
    def splits_am_pm(self) -> bool:
        return "AMPM" in self.plan_type

    def period(self, period_id: str) -> Optional[Period]:
        return next((p for p in self.schedule if p.id == period_id), None)

    def goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)


# Days
class Totals(BaseModel):
    pct: int = 0
    am_pct: Optional[int] = None
    pm_pct: Optional[int] = None

class Comments(BaseModel):
    teacher: str = ""
    specials: Dict[str, str] = Field(default_factory=dict)

class Incident(BaseModel):
    id: str
    label: str
    color_hex: Optional[str] = None
    note: Optional[str] = None
    ts: int = Field(..., description="epoch milliseconds")
    source: str = Field(..., description="teacher|specials")

class Day(BaseModel):
    matrix: Dict[str, Dict[str, CellValue]] = Field(default_factory=dict)
    totals: Totals = Field(default_factory=Totals)
    comments: Comments = Field(default_factory=Comments)
    incidents: List[Incident] = Field(default_factory=list)
    last_modified: Optional[datetime] = None


# Auth & audit
class AuthUser(BaseModel):
    email: str
    password_hash: str
    claims: Dict[str, Any] = Field(default_factory=dict, description="roles + schoolId")

class ActingContext(BaseModel):
    acted_by: str = Field(..., description="real signed-in uid")
    as_role: str
    as_user_id: str = Field(..., description="impersonated uid, or acted_by")

class AuditEntry(ActingContext):
    ts: datetime
    action: str
    target: str
    details: Dict[str, Any] = Field(default_factory=dict)
