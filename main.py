import logging
import time
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from jose import jwt, JWTError
from passlib.context import CryptContext

import audit
from claims import get_claims, set_custom_claims
from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, CORS_ORIGINS, LOG_LEVEL, PORT, SECRET_KEY
from database import DocumentStore, doc_path, get_store
from dates import get_today_key, get_week
from errors import PartialWriteError, TrackerError
from loaders import (
    load_accommodations, load_day, load_plan, load_school, load_specials_day,
    load_staff, load_teacher_students,
)
from schemas import (
    School, Student, Staff, Plan, Period, Goal, Day, Incident, Theme,
    CustomButton, AuthUser, AuditEntry, CellValue,
)
from school_admin import create_school, set_theme, update_staff
from scoring import check_day_key, log_incident, record_cell, record_comment
from seed import seed_demo
from session import Session

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Behavior Tracker API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------- Auth & Security -------------------- #
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

IMITATE_UID_HEADER = "x-imitate-uid"
IMITATE_ROLE_HEADER = "x-imitate-role"


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RegisterPayload(BaseModel):
    email: str
    password: str


class LoginPayload(BaseModel):
    email: str
    password: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(request: Request) -> Optional[Session]:
    """Return the Session for the bearer token, or None when there is no valid token.

    An admin may act as someone else by sending X-Imitate-Uid and X-Imitate-Role.
    """
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    session = Session.from_token(payload)
    target = request.headers.get(IMITATE_UID_HEADER)
    if target:
        session.start_imitate(target, request.headers.get(IMITATE_ROLE_HEADER, ""))
    return session


def require_roles(*roles: str):
    async def _dep(user: Optional[Session] = Depends(get_current_user)):
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        if roles and not user.has_role(*roles):
            raise HTTPException(status_code=403, detail="Forbidden for role")
        return user
    return _dep


def require_school(*roles: str):
    """Role check plus tenant check: the token's schoolId must match the path."""
    async def _dep(school_id: str, user: Session = Depends(require_roles(*roles))):
        if user.school_id != school_id:
            raise HTTPException(status_code=403, detail="Forbidden for school")
        return user
    return _dep


STAFF_ROLES = ("admin", "teacher", "specials", "achievement")


# -------------------- Errors & request logging -------------------- #
@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    body: Dict[str, Any] = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, PartialWriteError):
        body["saved"] = True
        body["failed_stages"] = exc.stages
    else:
        logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# -------------------- Meta endpoints -------------------- #

@app.get("/")
def read_root():
    return {"message": "Behavior Tracker Backend is running"}


@app.get("/schema")
def get_schema():
    models = [
        School, Student, Staff, Plan, Period, Goal, Day, Incident,
        Theme, CustomButton, AuthUser, AuditEntry,
    ]
    return {m.__name__: m.model_json_schema() for m in models}


@app.get("/meta/today")
def today():
    return {"day_key": get_today_key(), "week": get_week()}


# -------------------- Auth endpoints -------------------- #

@app.post("/auth/register", response_model=Dict[str, str])
def register_user(payload: RegisterPayload, store: DocumentStore = Depends(get_store)):
    if store.query("users", {"email": payload.email}, limit=1):
        raise HTTPException(status_code=400, detail="Email already registered")
    doc = AuthUser(email=payload.email, password_hash=hash_password(payload.password))
    uid = store.add("users", doc.model_dump())
    return {"id": uid}


@app.post("/auth/login", response_model=TokenResponse)
def login(payload: LoginPayload, store: DocumentStore = Depends(get_store)):
    found = store.query("users", {"email": payload.email}, limit=1)
    if not found:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user = found[0]
    if not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({
        "sub": user["id"],
        "email": user.get("email"),
        **get_claims(store, user["id"]),
    })
    return TokenResponse(access_token=token)


@app.get("/auth/me")
def me(user: Session = Depends(require_roles())):
    return {
        "uid": user.uid,
        "email": user.email,
        "roles": user.roles,
        "schoolId": user.school_id,
        "imitation": asdict(user.imitation) if user.imitation else None,
        "audit_context": user.audit_context().model_dump(),
    }


# -------------------- Admin endpoints -------------------- #

class ClaimsPayload(BaseModel):
    uid: Optional[str] = None
    roles: Optional[Any] = None
    schoolId: Optional[str] = None


@app.post("/admin/claims")
def admin_set_claims(payload: ClaimsPayload, user: Optional[Session] = Depends(get_current_user),
                     store: DocumentStore = Depends(get_store)):
    return set_custom_claims(store, user, payload.uid, payload.roles, payload.schoolId)


@app.post("/schools/{school_id}")
def add_school(school_id: str, payload: School, user: Session = Depends(require_school("admin")),
               store: DocumentStore = Depends(get_store)):
    create_school(store, school_id, payload, user.audit_context())
    return {"id": school_id}


@app.put("/schools/{school_id}/theme")
def update_theme(school_id: str, payload: Theme, user: Session = Depends(require_school("admin")),
                 store: DocumentStore = Depends(get_store)):
    set_theme(store, school_id, payload, user.audit_context())
    return {"status": "updated"}


@app.put("/schools/{school_id}/staff/{uid}")
def put_staff(school_id: str, uid: str, payload: Staff, user: Session = Depends(require_school("admin")),
              store: DocumentStore = Depends(get_store)):
    return update_staff(store, school_id, uid, payload, user.audit_context())


class SeedPayload(BaseModel):
    seed: int = 1337
    specials_mode: str = "AE"


@app.post("/schools/{school_id}/seed-demo")
def seed_school(school_id: str, payload: SeedPayload, user: Session = Depends(require_school("admin")),
                store: DocumentStore = Depends(get_store)):
    result = seed_demo(store, school_id, seed=payload.seed, specials_mode=payload.specials_mode)
    audit.record(store, school_id, user.audit_context(), audit.DEMO_SEED, doc_path("schools", school_id),
                 {"seed": payload.seed, "specials_mode": payload.specials_mode})
    return result


# -------------------- Read endpoints -------------------- #

@app.get("/schools/{school_id}")
def get_school(school_id: str, user: Session = Depends(require_school()),
               store: DocumentStore = Depends(get_store)):
    return load_school(store, school_id)


@app.get("/schools/{school_id}/staff/{uid}")
def get_staff(school_id: str, uid: str, user: Session = Depends(require_school()),
              store: DocumentStore = Depends(get_store)):
    return load_staff(store, school_id, uid)


@app.get("/schools/{school_id}/students")
def list_students(school_id: str, teacher_id: Optional[str] = None, user: Session = Depends(require_school(*STAFF_ROLES)),
                  store: DocumentStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return load_teacher_students(store, school_id, teacher_id or user.uid)


@app.get("/schools/{school_id}/specials/{day_code}/students")
def specials_roster(school_id: str, day_code: str, user: Session = Depends(require_school(*STAFF_ROLES)),
                    store: DocumentStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return load_specials_day(store, school_id, day_code)


@app.get("/schools/{school_id}/accommodations/{student_id}")
def get_accommodations(school_id: str, student_id: str, user: Session = Depends(require_school(*STAFF_ROLES)),
                       store: DocumentStore = Depends(get_store)):
    return load_accommodations(store, school_id, student_id)


@app.get("/schools/{school_id}/plans/{plan_id}")
def get_plan(school_id: str, plan_id: str, user: Session = Depends(require_school()),
             store: DocumentStore = Depends(get_store)):
    return load_plan(store, school_id, plan_id)


@app.get("/schools/{school_id}/plans/{plan_id}/days/{day_key}")
def get_day(school_id: str, plan_id: str, day_key: str, user: Session = Depends(require_school()),
            store: DocumentStore = Depends(get_store)):
    check_day_key(day_key)
    doc = load_day(store, school_id, plan_id, day_key)
    day = Day.model_validate(doc or {})
    return {"day_key": day_key, "exists": doc is not None, **day.model_dump()}


# -------------------- Scoring endpoints -------------------- #

class CellPayload(BaseModel):
    value: CellValue = None


class CommentPayload(BaseModel):
    text: str


class IncidentPayload(BaseModel):
    button: CustomButton
    note: Optional[str] = None


@app.put("/schools/{school_id}/plans/{plan_id}/days/{day_key}/matrix/{period_id}/{goal_id}")
def put_cell(school_id: str, plan_id: str, day_key: str, period_id: str, goal_id: str, payload: CellPayload,
             user: Session = Depends(require_school(*STAFF_ROLES)), store: DocumentStore = Depends(get_store)):
    record_cell(store, school_id, plan_id, day_key, period_id, goal_id, payload.value, user.audit_context())
    return {"status": "saved", "totals": (load_day(store, school_id, plan_id, day_key) or {}).get("totals")}


@app.put("/schools/{school_id}/plans/{plan_id}/days/{day_key}/comments/{role}")
def put_comment(school_id: str, plan_id: str, day_key: str, role: str, payload: CommentPayload,
                user: Session = Depends(require_school(*STAFF_ROLES)), store: DocumentStore = Depends(get_store)):
    record_comment(store, school_id, plan_id, day_key, role, payload.text, user.audit_context())
    return {"status": "saved"}


@app.post("/schools/{school_id}/plans/{plan_id}/days/{day_key}/incidents")
def post_incident(school_id: str, plan_id: str, day_key: str, payload: IncidentPayload,
                  user: Session = Depends(require_school(*STAFF_ROLES)), store: DocumentStore = Depends(get_store)):
    ctx = user.audit_context()
    # source is the acting role, not a client field
    incident = log_incident(store, school_id, plan_id, day_key, payload.button, payload.note, ctx.as_role, ctx)
    return incident.model_dump()


# -------------------- Run -------------------- #

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
