# CampusGate - academic records portal API
# Every academic-data route goes through the access policy engine (no direct queries).
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import select

from academics import AcademicError, AttendanceOutOfRange, ScoreOutOfRange
from auth import verify_password, create_access_token
from config import configure_logging, get_settings
from database import database as db
from database.models import AccountStatus, User
from gatekeeper import AccessDenied, AccessPolicyEngine, AuditSink, ReasonCode, ResolverUnavailable
from server.data_access import SqlOwnershipResolver
from server.endpoints import router as academic_router

logger = logging.getLogger(__name__)

DENIAL_STATUS: dict[ReasonCode, int] = {
    ReasonCode.AUTH_REQUIRED: 401,
    ReasonCode.RESOURCE_NOT_FOUND: 404,
    ReasonCode.RESOLVER_TIMEOUT: 503,
    ReasonCode.NO_MATCHING_RULE: 500,
}


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings)
    await db.init_db(settings.database_url)
    audit_sink = AuditSink(log_path=settings.audit_log_path)
    app.state.audit_sink = audit_sink
    app.state.policy_engine = AccessPolicyEngine(
        resolver=SqlOwnershipResolver(db.get_sessionmaker()),
        audit_sink=audit_sink,
        timeout_seconds=settings.resolver_timeout_seconds,
        audit_approvals=settings.audit_approvals,
    )
    logger.info("CampusGate ready (audit -> %s)", settings.audit_log_path)
    yield
    audit_sink.stop()
    await db.dispose_db()


app = FastAPI(
    title="CampusGate",
    description="Academic records portal: registration approval, enrollment, grading, attendance, notices",
    lifespan=lifespan,
)


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    return JSONResponse(
        status_code=DENIAL_STATUS.get(exc.reason, 403),
        content={"success": False, "code": exc.reason.value, "message": exc.decision.message},
    )


@app.exception_handler(AcademicError)
async def academic_error_handler(request: Request, exc: AcademicError):
    status_code = 422 if isinstance(exc, (ScoreOutOfRange, AttendanceOutOfRange)) else 409
    return JSONResponse(status_code=status_code, content={"success": False, "code": exc.code, "message": exc.message})


@app.exception_handler(ResolverUnavailable)
async def resolver_unavailable_handler(request: Request, exc: ResolverUnavailable):
    logger.error("Ownership store unavailable: %s", exc)
    return JSONResponse(
        status_code=503,
        content={"success": False, "code": "RESOLVER_UNAVAILABLE", "message": "Access check unavailable. Please retry."},
    )


@app.post("/api/login", response_model=LoginResponse)
async def login(body: LoginRequest):
    """Login with username and password. Returns a JWT carrying the user id and role."""
    async with db.get_sessionmaker()() as session:
        r = await session.execute(select(User).where(User.username == body.username))
        user = r.scalar_one_or_none()
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if user.status != AccountStatus.approved.value:
        raise HTTPException(status_code=403, detail="Registration pending approval")
    return LoginResponse(
        access_token=create_access_token(user.id, user.role),
        role=user.role,
        user_id=user.id,
    )


app.include_router(academic_router)


if __name__ == "__main__":
    import os
    import uvicorn
    host = os.environ.get("UVICORN_HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run("main:app", host=host, port=port, reload=False)
