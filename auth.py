# CampusGate - Auth (JWT + Principal for the access policy engine)
from datetime import datetime, timedelta, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from config import get_settings
from gatekeeper import Principal

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"
# Bcrypt limit: password must be <= 72 bytes
MAX_PASSWORD_BYTES = 72


def _truncate_password(password: str) -> str:
    """Bcrypt accepts max 72 bytes; truncate to avoid ValueError."""
    if not password:
        return password
    enc = password.encode("utf-8")
    if len(enc) <= MAX_PASSWORD_BYTES:
        return password
    return enc[:MAX_PASSWORD_BYTES].decode("utf-8", errors="ignore")


def get_secret():
    return get_settings().secret_key


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(_truncate_password(plain), hashed)


def hash_password(plain: str) -> str:
    return pwd_context.hash(_truncate_password(plain))


def create_access_token(user_id: str, role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=get_settings().access_expire_minutes)
    return jwt.encode({"sub": user_id, "role": role, "exp": expire}, get_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, get_secret(), algorithms=[ALGORITHM])
    except JWTError:
        return None


def principal_from_token(token: str) -> Principal | None:
    payload = decode_token(token)
    if not payload or "sub" not in payload or "role" not in payload:
        return None
    try:
        return Principal(user_id=payload["sub"], role=payload["role"])
    except ValidationError:
        return None


async def require_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal | None:
    """
    Principal for the request, or None when unauthenticated.

    None is not rejected here: the policy engine denies it with AUTH_REQUIRED
    so the denial is audited like every other.
    """
    if not credentials:
        return None
    return principal_from_token(credentials.credentials)
