from typing import Optional
from datetime import datetime, timedelta, timezone
from pydantic import BaseModel
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
import logging

from .config import get_settings
from .constants import Role
from .models import User
from .store import RecordStore, get_store

logger = logging.getLogger(__name__)

settings = get_settings()
SECRET_KEY = settings.jwt_secret
if not SECRET_KEY:
    raise ValueError("JWT_SECRET not found in environment or .env file.")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.jwt_access_minutes

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    sub: str
    role: Optional[str] = None
    sid: str
    exp: Optional[int] = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def check_credentials(user: User, password: Optional[str]) -> bool:
    """Accounts registered without a password accept any password."""
    if not user.password_hash:
        return True
    if not password:
        return False
    return verify_password(password, user.password_hash)


def create_access_token(subject: str, session_id: str, role: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = {"sub": str(subject), "sid": session_id}
    if role:
        to_encode["role"] = role
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": int(expire.timestamp())})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return TokenPayload(**payload)
    except (JWTError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"X-Auth-Reason": "Invalid token"}) from exc


async def start_session(store: RecordStore, user: User) -> str:
    """Open a login session for ``user`` and return its bearer token."""
    session_id = await store.set_active_session(None, user)
    logger.info("Session started for user %s (%s)", user.uid, user.role)
    return create_access_token(subject=user.uid, session_id=session_id, role=user.role)


async def resolve_token(token: str, store: RecordStore) -> User:
    """Map a bearer token to the user of its still-active session."""
    payload = decode_access_token(token)
    user = await store.get_active_session(payload.sid)
    if user is None or user.uid != payload.sub:
        logger.info("Rejected token for ended or foreign session %s", payload.sid)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session is no longer active", headers={"X-Auth-Reason": "Session ended"})
    return user


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security), store: RecordStore = Depends(get_store)) -> User:
    if not credentials or not getattr(credentials, "credentials", None):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated", headers={"X-Auth-Reason": "No credentials"})
    return await resolve_token(credentials.credentials, store)


def get_session_id(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Return the session id (sid) carried by the bearer token."""
    if not credentials or not getattr(credentials, "credentials", None):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated", headers={"X-Auth-Reason": "No credentials"})
    return decode_access_token(credentials.credentials).sid


def require_role(required_role: Role):
    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role != required_role.value:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient privileges")
        return user
    return role_checker
