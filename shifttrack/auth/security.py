import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..services.bootstrap import ensure_user
from ..services.errors import Unauthorized
from ..services.permissions import Caller


http_bearer = HTTPBearer(auto_error=False)


def create_access_token(
    subject: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> str:
    """Issue a token the way the identity provider does (used for local runs and tests)."""
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds or settings.jwt_ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if email:
        payload["email"] = email
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")


def get_optional_caller(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Optional[Caller]:
    """Resolve the bearer token to a Caller, or None for anonymous requests."""
    if creds is None:
        return None
    payload = decode_token(creds.credentials)
    subject = payload.get("sub")
    if not subject:
        raise Unauthorized("Invalid subject")
    user = ensure_user(db, str(subject), email=payload.get("email"), name=payload.get("name"))
    return Caller.from_user(user)


def get_current_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    if caller is None:
        raise Unauthorized()
    return caller
