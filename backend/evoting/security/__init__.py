from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from evoting.core.registry import normalize_address
from evoting.core.settings import get_settings


class Principal:
    """The authenticated caller. Whether it is the administrator is decided by the election."""

    def __init__(self, address: str):
        self.address = address

    def __repr__(self) -> str:
        return f"Principal({self.address!r})"


def _jwt_config() -> tuple[str, str]:
    settings = get_settings()
    secret = settings.jwt_secret or "your-secret-key"
    algorithm = settings.jwt_algorithm or "HS256"
    return secret, algorithm


def create_access_token(address: str, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().access_token_expire_minutes)
    now = datetime.now(timezone.utc)
    claims = {"sub": normalize_address(address), "iat": now, "exp": now + expires_delta}
    secret, algorithm = _jwt_config()
    return jwt.encode(claims, secret, algorithm=algorithm)


def _parse_token(token: str) -> Optional[str]:
    secret, algorithm = _jwt_config()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None

    address = payload.get("sub")
    if isinstance(address, str) and normalize_address(address):
        return normalize_address(address)
    return None


def get_current_principal(request: Request) -> Principal:
    auth = request.headers.get("authorization", "")
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        address = _parse_token(parts[1])
        if address:
            return Principal(address=address)
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthenticated")


__all__ = ["Principal", "create_access_token", "get_current_principal"]
