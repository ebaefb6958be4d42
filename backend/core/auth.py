"""
Authentication for the vendor dashboard API.

Provides JWT issuance/verification, password hashing and the FastAPI
dependencies that resolve a bearer token to a vendor identity and gate
endpoints by role.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pymongo.database import Database

from .config import get_settings
from .database import get_db
from .exceptions import AuthenticationError, PermissionError, ValidationError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
VENDOR_ROLE = "vendor"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """Token payload data."""

    vendor_id: str
    email: str = ""
    role: str = VENDOR_ROLE


class CurrentUser(BaseModel):
    """Authenticated caller as seen by route handlers."""

    id: str
    email: str = ""
    role: str = VENDOR_ROLE

    @property
    def vendor_id(self) -> str:
        return self.id

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed or foreign hash format
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT; ``data`` must carry the vendor id under ``id``."""
    settings = get_settings()
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expires_minutes))
    to_encode.update({"exp": expire, "iat": now, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Optional[TokenData]:
    """Decode a JWT, returning ``None`` for anything invalid or expired."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        return None

    if payload.get("type") != "access" or not payload.get("id"):
        return None

    return TokenData(
        vendor_id=str(payload["id"]),
        email=payload.get("email") or "",
        role=payload.get("role") or VENDOR_ROLE,
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
) -> CurrentUser:
    """Resolve the bearer token to a vendor that still exists in the store."""
    # Local import to prevent circular dependency
    from modules.auth.services.vendor_service import VendorService

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise AuthenticationError("Invalid authentication")

    vendor = VendorService(db).get_by_id(token_data.vendor_id)
    if vendor is None:
        raise AuthenticationError("Invalid authentication")

    return CurrentUser(id=str(vendor.id), email=vendor.email or "", role=vendor.role.value)


def require_roles(*roles: str):
    """Dependency factory that allows only the given roles."""
    allowed = set(roles)

    def check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning(f"Vendor {user.id} with role {user.role} denied; requires {sorted(allowed)}")
            raise PermissionError("Insufficient permissions")
        return user

    return check


def resolve_vendor_scope(requested_vendor_id: Optional[str], user: CurrentUser) -> str:
    """Pick the vendor an analytics request is scoped to.

    Defaults to the caller's own id. Plain vendors may only name
    themselves; admins may name any vendor.
    """
    vendor_id = requested_vendor_id or user.vendor_id
    if not vendor_id:
        raise ValidationError("Vendor ID is required", error_code="VENDOR_ID_REQUIRED")

    if not user.is_admin and vendor_id != user.vendor_id:
        logger.warning(f"Vendor {user.id} attempted to read analytics of {vendor_id}")
        raise PermissionError("Access denied", error_code="ACCESS_DENIED")

    return vendor_id
