"""
Authentication routes for the vendor dashboard API.

Vendors register or log in with email and password, or by name, and
receive a JWT bearer token for the analytics endpoints.
"""

import logging

from fastapi import APIRouter, Depends, status
from pymongo.database import Database

from core.auth import CurrentUser, create_access_token, get_current_user
from core.database import get_db
from core.exceptions import AuthenticationError, NotFoundError, ValidationError
from core.rate_limiter import auth_rate_limit

from ..models.vendor_models import Vendor
from ..schemas.auth_schemas import (
    AuthResponse,
    LoginByNameRequest,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    VendorInfo,
)
from ..services.vendor_service import EmailAlreadyRegisteredError, VendorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

_auth_limit = auth_rate_limit()


def _issue_token(vendor: Vendor) -> str:
    return create_access_token(
        {"id": str(vendor.id), "email": vendor.email or "", "role": vendor.role.value}
    )


def _vendor_info(vendor: Vendor) -> VendorInfo:
    return VendorInfo(**vendor.public_dict())


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(_auth_limit)],
)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    """
    Register a new vendor account.

    ## Request Body
    - **name**: Display name of the vendor
    - **email**: Unique login email
    - **password**: At least 6 characters

    ## Response
    Returns a bearer token and the public vendor record.
    """
    service = VendorService(db)
    if service.get_by_email(payload.email) is not None:
        raise ValidationError("Email already registered", error_code="EMAIL_TAKEN")

    try:
        vendor = service.create(payload.name, payload.email, payload.password)
    except EmailAlreadyRegisteredError:
        # lost a race with a concurrent registration
        raise ValidationError("Email already registered", error_code="EMAIL_TAKEN")

    return AuthResponse(
        message="Vendor registered successfully",
        token=_issue_token(vendor),
        vendor=_vendor_info(vendor),
    )


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(_auth_limit)])
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    """Authenticate with email and password."""
    vendor = VendorService(db).authenticate(payload.email, payload.password)
    if vendor is None:
        logger.warning(f"Failed login for {payload.email}")
        raise AuthenticationError("Invalid credentials", error_code="INVALID_CREDENTIALS")

    return AuthResponse(
        message="Login successful",
        token=_issue_token(vendor),
        vendor=_vendor_info(vendor),
    )


@router.post("/login-by-name", response_model=AuthResponse, dependencies=[Depends(_auth_limit)])
def login_by_name(payload: LoginByNameRequest, db: Database = Depends(get_db)):
    """
    Log in by vendor name alone.

    Used by the dashboard's vendor picker; no password is checked.
    """
    vendor = VendorService(db).get_by_name(payload.name)
    if vendor is None:
        raise NotFoundError("Vendor not found", error_code="VENDOR_NOT_FOUND")

    return AuthResponse(
        message="Login successful",
        token=_issue_token(vendor),
        vendor=_vendor_info(vendor),
    )


@router.get("/me", response_model=MeResponse)
def read_current_vendor(
    current_user: CurrentUser = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Public record of the authenticated vendor."""
    vendor = VendorService(db).get_by_id(current_user.id)
    if vendor is None:
        raise NotFoundError("Vendor not found", error_code="VENDOR_NOT_FOUND")
    return MeResponse(vendor=_vendor_info(vendor))
