# backend/modules/auth/schemas/auth_schemas.py

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginByNameRequest(BaseModel):
    name: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Vendor name is required")
        return v


class VendorInfo(BaseModel):
    """Public view of a vendor account."""

    id: str
    name: str
    email: Optional[str] = None
    role: str


class AuthResponse(BaseModel):
    message: str
    token: str
    vendor: VendorInfo


class MeResponse(BaseModel):
    vendor: VendorInfo
