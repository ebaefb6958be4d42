# backend/modules/auth/models/vendor_models.py

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator


class VendorRole(str, Enum):
    VENDOR = "vendor"
    ADMIN = "admin"


class Vendor(BaseModel):
    """Vendor account as stored in the ``vendors`` collection.

    ``password_hash`` is write-only: it is loaded only when a caller asks
    for it explicitly (login) and never included in ``public_dict``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId = Field(default_factory=ObjectId)
    name: str
    email: Optional[str] = None
    role: VendorRole = VendorRole.VENDOR
    password_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Vendor name is required")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @property
    def is_admin(self) -> bool:
        return self.role == VendorRole.ADMIN

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "_id": self.id,
            "name": self.name,
            "role": self.role.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        # sparse unique index: absent rather than null
        if self.email:
            doc["email"] = self.email
        if self.password_hash:
            doc["password"] = self.password_hash
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Vendor":
        return cls(
            id=doc["_id"],
            name=doc["name"],
            email=doc.get("email"),
            role=doc.get("role") or VendorRole.VENDOR,
            password_hash=doc.get("password"),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )

    def public_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }
