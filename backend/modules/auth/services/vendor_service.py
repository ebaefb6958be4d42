# backend/modules/auth/services/vendor_service.py

"""
Vendor account lookups and registration.

Reads exclude the password hash unless ``include_password`` is passed,
mirroring the store's write-only treatment of credentials.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from core.auth import get_password_hash, verify_password
from core.database import VENDORS_COLLECTION

from ..models.vendor_models import Vendor, VendorRole

logger = logging.getLogger(__name__)

_WITHOUT_PASSWORD = {"password": 0}


class EmailAlreadyRegisteredError(Exception):
    pass


class VendorService:
    def __init__(self, db: Database):
        self.db = db
        self.collection = db[VENDORS_COLLECTION]

    def _find_one(self, query: dict, include_password: bool = False) -> Optional[Vendor]:
        projection = None if include_password else _WITHOUT_PASSWORD
        doc = self.collection.find_one(query, projection)
        return Vendor.from_document(doc) if doc else None

    def get_by_id(self, vendor_id: str) -> Optional[Vendor]:
        if not ObjectId.is_valid(vendor_id):
            return None
        return self._find_one({"_id": ObjectId(vendor_id)})

    def get_by_email(self, email: str, include_password: bool = False) -> Optional[Vendor]:
        return self._find_one({"email": email.strip().lower()}, include_password)

    def get_by_name(self, name: str) -> Optional[Vendor]:
        return self._find_one({"name": name.strip()})

    def create(
        self,
        name: str,
        email: Optional[str],
        password: Optional[str],
        role: VendorRole = VendorRole.VENDOR,
    ) -> Vendor:
        now = datetime.now(timezone.utc)
        vendor = Vendor(
            name=name,
            email=email,
            role=role,
            password_hash=get_password_hash(password) if password else None,
            created_at=now,
            updated_at=now,
        )
        try:
            self.collection.insert_one(vendor.to_document())
        except DuplicateKeyError as e:
            raise EmailAlreadyRegisteredError(vendor.email) from e

        logger.info(f"Registered vendor {vendor.id} ({vendor.name})")
        return vendor.model_copy(update={"password_hash": None})

    def authenticate(self, email: str, password: str) -> Optional[Vendor]:
        vendor = self.get_by_email(email, include_password=True)
        if not vendor or not vendor.password_hash:
            return None
        if not verify_password(password, vendor.password_hash):
            return None
        return vendor.model_copy(update={"password_hash": None})
