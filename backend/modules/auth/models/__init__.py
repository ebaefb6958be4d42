from .vendor_models import Vendor, VendorRole

__all__ = ["Vendor", "VendorRole"]
