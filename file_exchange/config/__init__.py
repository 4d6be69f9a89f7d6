"""
Process settings and vendor profile configuration.
"""

from .settings import BrokerSettings, DatabaseSettings, RetrySettings, Settings
from .vendor_profiles import VendorProfileStore, build_profile

__all__ = [
    "BrokerSettings",
    "DatabaseSettings",
    "RetrySettings",
    "Settings",
    "VendorProfileStore",
    "build_profile",
]
