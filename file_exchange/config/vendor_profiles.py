"""
Vendor profile store: read-only per-vendor configuration.

Profiles are loaded once from YAML and are immutable for a pipeline run.

Expected YAML format:
```yaml
vendors:
  acme:
    name: ACME Corp
    file_format: csv
    delimiter: ","
    encrypted: false
    poll_interval_seconds: 60
    notification_recipients: [ops@acme.example]
    queues:
      notification: email.discrepancy
    rules:
      Id:
        - type: required
      Amount:
        - type: range
          params: {min: 0, max: 1000}
```
"""

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from file_exchange.core.constants import DEFAULT_POLL_INTERVAL_SECONDS
from file_exchange.core.errors import RuleConfigError, VendorNotFound
from file_exchange.core.models import VendorProfile
from file_exchange.core.rules import parse_rules
from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


def build_profile(vendor_id: str, config: dict[str, Any]) -> VendorProfile:
    """
    Build one vendor profile from its configuration mapping.

    Raises:
        RuleConfigError: If the profile or any of its rules is invalid
    """
    if not isinstance(config, dict):
        raise RuleConfigError(f"Configuration for vendor '{vendor_id}' must be a mapping")

    data = dict(config)
    data["vendor_id"] = vendor_id
    data["rules"] = parse_rules(data.get("rules"))

    try:
        return VendorProfile.model_validate(data)
    except PydanticValidationError as e:
        raise RuleConfigError(f"Invalid configuration for vendor '{vendor_id}': {e}") from e


class VendorProfileStore:
    """
    Lookup of vendor profiles by vendor id.

    The vendor id is the only lookup key; an unknown id raises VendorNotFound.
    """

    def __init__(self, profiles: Iterable[VendorProfile] = ()):
        self._profiles: dict[str, VendorProfile] = {}
        for profile in profiles:
            if profile.vendor_id in self._profiles:
                raise RuleConfigError(f"Duplicate vendor id '{profile.vendor_id}'")
            self._profiles[profile.vendor_id] = profile

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "VendorProfileStore":
        """Build a store from a mapping with a top-level ``vendors`` section."""
        if not config or "vendors" not in config:
            raise RuleConfigError("Vendor configuration must contain 'vendors' section")

        vendors = config["vendors"] or {}
        if not isinstance(vendors, dict):
            raise RuleConfigError("'vendors' must map vendor ids to profiles")

        return cls(build_profile(str(vendor_id), vendor) for vendor_id, vendor in vendors.items())

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "VendorProfileStore":
        """
        Load vendor profiles from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist
            RuleConfigError: If YAML or any profile is invalid
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Vendor configuration file not found: {config_path}")

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuleConfigError(f"Invalid YAML in {path}: {e}") from e

        store = cls.from_dict(config)
        logger.info(f"Loaded {len(store)} vendor profiles", extra={"config_path": str(path)})
        return store

    def get(self, vendor_id: str) -> VendorProfile:
        """
        Get the profile of a vendor.

        Raises:
            VendorNotFound: If no profile exists for vendor_id
        """
        try:
            return self._profiles[vendor_id]
        except KeyError:
            raise VendorNotFound(vendor_id) from None

    def vendor_ids(self) -> list[str]:
        return list(self._profiles)

    def min_poll_interval(self) -> int:
        """Shortest poll interval across vendors; governs the shared poll tick."""
        if not self._profiles:
            return DEFAULT_POLL_INTERVAL_SECONDS
        return min(profile.poll_interval_seconds for profile in self._profiles.values())

    def __contains__(self, vendor_id: object) -> bool:
        return vendor_id in self._profiles

    def __iter__(self) -> Iterator[VendorProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)
