"""
JSON array-of-objects reader.
"""

import json
from collections.abc import Iterator
from typing import Any

from file_exchange.core.errors import MalformedContent
from file_exchange.core.models import VendorProfile
from file_exchange.observability.logger import get_logger

from .base_reader import BaseReader

logger = get_logger(__name__)


def stringify(value: Any) -> str:
    """Render a JSON value as the string a record field holds."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class JSONReader(BaseReader):
    """
    Reads a JSON array whose elements are objects.

    A non-array root yields zero records and is logged, not raised. Array
    elements that are not objects are skipped.
    """

    file_format = "json"

    def read(self, text: str, profile: VendorProfile) -> Iterator[dict[str, str]]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedContent(f"Invalid JSON: {e}") from e

        if not isinstance(data, list):
            logger.warning(
                "JSON root is not an array, no records produced",
                extra={"vendor_id": profile.vendor_id, "root_type": type(data).__name__},
            )
            return

        for index, item in enumerate(data):
            if not isinstance(item, dict):
                logger.warning(
                    f"Skipping non-object JSON element at index {index}",
                    extra={"vendor_id": profile.vendor_id},
                )
                continue
            yield {str(key): stringify(value) for key, value in item.items()}
