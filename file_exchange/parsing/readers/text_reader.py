"""
Line-based key/value text reader.
"""

from collections.abc import Iterator

from file_exchange.core.models import VendorProfile

from .base_reader import BaseReader


class TextReader(BaseReader):
    """
    Reads ``key:value;key:value`` lines.

    Each line is split on the vendor's field separator, then each field on
    the first key/value separator. Fields without a key are ignored and
    lines that produce no fields are dropped.
    """

    file_format = "text"

    def read(self, text: str, profile: VendorProfile) -> Iterator[dict[str, str]]:
        for line in text.splitlines():
            fields: dict[str, str] = {}
            for part in line.split(profile.field_separator):
                if profile.key_value_separator not in part:
                    continue
                key, value = part.split(profile.key_value_separator, 1)
                key = key.strip()
                if key:
                    fields[key] = value.strip()
            if fields:
                yield fields
