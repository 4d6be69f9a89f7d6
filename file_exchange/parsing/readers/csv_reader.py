"""
Delimited-text reader.
"""

import csv
import io
from collections.abc import Iterator

from file_exchange.core.errors import MalformedContent
from file_exchange.core.models import VendorProfile

from .base_reader import BaseReader


class CSVReader(BaseReader):
    """
    Reads delimited text using the vendor's delimiter.

    The first row names the fields when ``has_header`` is set; otherwise
    fields are named ``column_0``, ``column_1``, ... Header names and values
    are trimmed. A row with fewer values than headers only populates the
    fields present; values beyond the last header are ignored. Blank rows
    are skipped.
    """

    file_format = "csv"

    def read(self, text: str, profile: VendorProfile) -> Iterator[dict[str, str]]:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=profile.delimiter)

        headers: list[str] | None = None
        try:
            for row in reader:
                if not row or all(not value.strip() for value in row):
                    continue

                if headers is None:
                    if profile.has_header:
                        headers = [h.strip() for h in row]
                        continue
                    headers = []

                if profile.has_header:
                    names = headers
                else:
                    names = [f"column_{i}" for i in range(len(row))]

                yield {
                    names[i]: row[i].strip()
                    for i in range(min(len(names), len(row)))
                }
        except csv.Error as e:
            raise MalformedContent(f"Invalid delimited text at line {reader.line_num}: {e}") from e
