"""
Base reader interface for all file formats.

A reader turns decoded text into an ordered sequence of flat field
mappings; the FileParser assigns record ids afterwards.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from file_exchange.core.models import VendorProfile


class BaseReader(ABC):
    """
    Abstract base class for format readers.
    """

    file_format: str = ""

    @abstractmethod
    def read(self, text: str, profile: VendorProfile) -> Iterator[dict[str, str]]:
        """
        Yield one field mapping per logical record, in file order.

        Args:
            text: Decoded (and already decrypted) file content
            profile: Vendor profile supplying delimiters and flags

        Raises:
            MalformedContent: If the content does not conform to the format
        """
