"""
Generic file parser for multiple formats (CSV, JSON, XML, line-based text).

Dispatch is keyed by the vendor's declared format, never by file extension.
"""

from file_exchange.core.errors import MalformedContent, UnsupportedFormat
from file_exchange.core.models import Record, VendorProfile
from file_exchange.observability.logger import get_logger

from .readers import BaseReader, CSVReader, JSONReader, TextReader, XMLReader

logger = get_logger(__name__)

UTF8_BOM = "\ufeff"


class FileParser:
    """
    Converts raw file bytes plus a vendor profile into ordered records.

    Content must already be decrypted. Record ids are assigned sequentially
    over the records produced (``record_0``, ``record_1``, ...).
    """

    READER_REGISTRY: dict[str, type[BaseReader]] = {
        "csv": CSVReader,
        "json": JSONReader,
        "xml": XMLReader,
        "text": TextReader,
    }

    def __init__(self):
        self.readers: dict[str, BaseReader] = {
            file_format: reader_class() for file_format, reader_class in self.READER_REGISTRY.items()
        }

    def supports(self, file_format: str) -> bool:
        return file_format.lower() in self.readers

    def parse(self, profile: VendorProfile, content: bytes | str) -> list[Record]:
        """
        Parse content into records.

        Args:
            profile: Vendor profile declaring the format
            content: Raw (decrypted) bytes, or already decoded text

        Returns:
            Records in file order

        Raises:
            UnsupportedFormat: If the declared format has no reader
            MalformedContent: If the content cannot be decoded or read
        """
        reader = self.readers.get(profile.file_format.lower())
        if reader is None:
            raise UnsupportedFormat(profile.file_format)

        text = self.decode(profile, content)

        records = [
            Record(record_id=Record.make_id(index), fields=fields)
            for index, fields in enumerate(reader.read(text, profile))
        ]

        logger.debug(
            f"Parsed {len(records)} records",
            extra={"vendor_id": profile.vendor_id, "file_format": profile.file_format},
        )
        return records

    @staticmethod
    def decode(profile: VendorProfile, content: bytes | str) -> str:
        """Decode content with the vendor's encoding, dropping a leading BOM."""
        if isinstance(content, bytes):
            try:
                text = content.decode(profile.encoding)
            except (UnicodeDecodeError, LookupError) as e:
                raise MalformedContent(f"Content is not valid {profile.encoding}: {e}") from e
        else:
            text = content
        return text[1:] if text.startswith(UTF8_BOM) else text
