"""
XML element-list reader.
"""

import xml.etree.ElementTree as ET
from collections.abc import Iterator

from file_exchange.core.errors import MalformedContent
from file_exchange.core.models import VendorProfile

from .base_reader import BaseReader

RECORD_TAG = "record"


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element or attribute name."""
    return tag.rsplit("}", 1)[-1]


class XMLReader(BaseReader):
    """
    Reads records from an XML document.

    Records are the ``<record>`` elements anywhere in the document or,
    when there are none, the direct children of the root. Attributes and
    the text of child elements both become fields; child text wins over an
    attribute of the same name.
    """

    file_format = "xml"

    def read(self, text: str, profile: VendorProfile) -> Iterator[dict[str, str]]:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise MalformedContent(f"Invalid XML: {e}") from e

        elements = [el for el in root.iter() if local_name(el.tag) == RECORD_TAG]
        if not elements:
            elements = list(root)

        for element in elements:
            fields = {local_name(name): value.strip() for name, value in element.attrib.items()}
            for child in element:
                fields[local_name(child.tag)] = (child.text or "").strip()
            yield fields
