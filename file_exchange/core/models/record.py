"""
Record model: one logical row parsed from a vendor file (ephemeral).
"""

from pydantic import BaseModel, Field


class Record(BaseModel):
    """
    One row/entry of a parsed file.

    Field values are always strings. A field that is absent from ``fields``
    is different from a field whose value is the empty string.

    Attributes:
        record_id: Stable id within the file (``record_0``, ``record_1``, ...)
        fields: Ordered mapping of field name to string value
    """

    record_id: str = Field(..., min_length=1)
    fields: dict[str, str] = Field(default_factory=dict)

    def has_field(self, field_name: str) -> bool:
        return field_name in self.fields

    def get(self, field_name: str) -> str | None:
        return self.fields.get(field_name)

    @staticmethod
    def make_id(index: int) -> str:
        return f"record_{index}"
