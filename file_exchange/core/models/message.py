"""
Base model for everything that travels over the message broker.

Wire payloads use camelCase keys; Python code uses snake_case attributes.
Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class MessageModel(BaseModel):
    """Immutable pydantic model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_payload(self) -> dict:
        """Return the JSON-compatible wire representation."""
        return self.model_dump(mode="json", by_alias=True)
