"""
JSON message serialization for broker payloads.
"""

import json
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from file_exchange.core.constants import JSON_CONTENT_TYPE
from file_exchange.core.errors import MessageDeserializationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonMessageSerializer:
    """
    Serializes pydantic messages to compact UTF-8 JSON with camelCase keys.

    Deserialization accepts camelCase or snake_case keys.
    """

    content_type = JSON_CONTENT_TYPE

    def serialize(self, message: BaseModel | dict) -> bytes:
        if isinstance(message, BaseModel):
            return message.model_dump_json(by_alias=True).encode("utf-8")
        return json.dumps(message, separators=(",", ":"), default=str).encode("utf-8")

    def deserialize(self, body: bytes, model: type[ModelT]) -> ModelT:
        """
        Parse a payload into ``model``.

        Raises:
            MessageDeserializationError: If the body is not valid JSON for the model
        """
        try:
            return model.model_validate_json(body)
        except PydanticValidationError as e:
            raise MessageDeserializationError(
                f"Payload is not a valid {model.__name__}: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e
