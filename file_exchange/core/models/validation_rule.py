"""
ValidationRule models: declarative per-field constraints configured per vendor.

Rules form a closed tagged union keyed on ``kind``. Each variant carries only
the parameters it needs, and invalid parameter combinations are rejected when
the rule is built (i.e. when vendor configuration is loaded), never at
evaluation time.
"""

import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from file_exchange.core.constants import DEFAULT_DATE_FORMAT


class RuleKind(str, Enum):
    """Identifier of each rule variant."""

    REQUIRED = "required"
    REGEX = "regex"
    RANGE = "range"
    LENGTH = "length"
    EXACT_VALUE = "exact_value"
    DATE = "date"


class _RuleBase(BaseModel):
    """
    Attributes shared by every rule variant.

    Attributes:
        field_name: Which record field the rule applies to
        enabled: Disabled rules are skipped by the engine
        error_message: Optional human description used instead of the generated one
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    field_name: str = Field(..., min_length=1)
    enabled: bool = True
    error_message: str | None = None

    @property
    def rule_kind(self) -> RuleKind:
        return RuleKind(self.kind)  # type: ignore[attr-defined]


class RequiredRule(_RuleBase):
    """Field must be present and non-empty when ``required`` is true."""

    kind: Literal["required"] = "required"
    required: bool = True


class RegexRule(_RuleBase):
    """Field must contain a match of ``pattern`` (like ``re.search``); use ``^...$`` for a full match."""

    kind: Literal["regex"] = "regex"
    pattern: str = Field(..., min_length=1)
    ignore_case: bool = False

    @field_validator("pattern")
    @classmethod
    def check_pattern_compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern '{v}': {e}")
        return v


class RangeRule(_RuleBase):
    """Field must parse as a decimal within [min_value, max_value]; either bound is optional."""

    kind: Literal["range"] = "range"
    min_value: Decimal | None = Field(None, validation_alias=AliasChoices("min_value", "min"))
    max_value: Decimal | None = Field(None, validation_alias=AliasChoices("max_value", "max"))

    @model_validator(mode="after")
    def check_bounds(self) -> "RangeRule":
        if self.min_value is None and self.max_value is None:
            raise ValueError("range rule requires at least one of: min, max")
        if self.min_value is not None and self.max_value is not None and self.min_value > self.max_value:
            raise ValueError(f"range rule min {self.min_value} is greater than max {self.max_value}")
        return self


class LengthRule(_RuleBase):
    """String length must lie within [min_length, max_length]; either bound is optional."""

    kind: Literal["length"] = "length"
    min_length: int | None = Field(None, ge=0)
    max_length: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "LengthRule":
        if self.min_length is None and self.max_length is None:
            raise ValueError("length rule requires at least one of: min_length, max_length")
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(
                f"length rule min_length {self.min_length} is greater than max_length {self.max_length}"
            )
        return self


class ExactValueRule(_RuleBase):
    """Field must equal ``expected`` exactly."""

    kind: Literal["exact_value"] = "exact_value"
    expected: str


class DateRule(_RuleBase):
    """Field must parse with at least one of the ``strptime`` formats."""

    kind: Literal["date"] = "date"
    formats: tuple[str, ...] = Field(default=(DEFAULT_DATE_FORMAT,), min_length=1)

    @model_validator(mode="before")
    @classmethod
    def accept_single_format(cls, data: Any) -> Any:
        # YAML configs usually declare a single ``format``
        if isinstance(data, dict) and "format" in data:
            data = dict(data)
            fmt = data.pop("format")
            data.setdefault("formats", [fmt])
        return data


ValidationRule = Annotated[
    Union[RequiredRule, RegexRule, RangeRule, LengthRule, ExactValueRule, DateRule],
    Field(discriminator="kind"),
]
