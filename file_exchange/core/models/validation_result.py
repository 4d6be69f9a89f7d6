"""
ValidationResult model: aggregate verdict for one file (ephemeral).
"""

from collections import Counter

from pydantic import Field, computed_field

from .discrepancy import Discrepancy
from .message import MessageModel


class ValidationResult(MessageModel):
    """
    Outcome of validating all records of a file.

    ``is_valid`` is derived from the discrepancy list and cannot be set
    independently.

    Attributes:
        discrepancies: Ordered by rule declaration, then record order
        correlation_id: Correlation id of the originating file
        record_count: Number of records evaluated
    """

    discrepancies: tuple[Discrepancy, ...] = ()
    correlation_id: str | None = None
    record_count: int = Field(0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return not self.discrepancies

    def counts_by_kind(self) -> dict[str, int]:
        """Number of discrepancies per rule kind."""
        counts = Counter(d.rule_kind.value for d in self.discrepancies)
        return dict(sorted(counts.items()))
