"""
Validation service boundary.

``validate_records`` is the contract used when validation runs as a separate
process: an unknown vendor id is a request-level error, never a partial
success.
"""

from pydantic import Field

from file_exchange.core.models import Discrepancy, MessageModel, Record
from file_exchange.core.models.file_arrival_event import new_correlation_id
from file_exchange.core.rules import RuleEngine
from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


class ValidateRecordsRequest(MessageModel):
    """
    Attributes:
        vendor_id: Vendor whose rule set applies
        correlation_id: Correlation id of the originating file
        records: Records to validate
    """

    vendor_id: str = Field(..., min_length=1)
    correlation_id: str = Field(default_factory=new_correlation_id)
    records: list[Record] = Field(default_factory=list)


class ValidateRecordsResponse(MessageModel):
    is_valid: bool
    correlation_id: str
    discrepancies: tuple[Discrepancy, ...] = ()


class ValidationService:
    def __init__(self, engine: RuleEngine):
        self.engine = engine

    def validate_records(self, request: ValidateRecordsRequest) -> ValidateRecordsResponse:
        """
        Validate records for a vendor.

        Raises:
            VendorNotFound: If the vendor has no profile
        """
        result = self.engine.validate(request.vendor_id, request.records, request.correlation_id)
        logger.info(
            f"Validated {len(request.records)} records",
            extra={
                "vendor_id": request.vendor_id,
                "correlation_id": request.correlation_id,
                "is_valid": result.is_valid,
            },
        )
        return ValidateRecordsResponse(
            is_valid=result.is_valid,
            correlation_id=request.correlation_id,
            discrepancies=result.discrepancies,
        )
