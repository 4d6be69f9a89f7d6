"""
Unit tests for the validation service boundary.
"""

import pytest

from file_exchange.core.errors import VendorNotFound
from file_exchange.core.models import Record
from file_exchange.core.rules import RuleEngine
from file_exchange.services import ValidateRecordsRequest, ValidationService


@pytest.fixture
def service(profile_store) -> ValidationService:
    return ValidationService(RuleEngine(profile_store))


def request_for(vendor_id: str, correlation_id: str = "corr-7") -> ValidateRecordsRequest:
    return ValidateRecordsRequest(
        vendor_id=vendor_id,
        correlation_id=correlation_id,
        records=[
            Record(record_id="record_0", fields={"Id": "1", "Amount": "100"}),
            Record(record_id="record_1", fields={"Id": "2", "Amount": "200"}),
        ],
    )


class TestValidationService:
    """Tests for ValidationService.validate_records"""

    def test_valid_records(self, service):
        response = service.validate_records(request_for("acme"))

        assert response.is_valid
        assert response.discrepancies == ()
        assert response.correlation_id == "corr-7"

    def test_invalid_records(self, service):
        response = service.validate_records(request_for("strict"))

        assert not response.is_valid
        assert [d.record_id for d in response.discrepancies] == ["record_0", "record_1"]

    def test_unknown_vendor_is_a_request_error(self, service):
        with pytest.raises(VendorNotFound):
            service.validate_records(request_for("nobody"))

    def test_request_accepts_wire_payload(self):
        request = ValidateRecordsRequest.model_validate(
            {"vendorId": "acme", "records": [{"record_id": "record_0", "fields": {"Id": "1"}}]}
        )

        assert request.vendor_id == "acme"
        assert request.correlation_id
        assert request.records[0].fields == {"Id": "1"}
