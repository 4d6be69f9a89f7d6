"""
Certificate expiry inspection and certificate-authority rotation client.
"""

from datetime import datetime, timezone
from pathlib import Path

import httpx
from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from file_exchange.core.errors import CertificateError
from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


class CertificateStatus(BaseModel):
    """
    Expiry view of one certificate.

    Attributes:
        subject: RFC 4514 subject string
        not_after: Expiry instant (UTC)
        days_remaining: Whole days until expiry (negative once expired)
    """

    model_config = ConfigDict(frozen=True)

    subject: str
    not_after: datetime
    days_remaining: int

    @property
    def expired(self) -> bool:
        return self.days_remaining < 0


class IssuedCertificate(BaseModel):
    """Typed certificate-authority response; anything else is rejected."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    certificate_pem: str = Field(..., min_length=1)
    serial_number: str = Field(..., min_length=1)
    not_after: datetime


def certificate_status(certificate: x509.Certificate, now: datetime | None = None) -> CertificateStatus:
    now = now or datetime.now(timezone.utc)
    not_after = certificate.not_valid_after_utc
    return CertificateStatus(
        subject=certificate.subject.rfc4514_string(),
        not_after=not_after,
        days_remaining=(not_after - now).days,
    )


def read_certificate_expiry(path: str | Path, now: datetime | None = None) -> CertificateStatus:
    """
    Read a PEM certificate and report its expiry.

    Raises:
        CertificateError: If the file is missing or not a PEM certificate
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CertificateError(f"Cannot read certificate {path}: {e}") from e

    try:
        certificate = x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise CertificateError(f"{path} is not a PEM certificate: {e}") from e

    return certificate_status(certificate, now)


class CertificateAuthorityClient:
    """
    Requests certificate rotation from the certificate authority.

    ``POST /v1/certificates/<name>/rotate`` returns the new certificate as
    ``{"certificate_pem", "serial_number", "not_after"}``.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 30.0, transport=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
        )

    def rotate(self, name: str) -> IssuedCertificate:
        """
        Rotate a certificate.

        Raises:
            CertificateError: If the request fails or the response is malformed
        """
        logger.info(f"Requesting certificate rotation for {name}")
        try:
            response = self._client.post(f"/v1/certificates/{name}/rotate")
            response.raise_for_status()
            issued = IssuedCertificate.model_validate(response.json())
        except httpx.HTTPError as e:
            raise CertificateError(f"Certificate rotation for '{name}' failed: {e}") from e
        except (ValueError, PydanticValidationError) as e:
            raise CertificateError(f"Certificate authority returned a malformed response: {e}") from e

        # The PEM must actually parse
        try:
            x509.load_pem_x509_certificate(issued.certificate_pem.encode("ascii"))
        except ValueError as e:
            raise CertificateError(f"Issued certificate for '{name}' is not valid PEM: {e}") from e

        return issued

    def close(self) -> None:
        self._client.close()
