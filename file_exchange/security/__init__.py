"""
Secret store, certificate and decryption collaborators.
"""

from .certificates import (
    CertificateAuthorityClient,
    CertificateStatus,
    IssuedCertificate,
    certificate_status,
    read_certificate_expiry,
)
from .decryption import AesCbcDecryptor, Decryptor
from .secret_store import EnvSecretProvider, HttpSecretProvider, SecretProvider

__all__ = [
    "AesCbcDecryptor",
    "CertificateAuthorityClient",
    "CertificateStatus",
    "Decryptor",
    "EnvSecretProvider",
    "HttpSecretProvider",
    "IssuedCertificate",
    "SecretProvider",
    "certificate_status",
    "read_certificate_expiry",
]
