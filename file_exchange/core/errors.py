"""
Domain-specific exception hierarchy for the file validation pipeline.

All pipeline exceptions inherit from PipelineError. ``retryable`` tells the
orchestrator whether a failure is transient (requeue) or permanent
(dead-letter).
"""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    retryable = False

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class VendorNotFound(PipelineError):
    """No vendor profile exists for the requested vendor id."""

    def __init__(self, vendor_id: str) -> None:
        self.vendor_id = vendor_id
        super().__init__(f"Vendor configuration not found for '{vendor_id}'")


class RuleConfigError(PipelineError, ValueError):
    """Vendor or rule configuration is invalid."""


class ParseError(PipelineError):
    """File content could not be turned into records."""


class UnsupportedFormat(ParseError):
    """The vendor declares a file format the parser does not handle."""

    def __init__(self, file_format: str) -> None:
        self.file_format = file_format
        super().__init__(f"File format '{file_format}' is not supported")


class MalformedContent(ParseError):
    """Content does not conform to the declared format."""


class DecryptionError(PipelineError):
    """Encrypted content could not be decrypted."""


class ContentIntegrityError(PipelineError):
    """Content does not match the hash announced in the file event."""


class ContentUnavailable(PipelineError):
    """Stored content could not be read for a transient reason."""

    retryable = True


class ArchiveError(PipelineError):
    """Writing the archive copy or its audit record failed."""

    retryable = True


class MessageDeserializationError(PipelineError):
    """A queue payload could not be turned into the expected message."""


class BrokerUnavailable(PipelineError):
    """No broker connection could be established or a broker operation failed."""

    retryable = True


class SecretStoreError(PipelineError):
    """The secret store rejected a request or could not be reached."""


class CertificateError(PipelineError):
    """A certificate could not be read, issued or validated."""


class ContentMissing(PipelineError):
    """The file referenced by an event no longer exists in storage."""
