"""
Pipeline orchestration for one file-arrival message.

State machine (terminal states in capitals):

    Received -> Parsing -> Validating -> (Notifying if invalid) -> Archiving -> ACKNOWLEDGED

Any step may instead end in REQUEUED (transient failure) or DEAD_LETTERED
(permanent failure). Errors raised by collaborators are translated into a
disposition here and never reach the consume loop.
"""

import hashlib
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from file_exchange.core.errors import (
    ContentIntegrityError,
    ContentMissing,
    ContentUnavailable,
    DecryptionError,
    MessageDeserializationError,
    PipelineError,
)
from file_exchange.core.models import (
    AuditRecord,
    DiscrepancyNotification,
    FileArrivalEvent,
    ValidationResult,
    VendorProfile,
)
from file_exchange.core.rules import RuleEngine
from file_exchange.messaging import Delivery, Disposition, HandlerResult, JsonMessageSerializer
from file_exchange.observability.logger import file_context, get_logger
from file_exchange.observability.metrics import (
    errors_total,
    files_processed_total,
    increment_counter,
    processing_duration_seconds,
    record_validation_outcome,
    records_parsed_total,
    track_duration,
)
from file_exchange.parsing import FileParser
from file_exchange.security import Decryptor

logger = get_logger(__name__)


class ProcessingState(str, Enum):
    RECEIVED = "received"
    PARSING = "parsing"
    VALIDATING = "validating"
    NOTIFYING = "notifying"
    ARCHIVING = "archiving"
    ACKNOWLEDGED = "acknowledged"
    REQUEUED = "requeued"
    DEAD_LETTERED = "dead_lettered"


TERMINAL_STATES = {
    Disposition.ACK: ProcessingState.ACKNOWLEDGED,
    Disposition.REQUEUE: ProcessingState.REQUEUED,
    Disposition.DEAD_LETTER: ProcessingState.DEAD_LETTERED,
}


class ProcessingOutcome(BaseModel):
    """
    Result of processing one file-arrival event.

    Attributes:
        state: Terminal state reached
        disposition: Message disposition to apply
        failed_state: Step that failed (None on success)
        reason: Failure description
        result: Validation verdict, when validation ran
        notified: A discrepancy notification exists for this file
        audit: Audit record, when archiving succeeded
        count_attempt: False when a requeue must not consume a retry attempt
    """

    model_config = ConfigDict(frozen=True)

    state: ProcessingState
    disposition: Disposition
    failed_state: ProcessingState | None = None
    reason: str = ""
    result: ValidationResult | None = None
    notified: bool = False
    audit: AuditRecord | None = None
    count_attempt: bool = True

    def to_handler_result(self) -> HandlerResult:
        return HandlerResult(
            disposition=self.disposition,
            reason=self.reason,
            notified=self.notified,
            count_attempt=self.count_attempt,
        )


class ProfileLookup(Protocol):
    def get(self, vendor_id: str) -> VendorProfile: ...


class Publisher(Protocol):
    def publish(self, queue_name: str, payload: Any, **kwargs: Any) -> None: ...


class Archiver(Protocol):
    def archive(
        self,
        event: FileArrivalEvent,
        content: bytes,
        result: ValidationResult,
        notification_published: bool = False,
    ) -> AuditRecord: ...


class ContentStore(Protocol):
    def read(self, storage_path: str) -> bytes: ...


class LocalContentStore:
    """Reads staged files from the local filesystem."""

    def read(self, storage_path: str) -> bytes:
        try:
            return Path(storage_path).read_bytes()
        except FileNotFoundError as e:
            raise ContentMissing(f"File not found: {storage_path}") from e
        except OSError as e:
            raise ContentUnavailable(f"Cannot read {storage_path}: {e}") from e


class _Cancelled(Exception):
    def __init__(self, state: ProcessingState):
        self.state = state
        super().__init__(f"cancelled before {state.value}")


class PipelineOrchestrator:
    """
    Drives one file-arrival event through parse, validate, notify and archive.

    One instance serves one consumer; events are processed one at a time.
    """

    def __init__(
        self,
        profiles: ProfileLookup,
        publisher: Publisher,
        archiver: Archiver,
        parser: FileParser | None = None,
        engine: RuleEngine | None = None,
        content_store: ContentStore | None = None,
        decryptor: Decryptor | None = None,
        stop_event: threading.Event | None = None,
        serializer: JsonMessageSerializer | None = None,
    ):
        self.profiles = profiles
        self.publisher = publisher
        self.archiver = archiver
        self.parser = parser or FileParser()
        self.engine = engine or RuleEngine(profiles)
        self.content_store = content_store or LocalContentStore()
        self.decryptor = decryptor
        self.stop_event = stop_event or threading.Event()
        self.serializer = serializer or JsonMessageSerializer()

    # =======================
    # CONSUMER ADAPTER
    # =======================

    def handle(self, delivery: Delivery) -> HandlerResult:
        """Consume-loop handler: deserialize, process and pick a disposition."""
        try:
            event = self.serializer.deserialize(delivery.body, FileArrivalEvent)
        except MessageDeserializationError as e:
            logger.error(
                f"Undeliverable file event on {delivery.queue}: {e}",
                extra={"queue": delivery.queue, "delivery_tag": delivery.delivery_tag},
            )
            increment_counter(files_processed_total, vendor_id="unknown", disposition=Disposition.DEAD_LETTER.value)
            return HandlerResult.dead_letter(f"deserialization failed: {e}")

        outcome = self.process(event, already_notified=delivery.notified)
        return outcome.to_handler_result()

    # =======================
    # STATE MACHINE
    # =======================

    def process(self, event: FileArrivalEvent, already_notified: bool = False) -> ProcessingOutcome:
        """
        Process one file-arrival event.

        Args:
            event: Deserialized file-arrival event
            already_notified: A previous attempt already published the
                discrepancy notification for this file

        Returns:
            ProcessingOutcome with the disposition to apply
        """
        ctx = file_context(event)
        state = ProcessingState.RECEIVED
        notified = already_notified
        result: ValidationResult | None = None

        logger.info(f"Processing file {event.file_name or event.file_id}", extra=ctx)

        try:
            with track_duration(processing_duration_seconds, vendor_id=event.vendor_id):
                state = self._advance(ProcessingState.PARSING)
                profile = self.profiles.get(event.vendor_id)
                content = self.content_store.read(event.storage_path)
                self._check_integrity(event, content)
                records = self.parser.parse(profile, self._decrypt(profile, content))
                increment_counter(
                    records_parsed_total, len(records), vendor_id=event.vendor_id, file_format=profile.file_format
                )

                state = self._advance(ProcessingState.VALIDATING)
                result = self.engine.validate(event.vendor_id, records, event.correlation_id)
                record_validation_outcome(event.vendor_id, result.counts_by_kind())

                if not result.is_valid:
                    state = self._advance(ProcessingState.NOTIFYING)
                    if notified:
                        logger.info("Discrepancy notification already published, skipping", extra=ctx)
                    else:
                        self._notify(profile, event, result)
                        notified = True

                state = self._advance(ProcessingState.ARCHIVING)
                audit = self.archiver.archive(event, content, result, notified)

        except _Cancelled as e:
            logger.info(f"Cancellation requested before {e.state.value}, requeueing", extra=ctx)
            return self._finish(
                event,
                Disposition.REQUEUE,
                failed_state=e.state,
                reason=str(e),
                result=result,
                notified=notified,
                count_attempt=False,
            )
        except PipelineError as e:
            disposition = Disposition.REQUEUE if e.retryable else Disposition.DEAD_LETTER
            logger.error(
                f"{state.value.capitalize()} failed ({type(e).__name__}): {e}",
                extra={**ctx, "state": state.value, "disposition": disposition.value},
            )
            increment_counter(
                errors_total, vendor_id=event.vendor_id, error_type=type(e).__name__, component=state.value
            )
            return self._finish(
                event,
                disposition,
                failed_state=state,
                reason=f"{type(e).__name__}: {e}",
                result=result,
                notified=notified,
            )

        logger.info(
            "File processed",
            extra={**ctx, "is_valid": result.is_valid, "discrepancies": len(result.discrepancies)},
        )
        return self._finish(event, Disposition.ACK, result=result, notified=notified, audit=audit)

    def _advance(self, next_state: ProcessingState) -> ProcessingState:
        # Cancellation is only observed between steps
        if self.stop_event.is_set():
            raise _Cancelled(next_state)
        return next_state

    @staticmethod
    def _check_integrity(event: FileArrivalEvent, content: bytes) -> None:
        if not event.content_hash:
            return
        digest = hashlib.sha256(content).hexdigest()
        if digest != event.content_hash.lower():
            raise ContentIntegrityError(
                f"Content hash mismatch for {event.file_id}: expected {event.content_hash}, got {digest}"
            )

    def _decrypt(self, profile: VendorProfile, content: bytes) -> bytes:
        if not profile.encrypted:
            return content
        if self.decryptor is None:
            raise DecryptionError(f"Vendor {profile.vendor_id} sends encrypted files but no decryptor is configured")
        return self.decryptor.decrypt(content)

    def _notify(self, profile: VendorProfile, event: FileArrivalEvent, result: ValidationResult) -> None:
        notification = DiscrepancyNotification(
            vendor_id=event.vendor_id,
            file_id=event.file_id,
            correlation_id=event.correlation_id,
            file_name=event.file_name,
            recipients=profile.notification_recipients,
            discrepancies=result.discrepancies,
        )
        self.publisher.publish(profile.queues.notification, notification)
        logger.info(
            f"Published discrepancy notification ({len(result.discrepancies)} discrepancies)",
            extra=file_context(event),
        )

    @staticmethod
    def _finish(event: FileArrivalEvent, disposition: Disposition, **fields: Any) -> ProcessingOutcome:
        increment_counter(files_processed_total, vendor_id=event.vendor_id, disposition=disposition.value)
        return ProcessingOutcome(state=TERMINAL_STATES[disposition], disposition=disposition, **fields)
