"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components. It's the "glue" that
makes the application work.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from winlink_intake.core.classifier import classify
from winlink_intake.core.config import PipelineConfig
from winlink_intake.core.dedup import deduplicate
from winlink_intake.core.extractors import extract
from winlink_intake.core.message import (
    ClassifiedMessage,
    MessageType,
    RawRecord,
    RejectReason,
    Rejection,
    reject,
    sort_records,
)
from winlink_intake.shell.export_reader import ExportReader
from winlink_intake.shell.rejects_file import ExplicitRejection, load_rejects


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of a complete pipeline run.

    Attributes:
        records_read: Messages found in the export files
        messages: Surviving messages by type, in chronological order
        rejections: Every rejected message, for audit
        files_read: Export files parsed
        files_skipped: Export files that could not be parsed
        errors: Any errors that occurred
    """
    records_read: int = 0
    messages: dict[MessageType, list[ClassifiedMessage]] = field(default_factory=dict)
    rejections: list[Rejection] = field(default_factory=list)
    files_read: int = 0
    files_skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no critical errors occurred."""
        return len(self.errors) == 0

    @property
    def message_count(self) -> int:
        """Number of surviving messages across all types."""
        return sum(len(m) for m in self.messages.values())

    @property
    def summary(self) -> str:
        """Human-readable summary of the pipeline result."""
        return (
            f"Read {self.records_read} messages from {self.files_read} files, "
            f"{self.message_count} accepted, "
            f"{len(self.rejections)} rejected, "
            f"{self.files_skipped} files skipped"
        )

    def rejections_by_reason(self) -> dict[RejectReason, int]:
        """Count rejections per reason."""
        counts: dict[RejectReason, int] = {}
        for rejection in self.rejections:
            counts[rejection.reason] = counts.get(rejection.reason, 0) + 1
        return counts


class Pipeline:
    """Coordinates reading, classification, extraction and deduplication.

    This class wires together:
    - Export reader (reads exported message files)
    - Core functions (classification, extraction, deduplication)
    - Explicit rejections file (operator overrides)
    """

    def __init__(
        self,
        config: PipelineConfig,
        reader: ExportReader | None = None,
    ) -> None:
        """Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration
            reader: Export reader (created if not provided)
        """
        self.config = config
        self.reader = reader or ExportReader(
            preferences=config.address_preferences,
            dump_ids=config.dump_ids,
        )

    def _is_dumped(self, record: RawRecord) -> bool:
        return record.id in self.config.dump_ids or record.sender in self.config.dump_ids

    def _explicit_rejection(
        self,
        item: ClassifiedMessage | Rejection,
        record: RawRecord,
        explicit: ExplicitRejection,
    ) -> Rejection:
        """Turn an operator-supplied rejection into a Rejection."""
        context = explicit.context
        if (
            explicit.reason == RejectReason.EXPLICIT_LOCATION
            and isinstance(item, ClassifiedMessage)
            and item.point is not None
        ):
            context = item.point.as_context()
        return reject(record, explicit.reason, context)

    def _process_record(
        self,
        record: RawRecord,
        required: set[MessageType],
        explicit: dict[str, ExplicitRejection],
    ) -> ClassifiedMessage | Rejection:
        """Classify and extract a single record."""
        message_type = classify(record)

        if required and message_type not in required:
            return reject(record, RejectReason.WRONG_MESSAGE_TYPE, message_type.key)

        item = extract(record, message_type)

        if record.id in explicit:
            item = self._explicit_rejection(item, record, explicit[record.id])

        if self._is_dumped(record):
            logger.info("record %s from %s -> %s: %s", record.id, record.sender, message_type.key, item)

        return item

    def process_records(
        self,
        records: list[RawRecord],
        explicit: dict[str, ExplicitRejection] | None = None,
    ) -> PipelineResult:
        """Run classification, extraction and deduplication.

        Records are sorted chronologically first, so the result does not
        depend on input order.

        Args:
            records: Raw records from any number of files
            explicit: Operator-supplied rejections by message ID

        Returns:
            PipelineResult with surviving messages and all rejections
        """
        explicit = explicit or {}
        result = PipelineResult(records_read=len(records))
        required = self.config.required_message_types

        # Step 1: Classify and extract, in chronological order
        groups: dict[MessageType, list[ClassifiedMessage]] = {}
        for record in sort_records(records):
            item = self._process_record(record, required, explicit)
            if isinstance(item, Rejection):
                result.rejections.append(item)
            else:
                groups.setdefault(item.message_type, []).append(item)

        logger.info(
            "Classified %d messages into %d types, %d rejected",
            sum(len(g) for g in groups.values()),
            len(groups),
            len(result.rejections),
        )

        # Step 2: Deduplicate each type independently
        for message_type, messages in groups.items():
            try:
                dedup = deduplicate(
                    message_type,
                    messages,
                    threshold_meters=self.config.dedup_threshold_meters,
                    dedup_non_gis_by_call=self.config.dedup_non_gis_by_call,
                    jitter=self.config.jitter,
                )
            except Exception as e:
                error_msg = f"Failed to deduplicate {message_type.key}: {e}"
                logger.error(error_msg)
                result.errors.append(error_msg)
                result.messages[message_type] = messages
                continue

            result.messages[message_type] = dedup.messages
            result.rejections.extend(dedup.rejections)

        return result

    def process(self) -> PipelineResult:
        """Run a complete pipeline over the configured input directory.

        This is the main entry point that:
        1. Loads operator-supplied rejections
        2. Reads export files
        3. Classifies, extracts and deduplicates

        Returns:
            PipelineResult with details of what happened
        """
        input_path = Path(self.config.input_path)

        # Step 1: Explicit rejections (a malformed file is fatal)
        try:
            explicit = load_rejects(input_path / self.config.rejects_file)
        except ValueError as e:
            error_msg = f"Failed to load {self.config.rejects_file}: {e}"
            logger.error(error_msg)
            return PipelineResult(errors=[error_msg])

        # Step 2: Read export files
        read = self.reader.read_directory(input_path)
        if not read.records and not read.rejections:
            logger.info("No messages found in %s", input_path)

        # Step 3: Classify, extract, deduplicate
        result = self.process_records(read.records, explicit)
        result.records_read += len(read.rejections)
        result.rejections = read.rejections + result.rejections
        result.files_read = read.files_read
        result.files_skipped = read.files_skipped

        logger.info("Completed: %s", result.summary)
        return result
