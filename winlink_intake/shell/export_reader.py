"""Winlink Express export reader - Imperative Shell.

This module reads exported message files from disk and turns each
<message> element into a RawRecord. All file I/O for input is contained
here; parsing decisions are delegated to pure core functions.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from email import errors as email_errors
from email import message_from_string, policy
from email.message import Message
from pathlib import Path

from winlink_intake.core.address import AddressPreferences, header_lines, resolve_recipient
from winlink_intake.core.errors import PipelineError
from winlink_intake.core.geo import parse_message_location
from winlink_intake.core.message import (
    RawRecord,
    RejectReason,
    Rejection,
    parse_export_time,
)


logger = logging.getLogger(__name__)

# Sequences removed from export files before XML parsing
DEFAULT_DELETE_LIST = ("&#21",)

_FATAL_MIME_DEFECTS = (
    email_errors.NoBoundaryInMultipartDefect,
    email_errors.StartBoundaryNotFoundDefect,
    email_errors.MultipartInvariantViolationDefect,
)


class MimeParseError(PipelineError):
    """Raised when a message's MIME text cannot be split into parts."""

    reason = RejectReason.CANT_PARSE_MIME


@dataclass
class MimeContent:
    """Plain text body and attachments of a MIME message.

    Attributes:
        body: First text/plain part that is not an attachment
        attachments: Attachment name -> bytes, in message order
    """
    body: str = ""
    attachments: dict[str, bytes] = field(default_factory=dict)


@dataclass
class ReadResult:
    """Result of reading an export directory.

    Attributes:
        records: Records read successfully
        rejections: Messages that could not be turned into records
        files_read: Number of files parsed
        files_skipped: Number of files that could not be parsed
    """
    records: list[RawRecord] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)
    files_read: int = 0
    files_skipped: int = 0


def _decode_text(part: Message) -> str:
    payload = part.get_payload(decode=True) or b""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def parse_mime(mime: str) -> MimeContent:
    """Split raw MIME text into a plain body and named attachments.

    Unnamed attachments are named "attachment-N", N being the
    attachment's position.

    Args:
        mime: Raw MIME text

    Returns:
        MimeContent

    Raises:
        MimeParseError: If the multipart structure is broken
    """
    message = message_from_string(mime, policy=policy.compat32)

    defects = [d for part in message.walk() for d in part.defects]
    fatal = [d for d in defects if isinstance(d, _FATAL_MIME_DEFECTS)]
    if fatal:
        raise MimeParseError(f"can't parse mime: {type(fatal[0]).__name__}")

    content = MimeContent()
    body_found = False
    attachment_index = 0

    for part in message.walk():
        if part.is_multipart():
            continue

        filename = part.get_filename()
        disposition = (part.get("Content-Disposition") or "").lower()
        if filename or disposition.startswith("attachment"):
            name = filename or f"attachment-{attachment_index}"
            content.attachments[name] = part.get_payload(decode=True) or b""
            attachment_index += 1
        elif not body_found and part.get_content_type() == "text/plain":
            content.body = _decode_text(part)
            body_found = True

    return content


class ExportReader:
    """Reads Winlink Express message export files.

    Handles:
    - XML parsing of export files (a corrupt file is logged and skipped)
    - MIME parsing into body and attachments
    - Recipient resolution and client-reported location
    """

    def __init__(
        self,
        preferences: AddressPreferences | None = None,
        dump_ids: set[str] | None = None,
        delete_list: tuple[str, ...] = DEFAULT_DELETE_LIST,
    ) -> None:
        """Initialize the reader.

        Args:
            preferences: Address preferences for recipient resolution
            dump_ids: Message IDs or call signs to log in detail
            delete_list: Sequences removed from file text before parsing
        """
        self.preferences = preferences or AddressPreferences.from_strings()
        self.dump_ids = dump_ids or set()
        self.delete_list = delete_list

    def read_directory(self, path: str | Path) -> ReadResult:
        """Read every *.xml export file in a directory.

        Files are read in name order.

        Args:
            path: Directory to read

        Returns:
            ReadResult with all records and read-time rejections
        """
        directory = Path(path)
        result = ReadResult()

        for file_path in sorted(directory.glob("*.xml")):
            try:
                records, rejections = self.read_file(file_path)
            except (ET.ParseError, OSError, UnicodeDecodeError) as e:
                logger.error(
                    "Skipping %s (maybe not an exported Winlink messages file): %s",
                    file_path.name,
                    e,
                )
                result.files_skipped += 1
                continue

            result.records.extend(records)
            result.rejections.extend(rejections)
            result.files_read += 1

        logger.info(
            "Read %d records from %d files (%d skipped) in %s",
            len(result.records),
            result.files_read,
            result.files_skipped,
            directory,
        )
        return result

    def read_file(self, path: str | Path) -> tuple[list[RawRecord], list[Rejection]]:
        """Read one export file.

        This method performs file I/O.

        Args:
            path: Export file

        Returns:
            Tuple of (records, rejections)

        Raises:
            ET.ParseError: If the file is not well-formed XML
            OSError: If the file cannot be read
        """
        file_path = Path(path)
        logger.info("Processing file: %s", file_path.name)

        text = file_path.read_text(encoding="utf-8")
        for sequence in self.delete_list:
            text = text.replace(sequence, "")
        root = ET.fromstring(text)

        records: list[RawRecord] = []
        rejections: list[Rejection] = []
        for element in root.iter("message"):
            item = self.read_message(element, file_path.name)
            if isinstance(item, Rejection):
                rejections.append(item)
            elif item is not None:
                records.append(item)

        logger.info("Extracted %d messages from %s", len(records), file_path.name)
        return records, rejections

    def read_message(self, element: ET.Element, file_name: str = "") -> RawRecord | Rejection | None:
        """Convert one <message> element.

        Args:
            element: The <message> element
            file_name: Name of the file it came from

        Returns:
            RawRecord, a Rejection if its time or MIME is unreadable, or
            None if the element has no id
        """
        message_id = _child_text(element, "id")
        if not message_id:
            logger.warning("Skipping message without id in %s", file_name)
            return None

        sender = _child_text(element, "sender")
        subject = _child_text(element, "subject")
        mime = _child_text(element, "mime")

        if message_id in self.dump_ids or sender in self.dump_ids:
            logger.info("exportedMessage: {messageId: %s, sender: %s}", message_id, sender)

        time_text = _child_text(element, "time")
        try:
            timestamp = parse_export_time(time_text)
        except ValueError:
            return Rejection(
                record_id=message_id,
                sender=sender,
                reason=RejectReason.CANT_PARSE_DATE_TIME,
                context=time_text,
            )

        try:
            content = parse_mime(mime)
        except MimeParseError as e:
            logger.error("Could not parse mime of %s: %s", message_id, e.context)
            return Rejection(
                record_id=message_id,
                sender=sender,
                reason=RejectReason.CANT_PARSE_MIME,
                context=e.context,
            )

        mime_lines = mime.split("\n")
        location, location_source = parse_message_location(
            _child_text(element, "location"), mime,
        )

        return RawRecord(
            id=message_id,
            sender=sender,
            subject=subject,
            timestamp=timestamp,
            mime=mime,
            body=content.body,
            attachments=content.attachments,
            source=_child_text(element, "source"),
            recipient=resolve_recipient(mime_lines, self.preferences),
            recipient_header_block="\n".join(header_lines(mime_lines)),
            location=location,
            location_source=location_source,
            is_p2p=_child_text(element, "peertopeer").lower() == "true",
            file_name=file_name,
        )


def _child_text(element: ET.Element, tag: str) -> str:
    """Text of the first descendant named tag, or an empty string."""
    child = element.find(f".//{tag}")
    if child is None or child.text is None:
        return ""
    return child.text.lstrip() if tag == "mime" else child.text.strip()
