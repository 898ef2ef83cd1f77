"""Message data models - Pure data structures.

This module defines the records that flow through the pipeline: raw
exported messages, their semantic types, classified messages and
rejections. All functions are pure with no side effects.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from winlink_intake.core.geo import GeoPoint


# Winlink Express export time format, always UTC
EXPORT_TIME_FORMAT = "%Y/%m/%d %H:%M"


class MessageType(Enum):
    """Semantic message types.

    Each member carries a short key (used in configuration and logs) and
    whether the type is expected to carry a geographic location.
    """

    CHECK_IN = ("check_in", True)
    CHECK_OUT = ("check_out", True)
    SPOTREP = ("spotrep", True)
    DYFI = ("dyfi", True)
    WX_LOCAL = ("wx_local", True)
    WX_SEVERE = ("wx_severe", True)
    WX_HURRICANE = ("wx_hurricane", True)
    HOSPITAL_BED = ("hospital_bed", True)
    POSITION = ("position", True)
    ETO_CHECK_IN = ("eto_check_in", True)
    ETO_CHECK_IN_V2 = ("eto_check_in_v2", True)
    FIELD_SITUATION = ("field_situation", True)
    ICS_213 = ("ics_213", True)
    ICS_213_REPLY = ("ics_213_reply", False)
    ICS_213_RR = ("ics_213_rr", False)
    ACK = ("ack", False)
    UNKNOWN = ("unknown", False)

    def __init__(self, key: str, is_gis: bool) -> None:
        self.key = key
        self.is_gis = is_gis

    @classmethod
    def from_key(cls, key: str) -> "MessageType":
        """Look up a type by key (case-insensitive) or member name.

        Raises:
            ValueError: If no type matches
        """
        wanted = key.strip().lower()
        for message_type in cls:
            if message_type.key == wanted or message_type.name.lower() == wanted:
                return message_type
        raise ValueError(f"unknown message type: {key!r}")


class RejectReason(Enum):
    """Why a record did not survive processing."""

    UNSUPPORTED_TYPE = "unsupported type"
    CANT_PARSE_LATLONG = "can't parse lat/long"
    CANT_PARSE_JSON = "can't parse json"
    CANT_PARSE_MIME = "can't parse mime"
    CANT_PARSE_DATE_TIME = "can't parse date/time"
    PROCESSING_ERROR = "processing error"
    WRONG_MESSAGE_TYPE = "wrong message type"
    SAME_CALL = "same call"
    SAME_LOCATION = "same location"
    EXPLICIT_LOCATION = "explicit location"
    EXPLICIT_OTHER = "explicit other"
    NO_RECIPIENT = "no recipient"

    @classmethod
    def from_code(cls, code: str) -> "RejectReason":
        """Look up a reason by member name or description.

        Raises:
            ValueError: If no reason matches
        """
        wanted = code.strip()
        for reason in cls:
            if reason.name == wanted.upper() or reason.value == wanted.lower():
                return reason
        raise ValueError(f"unknown reject reason: {code!r}")


@dataclass(frozen=True)
class RawRecord:
    """Immutable exported message as read from an export file.

    Attributes:
        id: Unique Winlink message ID
        sender: Sender call sign
        subject: Message subject
        timestamp: Send time (UTC)
        mime: Raw MIME text
        body: Plain text content
        attachments: Attachment name -> bytes, in message order
        source: Station that delivered the message
        recipient: Best destination address (local part), if any
        recipient_header_block: Raw header lines that named the recipients
        location: Location reported by the client, if any
        location_source: How the client derived the location (GPS, etc.)
        is_p2p: True if sent peer-to-peer
        file_name: Export file the record came from
    """
    id: str
    sender: str
    subject: str
    timestamp: datetime
    mime: str = ""
    body: str = ""
    attachments: dict[str, bytes] = field(default_factory=dict)
    source: str = ""
    recipient: str | None = None
    recipient_header_block: str = ""
    location: GeoPoint | None = None
    location_source: str | None = None
    is_p2p: bool = False
    file_name: str = ""

    def attachment_text(self, name: str) -> str | None:
        """Return an attachment decoded as text, or None if absent."""
        data = self.attachments.get(name)
        if data is None:
            return None
        return data.decode("utf-8", errors="replace")

    def find_attachment(self, prefix: str) -> str | None:
        """Return the name of the first attachment starting with prefix."""
        for name in self.attachments:
            if name.startswith(prefix):
                return name
        return None


@dataclass
class ClassifiedMessage:
    """A raw record annotated with its type and extracted fields.

    Attributes:
        record: The source record
        message_type: Semantic type assigned by the classifier
        fields: Extracted field values (absent fields are "")
        point: Location, for geolocated types
    """
    record: RawRecord
    message_type: MessageType
    fields: dict[str, str] = field(default_factory=dict)
    point: GeoPoint | None = None

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def sender(self) -> str:
        return self.record.sender

    @property
    def timestamp(self) -> datetime:
        return self.record.timestamp

    def with_point(self, point: GeoPoint) -> "ClassifiedMessage":
        """Return a copy carrying a different location."""
        return replace(self, point=point)


@dataclass(frozen=True)
class Rejection:
    """A record that did not survive processing.

    Attributes:
        record_id: ID of the rejected record
        sender: Sender call sign of the rejected record
        reason: Why it was rejected
        context: Free-text diagnostic detail
        superseded_by: ID of the record that replaced it (duplicates only)
    """
    record_id: str
    sender: str
    reason: RejectReason
    context: str = ""
    superseded_by: str | None = None


def reject(
    record: RawRecord,
    reason: RejectReason,
    context: str = "",
    superseded_by: str | None = None,
) -> Rejection:
    """Build a rejection for a raw record.

    Pure function.
    """
    return Rejection(
        record_id=record.id,
        sender=record.sender,
        reason=reason,
        context=context,
        superseded_by=superseded_by,
    )


def parse_export_time(text: str) -> datetime:
    """Parse a Winlink Express export time ("yyyy/MM/dd HH:mm") as UTC.

    Pure function.

    Raises:
        ValueError: If the text does not match the export format
    """
    parsed = datetime.strptime(text.strip(), EXPORT_TIME_FORMAT)
    return parsed.replace(tzinfo=timezone.utc)


def sort_records(records: list[RawRecord]) -> list[RawRecord]:
    """Order records by timestamp, then sender, then ID.

    Pure function. Deduplication keeps the later of two duplicates, so
    processing must not depend on the order files were enumerated.

    Args:
        records: Records in any order

    Returns:
        New list in chronological order
    """
    return sorted(records, key=lambda r: (r.timestamp, r.sender, r.id))
