"""Winlink Express export writer - Imperative Shell.

Writes raw records as a Winlink Express message export file, the same
format ExportReader reads. Used to produce practice data.
"""

import logging
import xml.etree.ElementTree as ET
from email.message import EmailMessage
from pathlib import Path

from winlink_intake.core.message import EXPORT_TIME_FORMAT, RawRecord


logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT_DOMAIN = "winlink.org"


def build_mime(record: RawRecord) -> str:
    """Build MIME text for a record that has none.

    Args:
        record: Record to render

    Returns:
        The record's own MIME text, or a newly built message
    """
    if record.mime:
        return record.mime

    message = EmailMessage()
    message["Date"] = record.timestamp.strftime("%a, %d %b %Y %H:%M:%S +0000")
    message["From"] = f"{record.sender}@{DEFAULT_RECIPIENT_DOMAIN}"
    message["Subject"] = record.subject
    if record.recipient:
        message["To"] = f"{record.recipient}@{DEFAULT_RECIPIENT_DOMAIN}"
    message["Message-ID"] = record.id
    message.set_content(record.body)

    for name, data in record.attachments.items():
        message.add_attachment(
            data,
            maintype="application",
            subtype="octet-stream",
            filename=name,
        )

    return message.as_string()


def _add_child(parent: ET.Element, tag: str, text: str) -> None:
    ET.SubElement(parent, tag).text = text


def write_export(records: list[RawRecord], path: str | Path) -> Path:
    """Write records to an export file.

    This method performs file I/O.

    Args:
        records: Records to write
        path: Output file

    Returns:
        Path of the written file
    """
    root = ET.Element("Winlink_Express_message_export")
    message_list = ET.SubElement(root, "message_list")

    for record in records:
        element = ET.SubElement(message_list, "message")
        _add_child(element, "id", record.id)
        _add_child(element, "subject", record.subject)
        _add_child(element, "time", record.timestamp.strftime(EXPORT_TIME_FORMAT))
        _add_child(element, "sender", record.sender)
        _add_child(element, "source", record.source or record.sender)
        if record.location is not None:
            _add_child(
                element,
                "location",
                f"{record.location.latitude}, {record.location.longitude} (SPECIFIED)",
            )
        _add_child(element, "peertopeer", str(record.is_p2p))
        _add_child(element, "mime", build_mime(record))

    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    ET.ElementTree(root).write(output, encoding="utf-8", xml_declaration=True)

    logger.info("Wrote %d messages to %s", len(records), output)
    return output
