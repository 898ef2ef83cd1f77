"""Tests for the export reader and writer.

Export files are written to pytest's tmp_path.
"""

import logging
from datetime import datetime, timezone
from email.message import EmailMessage
from xml.sax.saxutils import escape

import pytest

from winlink_intake.core.geo import GeoPoint
from winlink_intake.core.message import RawRecord, RejectReason, Rejection
from winlink_intake.core.practice import PracticeGenerator
from winlink_intake.shell.export_reader import (
    ExportReader,
    MimeParseError,
    parse_mime,
)
from winlink_intake.shell.export_writer import build_mime, write_export


PLAIN_MIME = """Date: Thu, 04 Jan 2024 18:05:00 +0000
From: KM6SO@winlink.org
Subject: Winlink Thursday Net Check-In
To: SMTP:someone@example.com,
 ETO-01@winlink.org
Message-ID: MSG1
X-Location: 38.660000N, 122.870667W (SPECIFIED)
MIME-Version: 1.0
Content-Type: text/plain; charset="utf-8"

Status: Exercise
GPS Coordinates: LAT 47.6 LON -122.3
"""


def message_xml(id="MSG1", time="2024/01/04 18:05", sender="KM6SO", mime=PLAIN_MIME, location=None):
    location_element = f"<location>{escape(location)}</location>" if location else ""
    return (
        "<message>"
        f"<id>{id}</id>"
        "<subject>Winlink Thursday Net Check-In</subject>"
        f"<time>{time}</time>"
        f"<sender>{sender}</sender>"
        "<source>KM6SO</source>"
        f"{location_element}"
        "<peertopeer>False</peertopeer>"
        f"<mime>{escape(mime)}</mime>"
        "</message>"
    )


def export_xml(*messages):
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<Winlink_Express_message_export><message_list>"
        + "".join(messages)
        + "</message_list></Winlink_Express_message_export>"
    )


@pytest.fixture
def reader():
    return ExportReader()


def multipart_mime(unnamed=False):
    message = EmailMessage()
    message["From"] = "KM6SO@winlink.org"
    message["To"] = "ETO-01@winlink.org"
    message["Message-ID"] = "MSG2"
    message.set_content("see attached")
    message.add_attachment(
        b"<RMS_Express_Form/>",
        maintype="application",
        subtype="octet-stream",
        filename="RMS_Express_Form_Winlink_Check_In_Viewer.xml",
    )
    if unnamed:
        message.add_attachment(b"\x00\x01", maintype="application", subtype="octet-stream")
    return message.as_string()


class TestParseMime:
    """Tests for parse_mime()."""

    def test_plain_text(self):
        content = parse_mime(PLAIN_MIME)

        assert content.body.startswith("Status: Exercise")
        assert content.attachments == {}

    def test_attachments(self):
        content = parse_mime(multipart_mime())

        assert content.body.strip() == "see attached"
        assert content.attachments == {
            "RMS_Express_Form_Winlink_Check_In_Viewer.xml": b"<RMS_Express_Form/>",
        }

    def test_unnamed_attachment(self):
        content = parse_mime(multipart_mime(unnamed=True))

        assert content.attachments["attachment-1"] == b"\x00\x01"

    def test_missing_boundary(self):
        with pytest.raises(MimeParseError) as exc_info:
            parse_mime("Content-Type: multipart/mixed\n\nbody\n")

        assert exc_info.value.reason == RejectReason.CANT_PARSE_MIME


class TestReadFile:
    """Tests for ExportReader.read_file()."""

    def test_reads_record(self, reader, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml(location="40.187500N, 92.541667W (GPS)")))

        records, rejections = reader.read_file(path)

        assert rejections == []
        assert len(records) == 1
        record = records[0]
        assert record.id == "MSG1"
        assert record.sender == "KM6SO"
        assert record.subject == "Winlink Thursday Net Check-In"
        assert record.timestamp == datetime(2024, 1, 4, 18, 5, tzinfo=timezone.utc)
        assert "GPS Coordinates" in record.body
        assert record.recipient == "ETO-01"
        assert "SMTP:someone@example.com" in record.recipient_header_block
        assert record.location == GeoPoint(40.1875, -92.541667)
        assert record.location_source == "GPS"
        assert record.is_p2p is False
        assert record.file_name == "export.xml"

    def test_x_location_fallback(self, reader, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml()))

        records, _ = reader.read_file(path)

        assert records[0].location == GeoPoint(38.66, -122.870667)
        assert records[0].location_source == "SPECIFIED"

    def test_bad_time(self, reader, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml(time="yesterday"), message_xml(id="MSG2")))

        records, rejections = reader.read_file(path)

        assert [r.id for r in records] == ["MSG2"]
        assert rejections == [
            Rejection("MSG1", "KM6SO", RejectReason.CANT_PARSE_DATE_TIME, "yesterday"),
        ]

    def test_bad_mime(self, reader, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml(mime="Content-Type: multipart/mixed\n\nbody\n")))

        records, rejections = reader.read_file(path)

        assert records == []
        assert rejections[0].reason == RejectReason.CANT_PARSE_MIME

    def test_message_without_id_skipped(self, reader, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml(id="")))

        assert reader.read_file(path) == ([], [])

    def test_deletes_invalid_character_reference(self, reader, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml()).replace("Net Check-In</subject>", "Net&#21;Check-In</subject>"))

        records, _ = reader.read_file(path)

        assert records[0].subject == "Winlink Thursday Net;Check-In"

    def test_dump_ids_logged(self, tmp_path, caplog):
        path = tmp_path / "export.xml"
        path.write_text(export_xml(message_xml()))

        with caplog.at_level(logging.INFO):
            ExportReader(dump_ids={"KM6SO"}).read_file(path)

        assert "exportedMessage" in caplog.text


class TestReadDirectory:
    """Tests for ExportReader.read_directory()."""

    def test_skips_corrupt_file(self, reader, tmp_path):
        (tmp_path / "a_good.xml").write_text(export_xml(message_xml()))
        (tmp_path / "b_bad.xml").write_text("<not xml")
        (tmp_path / "notes.txt").write_text("ignored")

        result = reader.read_directory(tmp_path)

        assert [r.id for r in result.records] == ["MSG1"]
        assert result.files_read == 1
        assert result.files_skipped == 1

    def test_reads_files_in_name_order(self, reader, tmp_path):
        (tmp_path / "b.xml").write_text(export_xml(message_xml(id="B")))
        (tmp_path / "a.xml").write_text(export_xml(message_xml(id="A")))

        result = reader.read_directory(tmp_path)

        assert [r.id for r in result.records] == ["A", "B"]

    def test_empty_directory(self, reader, tmp_path):
        result = reader.read_directory(tmp_path)

        assert result.records == []
        assert result.files_read == 0


class TestExportWriter:
    """Tests for write_export() against the reader."""

    def test_practice_round_trip(self, reader, tmp_path):
        records = PracticeGenerator(seed=7).batch(4)

        write_export(records, tmp_path / "out" / "practice.xml")
        result = reader.read_directory(tmp_path / "out")

        assert [r.id for r in result.records] == [r.id for r in records]
        for written, read in zip(records, result.records):
            assert read.sender == written.sender
            assert read.subject == written.subject
            assert read.timestamp == written.timestamp
            assert read.body.strip() == written.body.strip()
            assert read.recipient == "ETO-PRACTICE"

    def test_attachments_and_location(self, reader, tmp_path):
        record = RawRecord(
            id="W1",
            sender="W1AW",
            subject="Check in",
            timestamp=datetime(2024, 1, 4, 18, 0, tzinfo=timezone.utc),
            body="hello",
            attachments={"RMS_Express_Form_Winlink_Check_In_Viewer.xml": b"<form/>"},
            location=GeoPoint(47.5, -122.3),
            recipient="ETO-01",
        )

        path = write_export([record], tmp_path / "one.xml")
        records, _ = reader.read_file(path)

        assert records[0].attachments == record.attachments
        assert records[0].location == GeoPoint(47.5, -122.3)
        assert records[0].location_source == "SPECIFIED"

    def test_build_mime_keeps_existing(self):
        record = RawRecord(
            id="W1",
            sender="W1AW",
            subject="s",
            timestamp=datetime(2024, 1, 4, 18, 0, tzinfo=timezone.utc),
            mime=PLAIN_MIME,
        )

        assert build_mime(record) == PLAIN_MIME
