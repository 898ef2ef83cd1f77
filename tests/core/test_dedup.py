"""Unit tests for deduplication logic.

Pure function tests - no mocks needed.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from winlink_intake.core.dedup import (
    deduplicate,
    deduplicate_by_call,
    deduplicate_by_location,
    jitter_messages,
)
from winlink_intake.core.geo import GeoPoint
from winlink_intake.core.message import (
    ClassifiedMessage,
    MessageType,
    RawRecord,
    RejectReason,
)


START = datetime(2024, 1, 4, 18, 0, tzinfo=timezone.utc)
SEATTLE = GeoPoint(47.6062, -122.3321)
# About 5 km north of SEATTLE
NORTH = GeoPoint(47.6512, -122.3321)


def msg(id, sender="W1AW", minutes=0, point=SEATTLE, message_type=MessageType.CHECK_IN):
    record = RawRecord(
        id=id,
        sender=sender,
        subject="test",
        timestamp=START + timedelta(minutes=minutes),
    )
    return ClassifiedMessage(record, message_type, point=point)


def ids(messages):
    return [m.id for m in messages]


class TestDeduplicateByLocation:
    """Tests for deduplicate_by_location()."""

    def test_resend_from_same_place(self):
        """The later of two identical reports survives."""
        first = msg("A", minutes=0)
        second = msg("B", minutes=10)

        result = deduplicate_by_location([first, second])

        assert ids(result.messages) == ["B"]
        assert len(result.rejections) == 1
        rejection = result.rejections[0]
        assert rejection.record_id == "A"
        assert rejection.reason == RejectReason.SAME_LOCATION
        assert rejection.superseded_by == "B"
        assert rejection.context == "superseded by B at 2024-01-04 18:10"

    def test_distant_reports_both_survive(self):
        result = deduplicate_by_location([msg("A", minutes=0), msg("B", minutes=10, point=NORTH)])

        assert ids(result.messages) == ["A", "B"]
        assert result.rejections == []

    def test_different_senders_both_survive(self):
        result = deduplicate_by_location([msg("A", sender="W1AW"), msg("B", sender="N7ABC", minutes=1)])

        assert ids(result.messages) == ["A", "B"]

    def test_earlier_incoming_is_rejected(self):
        """An incoming message older than the close point loses."""
        late = msg("LATE", minutes=30)
        early = msg("EARLY", minutes=5)

        result = deduplicate_by_location([late, early])

        assert ids(result.messages) == ["LATE"]
        assert result.rejections[0].record_id == "EARLY"
        assert result.rejections[0].superseded_by == "LATE"

    def test_equal_timestamps_keep_existing(self):
        result = deduplicate_by_location([msg("A", minutes=5), msg("B", minutes=5)])

        assert ids(result.messages) == ["A"]
        assert result.rejections[0].record_id == "B"

    def test_close_point_after_distant_point(self):
        """A message close to a later cluster entry is added once."""
        far = msg("FAR", minutes=0, point=NORTH)
        near = msg("NEAR", minutes=10)
        latest = msg("LATEST", minutes=20)

        result = deduplicate_by_location([far, near, latest])

        assert ids(result.messages) == ["FAR", "LATEST"]
        assert [r.record_id for r in result.rejections] == ["NEAR"]

    def test_replaces_every_close_point(self):
        """An incoming message between two clusters supersedes both."""
        # 150 m apart, each 75 m from the midpoint
        a = msg("A", minutes=0, point=GeoPoint(47.0, -122.0))
        b = msg("B", minutes=10, point=GeoPoint(47.00135, -122.0))
        c = msg("C", minutes=20, point=GeoPoint(47.000675, -122.0))

        result = deduplicate_by_location([a, b, c])

        assert ids(result.messages) == ["C"]
        assert sorted(r.record_id for r in result.rejections) == ["A", "B"]
        assert all(r.superseded_by == "C" for r in result.rejections)

    def test_messages_without_point_pass_through(self):
        first = msg("A", point=None, message_type=MessageType.ICS_213)
        second = msg("B", minutes=5, point=None, message_type=MessageType.ICS_213)

        result = deduplicate_by_location([first, second])

        assert ids(result.messages) == ["A", "B"]

    def test_threshold_is_inclusive(self):
        a = msg("A", minutes=0)
        b = msg("B", minutes=1, point=NORTH)

        result = deduplicate_by_location([a, b], threshold_meters=10_000)

        assert ids(result.messages) == ["B"]

    def test_zero_threshold_only_exact_matches(self):
        a = msg("A", minutes=0)
        b = msg("B", minutes=1, point=GeoPoint(47.60621, -122.3321))
        c = msg("C", minutes=2)

        result = deduplicate_by_location([a, b, c], threshold_meters=0)

        assert ids(result.messages) == ["B", "C"]

    def test_negative_threshold_skips(self):
        messages = [msg("A"), msg("B", minutes=1)]

        result = deduplicate_by_location(messages, threshold_meters=-1)

        assert ids(result.messages) == ["A", "B"]
        assert result.rejections == []

    def test_idempotent(self):
        messages = [
            msg("A", minutes=0),
            msg("B", minutes=1, point=NORTH),
            msg("C", minutes=2),
            msg("D", sender="N7ABC", minutes=3),
        ]

        once = deduplicate_by_location(messages)
        twice = deduplicate_by_location(once.messages)

        assert ids(twice.messages) == ids(once.messages)
        assert twice.rejections == []

    def test_counts_add_up(self):
        messages = [msg(str(i), minutes=i) for i in range(5)]

        result = deduplicate_by_location(messages)

        assert len(result.messages) + len(result.rejections) == 5
        assert ids(result.messages) == ["4"]


class TestDeduplicateByCall:
    """Tests for deduplicate_by_call()."""

    def test_latest_per_sender(self):
        messages = [
            msg("T1", minutes=1, point=None, message_type=MessageType.ACK),
            msg("OTHER", sender="N7ABC", minutes=2, point=None, message_type=MessageType.ACK),
            msg("T3", minutes=3, point=None, message_type=MessageType.ACK),
            msg("T2", minutes=2, point=None, message_type=MessageType.ACK),
        ]

        result = deduplicate_by_call(messages)

        assert ids(result.messages) == ["OTHER", "T3"]
        assert [r.record_id for r in result.rejections] == ["T1", "T2"]
        assert all(r.reason == RejectReason.SAME_CALL for r in result.rejections)
        assert all(r.superseded_by == "T3" for r in result.rejections)

    def test_tie_keeps_first_seen(self):
        result = deduplicate_by_call([msg("A", minutes=1), msg("B", minutes=1)])

        assert ids(result.messages) == ["A"]


class TestJitterMessages:
    """Tests for jitter_messages()."""

    def test_spreads_same_sender(self):
        messages = [msg("A"), msg("B", minutes=1), msg("C", sender="N7ABC", minutes=2)]

        result = jitter_messages(messages)

        assert ids(result) == ["A", "B", "C"]
        assert result[0].point != result[1].point
        assert result[2].point == SEATTLE
        assert messages[0].point == SEATTLE

    def test_keeps_centroid(self):
        result = jitter_messages([msg("A"), msg("B", minutes=1), msg("C", minutes=2)])

        latitude = sum(m.point.latitude for m in result) / 3
        longitude = sum(m.point.longitude for m in result) / 3
        assert latitude == pytest.approx(SEATTLE.latitude)
        assert longitude == pytest.approx(SEATTLE.longitude)


class TestDeduplicate:
    """Tests for the per-type policy in deduplicate()."""

    def test_gis_uses_location(self):
        result = deduplicate(MessageType.CHECK_IN, [msg("A"), msg("B", minutes=1)])

        assert ids(result.messages) == ["B"]

    def test_non_gis_passes_through_by_default(self):
        messages = [
            msg("A", point=None, message_type=MessageType.ACK),
            msg("B", minutes=1, point=None, message_type=MessageType.ACK),
        ]

        result = deduplicate(MessageType.ACK, messages)

        assert ids(result.messages) == ["A", "B"]

    def test_non_gis_by_call(self):
        messages = [
            msg("A", point=None, message_type=MessageType.ACK),
            msg("B", minutes=1, point=None, message_type=MessageType.ACK),
        ]

        result = deduplicate(MessageType.ACK, messages, dedup_non_gis_by_call=True)

        assert ids(result.messages) == ["B"]
        assert result.rejections[0].reason == RejectReason.SAME_CALL

    def test_jitter_when_disabled(self):
        result = deduplicate(
            MessageType.CHECK_IN,
            [msg("A"), msg("B", minutes=1)],
            threshold_meters=-1,
            jitter=True,
        )

        assert ids(result.messages) == ["A", "B"]
        distance = math.hypot(
            result.messages[0].point.latitude - result.messages[1].point.latitude,
            result.messages[0].point.longitude - result.messages[1].point.longitude,
        )
        assert distance > 0

    def test_jitter_ignored_when_dedup_enabled(self):
        result = deduplicate(
            MessageType.CHECK_IN,
            [msg("A"), msg("B", minutes=1, point=NORTH)],
            jitter=True,
        )

        assert [m.point for m in result.messages] == [SEATTLE, NORTH]
