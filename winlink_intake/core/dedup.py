"""Deduplication logic - Pure functions.

Operators often resend a report, or send it to several addresses. This
module removes earlier submissions superseded by later ones, either by
location (same sender, nearby point) or by identity (same sender).

Note: input order matters. Messages are expected in chronological order
(see core.message.sort_records); "later" is decided by timestamp.
"""

import logging
from dataclasses import dataclass, field

from winlink_intake.core.geo import distance_meters, jitter_points
from winlink_intake.core.message import (
    ClassifiedMessage,
    MessageType,
    RejectReason,
    Rejection,
)


logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_METERS = 100


@dataclass
class DedupResult:
    """Result of deduplicating one message type.

    Attributes:
        messages: Surviving messages, in input order
        rejections: Messages removed as duplicates
    """
    messages: list[ClassifiedMessage] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)


def _duplicate(message: ClassifiedMessage, reason: RejectReason, survivor: ClassifiedMessage) -> Rejection:
    return Rejection(
        record_id=message.id,
        sender=message.sender,
        reason=reason,
        context=f"superseded by {survivor.id} at {survivor.timestamp:%Y-%m-%d %H:%M}",
        superseded_by=survivor.id,
    )


def deduplicate_by_location(
    messages: list[ClassifiedMessage],
    threshold_meters: float = DEFAULT_THRESHOLD_METERS,
) -> DedupResult:
    """Remove same-sender messages reported from (nearly) the same place.

    Pure function.

    Each sender has a list of cluster points. An incoming message close
    to no existing point starts a new cluster, so one station can keep
    several distant locations. Otherwise the latest of the close messages
    survives and the others are rejected as SAME_LOCATION; on equal
    timestamps the existing point is kept. Messages without a location
    pass through.

    Args:
        messages: Messages of one geolocated type, in chronological order
        threshold_meters: Maximum distance between duplicates; negative
            disables deduplication

    Returns:
        DedupResult with survivors and SAME_LOCATION rejections
    """
    if threshold_meters < 0:
        logger.info("Threshold negative, deduplication skipped for %d messages", len(messages))
        return DedupResult(messages=list(messages))

    clusters: dict[str, list[ClassifiedMessage]] = {}
    removed: set[str] = set()
    rejections: list[Rejection] = []

    for message in messages:
        if message.point is None:
            continue

        cluster = clusters.setdefault(message.sender, [])
        close = [
            other for other in cluster
            if distance_meters(message.point, other.point) <= threshold_meters
        ]

        if not close:
            cluster.append(message)
            continue

        latest = max(close, key=lambda m: m.timestamp)
        if latest.timestamp >= message.timestamp:
            logger.debug(
                "call: %s, keeping %s over %s", message.sender, latest.id, message.id,
            )
            removed.add(message.id)
            rejections.append(_duplicate(message, RejectReason.SAME_LOCATION, latest))
            continue

        for other in close:
            logger.debug(
                "call: %s, %s replacing %s", message.sender, message.id, other.id,
            )
            cluster.remove(other)
            removed.add(other.id)
            rejections.append(_duplicate(other, RejectReason.SAME_LOCATION, message))
        cluster.append(message)

    survivors = [m for m in messages if m.id not in removed]

    logger.info(
        "Location dedup: processed %d messages, returning %d",
        len(messages),
        len(survivors),
    )
    return DedupResult(messages=survivors, rejections=rejections)


def deduplicate_by_call(messages: list[ClassifiedMessage]) -> DedupResult:
    """Keep only the latest message from each sender.

    Pure function. Earlier messages are rejected as SAME_CALL; on equal
    timestamps the first one seen is kept.

    Args:
        messages: Messages of one type, in chronological order

    Returns:
        DedupResult with survivors and SAME_CALL rejections
    """
    latest: dict[str, ClassifiedMessage] = {}
    for message in messages:
        current = latest.get(message.sender)
        if current is None or message.timestamp > current.timestamp:
            latest[message.sender] = message

    survivors = []
    rejections = []
    for message in messages:
        survivor = latest[message.sender]
        if survivor is message:
            survivors.append(message)
        else:
            rejections.append(_duplicate(message, RejectReason.SAME_CALL, survivor))

    logger.info(
        "Call dedup: processed %d messages, returning %d",
        len(messages),
        len(survivors),
    )
    return DedupResult(messages=survivors, rejections=rejections)


def jitter_messages(messages: list[ClassifiedMessage]) -> list[ClassifiedMessage]:
    """Spread each sender's located messages around their centroid.

    Pure function. Senders with a single located message are unchanged.

    Args:
        messages: Messages of one geolocated type

    Returns:
        Messages in input order, with jittered points where needed
    """
    by_sender: dict[str, list[int]] = {}
    for index, message in enumerate(messages):
        if message.point is not None:
            by_sender.setdefault(message.sender, []).append(index)

    output = list(messages)
    for indexes in by_sender.values():
        if len(indexes) < 2:
            continue
        points = jitter_points([messages[i].point for i in indexes])
        for i, point in zip(indexes, points):
            output[i] = messages[i].with_point(point)
    return output


def deduplicate(
    message_type: MessageType,
    messages: list[ClassifiedMessage],
    threshold_meters: float = DEFAULT_THRESHOLD_METERS,
    dedup_non_gis_by_call: bool = False,
    jitter: bool = False,
) -> DedupResult:
    """Deduplicate all messages of one type with the type's policy.

    Pure function.

    Args:
        message_type: Type shared by all messages
        messages: Messages in chronological order
        threshold_meters: Location threshold; negative disables dedup
        dedup_non_gis_by_call: Apply the identity policy to non-GIS types
        jitter: Spread co-located points when dedup is disabled

    Returns:
        DedupResult for the type
    """
    if message_type.is_gis:
        result = deduplicate_by_location(messages, threshold_meters)
        if jitter and threshold_meters < 0:
            result.messages = jitter_messages(result.messages)
        return result

    if dedup_non_gis_by_call:
        return deduplicate_by_call(messages)

    logger.info("No deduplication for %s: returning %d messages", message_type.key, len(messages))
    return DedupResult(messages=list(messages))
