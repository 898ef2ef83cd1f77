"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Coordinate parsing and distance calculations
- Form field lookup
- Recipient address resolution
- Message classification and field extraction
- Deduplication logic

All functions here are deterministic and have no I/O.
"""

from winlink_intake.core.message import (
    ClassifiedMessage,
    MessageType,
    RawRecord,
    RejectReason,
    Rejection,
    sort_records,
)
from winlink_intake.core.geo import GeoPoint, distance_meters, parse_coordinate
from winlink_intake.core.tags import FormDocument, extract_location, get_from_lines
from winlink_intake.core.address import AddressPreferences, resolve_recipient
from winlink_intake.core.classifier import classify
from winlink_intake.core.extractors import EXTRACTORS, extract
from winlink_intake.core.dedup import deduplicate

__all__ = [
    # Messages
    "ClassifiedMessage",
    "MessageType",
    "RawRecord",
    "RejectReason",
    "Rejection",
    "sort_records",
    # Geo
    "GeoPoint",
    "distance_meters",
    "parse_coordinate",
    # Tags
    "FormDocument",
    "extract_location",
    "get_from_lines",
    # Address
    "AddressPreferences",
    "resolve_recipient",
    # Classification and extraction
    "classify",
    "EXTRACTORS",
    "extract",
    # Dedup
    "deduplicate",
]
