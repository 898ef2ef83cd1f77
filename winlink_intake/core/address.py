"""Recipient address resolution - Pure functions.

A Winlink message is often addressed to several stations and gateways.
This module picks the single address that identifies where the message
was meant to go, using layered prefix/suffix preferences.
"""

import re
from dataclasses import dataclass


DEFAULT_PREFERRED_PREFIXES = "ETO"
DEFAULT_PREFERRED_SUFFIXES = "Winlink.org,winlink.org"
DEFAULT_NOT_PREFERRED_PREFIXES = "QTH,SMTP"
DEFAULT_NOT_PREFERRED_SUFFIXES = None

_HEADER_LABEL = re.compile(r"^[A-Za-z][A-Za-z0-9-]*: ")
_HEADER_END = "Message-ID: "
_ENVELOPE_PREFIX = "SMTP:"


def _split_setting(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated setting into lowercase tokens."""
    if value is None:
        return ()
    return tuple(t.strip().lower() for t in value.split(",") if t.strip())


@dataclass(frozen=True)
class AddressPreferences:
    """Prefix/suffix preferences used to rank candidate addresses.

    All values are lowercase.

    Attributes:
        preferred_prefixes: Addresses starting with these are preferred
        preferred_suffixes: Addresses ending with these are preferred
        not_preferred_prefixes: Addresses starting with these are avoided
        not_preferred_suffixes: Addresses ending with these are avoided
    """
    preferred_prefixes: tuple[str, ...] = ()
    preferred_suffixes: tuple[str, ...] = ()
    not_preferred_prefixes: tuple[str, ...] = ()
    not_preferred_suffixes: tuple[str, ...] = ()

    @classmethod
    def from_strings(
        cls,
        preferred_prefixes: str | None = DEFAULT_PREFERRED_PREFIXES,
        preferred_suffixes: str | None = DEFAULT_PREFERRED_SUFFIXES,
        not_preferred_prefixes: str | None = DEFAULT_NOT_PREFERRED_PREFIXES,
        not_preferred_suffixes: str | None = DEFAULT_NOT_PREFERRED_SUFFIXES,
    ) -> "AddressPreferences":
        """Build preferences from comma-separated strings."""
        return cls(
            preferred_prefixes=_split_setting(preferred_prefixes),
            preferred_suffixes=_split_setting(preferred_suffixes),
            not_preferred_prefixes=_split_setting(not_preferred_prefixes),
            not_preferred_suffixes=_split_setting(not_preferred_suffixes),
        )


def header_lines(mime_lines: list[str]) -> list[str]:
    """Return the MIME lines before the Message-ID header."""
    lines = []
    for line in mime_lines:
        line = line.rstrip("\r")
        if line.startswith(_HEADER_END):
            break
        lines.append(line)
    return lines


def clean_candidate(line: str) -> str:
    """Strip a To/Cc label, trailing comma and whitespace from a line."""
    if line.startswith("To: ") or line.startswith("Cc: "):
        fields = line.split(" ")
        line = fields[1] if len(fields) > 1 else ""
    line = line.strip()
    if line.endswith(","):
        line = line[:-1]
    return line.strip()


def collect_candidates(mime_lines: list[str]) -> list[str]:
    """Collect candidate recipient addresses from MIME header lines.

    Pure function.

    The To block (the "To: " line and its continuation lines) comes
    first, then the Cc block.

    Args:
        mime_lines: Raw MIME text split into lines

    Returns:
        Cleaned candidate addresses in header order
    """
    lines = header_lines(mime_lines)
    candidates = []

    for label in ("To: ", "Cc: "):
        in_block = False
        for line in lines:
            if line.startswith(label):
                in_block = True
            elif in_block and _HEADER_LABEL.match(line):
                in_block = False

            if in_block:
                candidate = clean_candidate(line)
                if candidate:
                    candidates.append(candidate)

    return candidates


def _starts_with(address: str, prefixes: tuple[str, ...]) -> bool:
    return any(address.startswith(p) for p in prefixes)


def _ends_with(address: str, suffixes: tuple[str, ...]) -> bool:
    return any(address.endswith(s) for s in suffixes)


def choose_best_address(
    candidates: list[str],
    prefs: AddressPreferences,
) -> str | None:
    """Choose the best destination address among candidates.

    Pure function.

    Six passes run in order and the first candidate matching a pass wins:
    preferred prefix and suffix while avoiding both not-preferred sets,
    preferred prefix or suffix while avoiding them, preferred prefix and
    suffix, preferred prefix or suffix, avoiding both not-preferred sets,
    and avoiding at least one of them.

    Args:
        candidates: Candidate addresses in header order
        prefs: Address preferences

    Returns:
        Chosen address (the first candidate if no pass matches), or None
        if there are no candidates
    """
    if not candidates:
        return None

    def preferred_both(a: str) -> bool:
        return _starts_with(a, prefs.preferred_prefixes) and _ends_with(a, prefs.preferred_suffixes)

    def preferred_either(a: str) -> bool:
        return _starts_with(a, prefs.preferred_prefixes) or _ends_with(a, prefs.preferred_suffixes)

    def avoided_prefix(a: str) -> bool:
        return _starts_with(a, prefs.not_preferred_prefixes)

    def avoided_suffix(a: str) -> bool:
        return _ends_with(a, prefs.not_preferred_suffixes)

    passes = [
        lambda a: preferred_both(a) and not avoided_prefix(a) and not avoided_suffix(a),
        lambda a: preferred_either(a) and not avoided_prefix(a) and not avoided_suffix(a),
        preferred_both,
        preferred_either,
        lambda a: not avoided_prefix(a) and not avoided_suffix(a),
        lambda a: not avoided_prefix(a) or not avoided_suffix(a),
    ]

    for matches in passes:
        for candidate in candidates:
            if matches(candidate.lower()):
                return candidate

    return candidates[0]


def bare_address(address: str) -> str:
    """Strip an envelope routing prefix and the domain from an address."""
    if address.startswith(_ENVELOPE_PREFIX):
        address = address[len(_ENVELOPE_PREFIX):]
    at_index = address.find("@")
    if at_index >= 0:
        address = address[:at_index]
    return address


def resolve_recipient(
    mime_lines: list[str],
    prefs: AddressPreferences,
) -> str | None:
    """Resolve the bare destination identifier of a message.

    Pure function.

    Args:
        mime_lines: Raw MIME text split into lines
        prefs: Address preferences

    Returns:
        Local part of the chosen address, or None if no To/Cc address
    """
    address = choose_best_address(collect_candidates(mime_lines), prefs)
    if address is None:
        return None
    return bare_address(address)
