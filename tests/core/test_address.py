"""Tests for recipient address resolution."""

from winlink_intake.core.address import (
    AddressPreferences,
    bare_address,
    choose_best_address,
    clean_candidate,
    collect_candidates,
    header_lines,
    resolve_recipient,
)


DYFI_HEADERS = """Date: Mon, 13 Jan 2025 18:03:00 +0000
From: KC3DOW@winlink.org
Subject: DYFI Automatic Entry - Winlink EXERCISE
To: SMTP:dyfi_reports_automated@usgs.gov,
ETO-02@winlink.org
Cc: KC3DOW@winlink.org,
W3IHP@winlink.org,
SMTP:kc3dow@kanidor.com,
SMTP:w3ihp@jmbventures.com
Message-ID: Z4VVKSSM1GII
X-Source: KC3DOW
To: IGNORED@winlink.org
""".split("\n")


class TestAddressPreferences:
    """Tests for AddressPreferences.from_strings()."""

    def test_defaults(self):
        prefs = AddressPreferences.from_strings()

        assert prefs.preferred_prefixes == ("eto",)
        assert prefs.preferred_suffixes == ("winlink.org", "winlink.org")
        assert prefs.not_preferred_prefixes == ("qth", "smtp")
        assert prefs.not_preferred_suffixes == ()

    def test_drops_empty_tokens(self):
        prefs = AddressPreferences.from_strings("ETO,, ", None, "", None)

        assert prefs.preferred_prefixes == ("eto",)
        assert prefs.preferred_suffixes == ()
        assert prefs.not_preferred_prefixes == ()


class TestCollectCandidates:
    """Tests for header parsing."""

    def test_header_lines_stop_at_message_id(self):
        lines = header_lines(DYFI_HEADERS)

        assert lines[-1] == "SMTP:w3ihp@jmbventures.com"
        assert not any(line.startswith("X-Source") for line in lines)

    def test_clean_candidate(self):
        assert clean_candidate("To: SMTP:a@b.com,") == "SMTP:a@b.com"
        assert clean_candidate("  ETO-02@winlink.org, ") == "ETO-02@winlink.org"
        assert clean_candidate("Cc: ") == ""

    def test_to_block_then_cc_block(self):
        candidates = collect_candidates(DYFI_HEADERS)

        assert candidates == [
            "SMTP:dyfi_reports_automated@usgs.gov",
            "ETO-02@winlink.org",
            "KC3DOW@winlink.org",
            "W3IHP@winlink.org",
            "SMTP:kc3dow@kanidor.com",
            "SMTP:w3ihp@jmbventures.com",
        ]

    def test_block_ends_at_next_header(self):
        lines = ["To: A@winlink.org,", " B@winlink.org", "Subject: hi", "Message-ID: X"]

        assert collect_candidates(lines) == ["A@winlink.org", "B@winlink.org"]

    def test_no_recipients(self):
        assert collect_candidates(["From: W1AW", "Subject: hi"]) == []


class TestChooseBestAddress:
    """Tests for choose_best_address()."""

    def test_preferred_prefix_and_suffix_wins(self):
        prefs = AddressPreferences.from_strings()
        candidates = collect_candidates(DYFI_HEADERS)

        assert choose_best_address(candidates, prefs) == "ETO-02@winlink.org"

    def test_preferred_both_beats_header_order(self):
        prefs = AddressPreferences.from_strings()

        result = choose_best_address(["W1AW@winlink.org", "ETO-01@winlink.org"], prefs)

        assert result == "ETO-01@winlink.org"

    def test_preferred_either(self):
        prefs = AddressPreferences.from_strings()

        result = choose_best_address(["x@d.com", "ETO-01@example.com", "W1AW@winlink.org"], prefs)

        assert result == "ETO-01@example.com"

    def test_preferred_even_if_avoided(self):
        """A preferred match that is also avoided beats an unremarkable one."""
        prefs = AddressPreferences.from_strings()

        result = choose_best_address(["x@d.com", "SMTP:ops@winlink.org"], prefs)

        assert result == "SMTP:ops@winlink.org"

    def test_avoids_not_preferred(self):
        prefs = AddressPreferences.from_strings()

        result = choose_best_address(["SMTP:a@b.com", "QTH@c.com", "x@d.com"], prefs)

        assert result == "x@d.com"

    def test_all_avoided_prefix_only(self):
        """With no avoided suffixes, pass six takes the first candidate."""
        prefs = AddressPreferences.from_strings()

        assert choose_best_address(["SMTP:a@b.com", "QTH@c.com"], prefs) == "SMTP:a@b.com"

    def test_falls_back_to_first(self):
        prefs = AddressPreferences.from_strings(None, None, "a", "z")

        assert choose_best_address(["abz", "az"], prefs) == "abz"

    def test_case_insensitive(self):
        prefs = AddressPreferences.from_strings()

        assert choose_best_address(["W1AW@example.com", "eto-9@WINLINK.ORG"], prefs) == "eto-9@WINLINK.ORG"

    def test_empty(self):
        assert choose_best_address([], AddressPreferences.from_strings()) is None


class TestResolveRecipient:
    """Tests for resolve_recipient() and bare_address()."""

    def test_bare_address(self):
        assert bare_address("SMTP:ops@example.com") == "ops"
        assert bare_address("ETO-02@winlink.org") == "ETO-02"
        assert bare_address("W1AW") == "W1AW"

    def test_resolves_local_part(self):
        assert resolve_recipient(DYFI_HEADERS, AddressPreferences.from_strings()) == "ETO-02"

    def test_no_recipient(self):
        assert resolve_recipient(["Subject: hi"], AddressPreferences.from_strings()) is None
