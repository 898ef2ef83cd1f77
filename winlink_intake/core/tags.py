"""Form field lookup - Pure functions.

Winlink forms arrive either as XML "viewer" attachments or as
line-oriented text ("key=value" or "Key: value"). This module reads
named fields from both, and locates the latitude/longitude pair a form
carries. All functions are pure with no side effects.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from winlink_intake.core.errors import FormParseError
from winlink_intake.core.geo import GeoPoint


# Tags searched for a location before any type-specific tags
DEFAULT_LATLON_TAGS = ("maplat", "gps2", "GPS2", "gpslat")

_LEADING_JUNK = re.compile(r"^\W+<")
_PARSEME_BLOCK = re.compile(r"<parseme>.*?</parseme>", re.DOTALL)


def clean_form_xml(text: str) -> str:
    """Normalize form XML so the parser accepts it.

    Pure function.

    Strips leading junk before the first element, removes the
    <parseme> block, closes a truncated final tag and replaces the
    "&#21" sequence (invalid in XML 1.0).
    """
    text = _LEADING_JUNK.sub("<", text.strip(), count=1)
    text = _PARSEME_BLOCK.sub("", text)
    if not text.endswith(">"):
        text += ">"
    return text.replace("&#21", "_")


@dataclass(frozen=True)
class FormDocument:
    """Parsed XML form attachment.

    Attributes:
        root: Root element of the form
    """
    root: ET.Element

    @classmethod
    def parse(cls, text: str) -> "FormDocument":
        """Parse form XML text.

        Raises:
            FormParseError: If the text is not well-formed XML
        """
        try:
            return cls(root=ET.fromstring(clean_form_xml(text)))
        except ET.ParseError as e:
            raise FormParseError(f"can't parse xml: {e}") from e

    def _first_text(self, tag: str) -> str | None:
        for element in self.root.iter(tag):
            if element.text is None:
                return None
            return element.text.strip()
        return None

    def get(self, tag: str) -> str | None:
        """Return the text of the first element named tag.

        Form tags are inconsistently cased, so a lower-case tag that is
        not found is retried with its first letter capitalized.
        """
        value = self._first_text(tag)
        if value is None and tag[:1].islower():
            value = self._first_text(tag[0].upper() + tag[1:])
        return value

    def get_or_empty(self, tag: str) -> str:
        """Like get(), but absent fields become an empty string."""
        value = self.get(tag)
        return value if value is not None else ""


def get_from_lines(
    lines: list[str],
    prefix: str,
    delimiter: str = "=",
) -> str | None:
    """Read a field from line-oriented form text.

    Pure function.

    Args:
        lines: Form text split into lines
        prefix: Text the field's line starts with
        delimiter: Separator between field name and value

    Returns:
        Trimmed text after the delimiter on the first matching line, or
        None if no line matches or the matching line has no delimiter
    """
    for line in lines:
        line = line.strip()
        if line.startswith(prefix):
            index = line.find(delimiter)
            if index == -1:
                return None
            return line[index + len(delimiter):].strip()
    return None


def location_tags(override_tags: tuple[str, ...] = ()) -> list[str]:
    """Tag names searched for a location, in search order."""
    return list(DEFAULT_LATLON_TAGS) + list(override_tags)


def extract_location(
    document: FormDocument,
    override_tags: tuple[str, ...] = (),
) -> GeoPoint | None:
    """Find the first valid location a form carries.

    Pure function.

    A tag value holding "lat,lon" is split in two. Otherwise a tag whose
    name ends in "lat" is paired with the same name ending in "lon".

    Args:
        document: Parsed form
        override_tags: Type-specific tags searched after the defaults

    Returns:
        First valid point, or None
    """
    for tag in location_tags(override_tags):
        value = document.get(tag)
        if not value:
            continue

        if "," in value:
            fields = value.split(",")
            point = GeoPoint.from_strings(fields[0].strip(), fields[1].strip())
        elif tag.endswith("lat"):
            point = GeoPoint.from_strings(value, document.get(tag.replace("lat", "lon")))
        else:
            point = None

        if point is not None:
            return point

    return None
