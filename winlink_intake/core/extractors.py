"""Type-specific field extraction - Pure functions.

One extractor per MessageType turns a classified raw record into a
ClassifiedMessage. Extractors signal a bad record by raising
ExtractionError; extract() converts every failure into a Rejection so
that no exception escapes a single record.
"""

import json
import logging
import re
from typing import Any, Callable

from winlink_intake.core.classifier import form_attachment_name
from winlink_intake.core.dyfi import compute_intensity
from winlink_intake.core.errors import ExtractionError, PipelineError
from winlink_intake.core.geo import GeoPoint, parse_coordinate
from winlink_intake.core.message import (
    ClassifiedMessage,
    MessageType,
    RawRecord,
    RejectReason,
    Rejection,
    reject,
)
from winlink_intake.core.tags import (
    FormDocument,
    extract_location,
    get_from_lines,
    location_tags,
)


logger = logging.getLogger(__name__)

Extractor = Callable[[RawRecord], ClassifiedMessage]

HURRICANE_FORM_ATTACHMENT = "FormData.txt"
DYFI_JSON_BEGIN = "--- BEGIN json ---"
DYFI_JSON_END = "--- END json ---"
ETO_COMMENTS_END = "----------"

# Output field name -> form tag
CHECK_IN_TAGS = {
    "organization": "organization",
    "band": "band",
    "status": "status",
    "mode": "session",
    "comments": "comments",
}

SPOTREP_STATUS_TAGS = {
    name: name for name in (
        "land", "comm1", "cell", "comm2", "amfm", "comm3", "tvstatus", "comm4",
        "waterworks", "comm5", "powerworks", "comm6", "inter", "comm7",
    )
}

SPOTREP_TAGS = {
    "city": "city",
    **SPOTREP_STATUS_TAGS,
    "message": "message",
    "poc": "poc",
}

FIELD_SITUATION_TAGS = {
    **{name: name for name in (
        "title", "precedence", "msgnr", "safetyneed", "comm0",
        "city", "county", "state", "territory",
    )},
    **SPOTREP_STATUS_TAGS,
    "noaa": "noaa",
    "noaacom": "noaacom",
    "message": "message",
    "poc": "poc",
}

WX_LOCAL_TAGS = {
    name: name for name in ("title", "temp", "windspeed", "measurmentused", "comments")
}

WX_SEVERE_TAGS = {
    "type": "type",
    "contact_person": "repname",
    "phone": "phone",
    "email": "email",
    **{name: name for name in (
        "city", "region", "county", "other", "flood", "hailsize", "windspeed",
        "tornado", "winddamage", "precipitation", "snow", "freezingrain",
        "rain", "rainperiod", "comments",
    )},
}

HOSPITAL_BED_TAGS = {
    "title": "title",
    "facility": "facility",
    "contact_person": "contact",
    "phone": "phone",
    "email": "email",
    **{f"b{i}": f"b{i}" for i in range(1, 9)},
    **{f"note{i}": f"note{i}" for i in range(1, 9)},
    "othertype2": "othertype2",
    "othertype3": "othertype3",
    "totalbeds": "totalbeds",
    "comments": "comments",
}

ICS_213_TAGS = {
    "title": "formtitle",
    "incident_name": "inc_name",
    "from": "fm_name",
    "to": "to_name",
    "subject": "subjectline",
}

ICS_213_REPLY_TAGS = {
    "title": "formtitle",
    "message": "message",
    "reply": "reply",
    "reply_by": "rply_by",
    "reply_position": "rply_position",
    "reply_date_time": "rply_dtm",
}

ICS_213_RR_TAGS = {
    "title": "formtitle",
    "incident_name": "incname",
    "activity_date_time": "activitydatetime1",
    "request_number": "reqnum",
    "quantity": "qty1",
    "kind": "kind1",
    "type": "type1",
    "item": "item1",
    "requested_date_time": "reqdatetime1",
    "estimated_date_time": "estdatetime1",
    "cost": "cost1",
    "delivery": "delivery",
    "substitutes": "subs1",
    "requested_by": "reqname",
    "priority": "priority",
    "approved_by": "secapp",
}

# Output field name -> "key=value" prefix in the hurricane form data
HURRICANE_FIELDS = {
    "status": "Status",
    "is_observer": "Is Sending Station the Observing Party",
    "observer_phone": "Reporting Observer Phone Number",
    "observer_email": "Reporting Observer Email",
    "city": "City",
    "county": "County",
    "state": "State",
    "country": "Country",
    "instruments": "Weather Instruments Used",
    "wind_speed": "Wind Speed",
    "gust_speed": "Gust Speed",
    "wind_direction": "Wind Direction",
    "pressure": "Barometric Pressure",
    "comments": "Event Comments",
}

_ICS_213_TOKEN_SPLIT = re.compile(r"[\s,:/]+")


def _last_token(value: str | None) -> str:
    """Return the last space-separated token (form template versions)."""
    if not value:
        return ""
    return value.split(" ")[-1]


def _read_form(record: RawRecord, message_type: MessageType) -> FormDocument:
    """Parse the form attachment that identified the record's type."""
    name = form_attachment_name(record, message_type)
    if name is None:
        raise ExtractionError(f"no {message_type.key} form attachment")
    return FormDocument.parse(record.attachment_text(name))


def _read_tags(document: FormDocument, tags: dict[str, str]) -> dict[str, str]:
    return {name: document.get_or_empty(tag) for name, tag in tags.items()}


def _no_location(override_tags: tuple[str, ...] = ()) -> ExtractionError:
    tags = ", ".join(location_tags(override_tags))
    return ExtractionError(
        f"couldn't find lat/long within tags: [{tags}]",
        RejectReason.CANT_PARSE_LATLONG,
    )


def _load_json(text: str) -> dict[str, Any]:
    """Parse a JSON object, raising CANT_PARSE_JSON on failure."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionError(str(e), RejectReason.CANT_PARSE_JSON) from e
    if not isinstance(data, dict):
        raise ExtractionError("json is not an object", RejectReason.CANT_PARSE_JSON)
    return data


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def form_extractor(
    message_type: MessageType,
    tags: dict[str, str],
    override_tags: tuple[str, ...] = (),
    with_version: bool = False,
) -> Extractor:
    """Build an extractor for a plain XML viewer form.

    Geolocated types require a location found via extract_location().

    Args:
        message_type: Type produced by the extractor
        tags: Output field name -> form tag
        override_tags: Location tags searched after the defaults
        with_version: Also read the form template version

    Returns:
        Extractor function
    """
    def extract_form(record: RawRecord) -> ClassifiedMessage:
        document = _read_form(record, message_type)

        point = None
        if message_type.is_gis:
            point = extract_location(document, override_tags)
            if point is None:
                raise _no_location(override_tags)

        fields = _read_tags(document, tags)
        if with_version:
            fields["version"] = _last_token(document.get("templateversion"))

        return ClassifiedMessage(record, message_type, fields, point)

    extract_form.__name__ = f"extract_{message_type.key}"
    return extract_form


def _coordinate_token(token: str) -> float | None:
    """Parse one token of an ICS-213 first line as a coordinate."""
    negative = False
    if token[:1] in ("N", "S", "E", "W"):
        negative = token[0] in ("S", "W")
        token = token[1:]
    else:
        for suffix in ("W.", "N", "S", "E", "W", "."):
            if token.endswith(suffix):
                negative = suffix.startswith(("S", "W"))
                token = token[:-len(suffix)]
                break
    try:
        value = float(token)
    except ValueError:
        return None
    return -value if negative and value > 0 else value


def split_ics213_message(message: str) -> tuple[GeoPoint | None, str]:
    """Split an ICS-213 message into a location line and a comment.

    Pure function.

    The first line is scanned for the first two tokens that parse as
    numbers. When they form a valid location, the rest of the message
    is the comment; otherwise the whole message is.

    Args:
        message: ICS-213 message text

    Returns:
        Tuple of (point or None, comment)
    """
    lines = message.split("\n")

    numbers = []
    for token in _ICS_213_TOKEN_SPLIT.split(lines[0]):
        if not token:
            continue
        value = _coordinate_token(token)
        if value is not None:
            numbers.append(value)
            if len(numbers) == 2:
                break

    point = GeoPoint.from_strings(*numbers) if len(numbers) == 2 else None
    if point is None:
        return None, message

    return point, "\n".join(lines[1:]).lstrip("\n")


def extract_ics_213(record: RawRecord) -> ClassifiedMessage:
    """ICS-213 general message; the location is optional."""
    document = _read_form(record, MessageType.ICS_213)
    fields = _read_tags(document, ICS_213_TAGS)

    message = document.get("message") or ""
    point, comments = split_ics213_message(message)
    fields["message"] = message
    fields["comments"] = comments

    return ClassifiedMessage(record, MessageType.ICS_213, fields, point)


def extract_wx_hurricane(record: RawRecord) -> ClassifiedMessage:
    """Hurricane report, sent as "key=value" form data."""
    text = record.attachment_text(HURRICANE_FORM_ATTACHMENT)
    if text is None:
        text = record.body
    lines = text.splitlines()

    latitude = get_from_lines(lines, "Latitude")
    longitude = get_from_lines(lines, "Longitude")
    try:
        point = GeoPoint.from_strings(parse_coordinate(latitude), parse_coordinate(longitude))
    except ValueError:
        point = None
    if point is None:
        raise ExtractionError(
            f"lat: {latitude}, lon: {longitude}",
            RejectReason.CANT_PARSE_LATLONG,
        )

    fields = {
        name: get_from_lines(lines, prefix) or ""
        for name, prefix in HURRICANE_FIELDS.items()
    }
    return ClassifiedMessage(record, MessageType.WX_HURRICANE, fields, point)


def extract_dyfi(record: RawRecord) -> ClassifiedMessage:
    """USGS "Did You Feel It?" report with an embedded JSON questionnaire."""
    text = record.mime or record.body
    for marker in (DYFI_JSON_BEGIN, DYFI_JSON_END):
        if marker not in text:
            raise ExtractionError(f"missing {marker}", RejectReason.CANT_PARSE_JSON)

    start = text.index(DYFI_JSON_BEGIN) + len(DYFI_JSON_BEGIN)
    answers = _load_json(text[start:text.index(DYFI_JSON_END)].strip())

    latitude = _text(answers.get("ciim_mapLat"))
    longitude = _text(answers.get("ciim_mapLon"))
    point = GeoPoint.from_strings(latitude, longitude)
    if point is None and not (latitude and longitude):
        point = record.location
    if point is None:
        raise ExtractionError(
            f"lat: {latitude}, lon: {longitude}",
            RejectReason.CANT_PARSE_LATLONG,
        )

    intensity = compute_intensity(answers)
    fields = {
        "exercise_id": _text(answers.get("exercise_id")),
        "comments": _text(answers.get("comments")),
        "location": _text(answers.get("ciim_mapAddress")),
        "is_real_event": str(_text(answers.get("eventType")).upper() != "EXERCISE").lower(),
        "is_felt": str(_text(answers.get("fldSituation_felt")) == "1").lower(),
        "response": _text(answers.get("fldExperience_response")),
        "intensity": intensity.numeral,
        "intensity_value": str(intensity.value),
        "intensity_strength": intensity.strength,
    }
    return ClassifiedMessage(record, MessageType.DYFI, fields, point)


def _find_tagged_value(key: str, fields: list[str]) -> str | None:
    """Return the token following `key` in a "LAT x LON y" sequence."""
    found = False
    for field in fields:
        field = field.strip()
        if field and not field[0].isalnum() and field[0] != "-":
            field = field[1:]

        if field == key:
            found = True
            continue
        if not found or not field:
            continue

        if field.endswith(","):
            field = field[:-1]
        if "." not in field:
            field = field.replace(",", ".").replace("'", ".")
        return field
    return None


def _eto_comments(lines: list[str]) -> str:
    comments = []
    in_comments = False
    for line in lines:
        if line.startswith("Comments:"):
            in_comments = True
            continue
        if in_comments:
            if line.startswith(ETO_COMMENTS_END):
                break
            if line.strip():
                comments.append(line.strip())
    return "\n".join(comments)


def extract_eto_check_in(record: RawRecord) -> ClassifiedMessage:
    """Thursday net check-in, sent as a plain "Key: value" body."""
    lines = record.body.splitlines()

    coordinates = get_from_lines(lines, "GPS Coordinates", ":")
    if coordinates is None:
        raise ExtractionError("no GPS Coordinates line", RejectReason.CANT_PARSE_LATLONG)

    tokens = coordinates.split(" ")
    point = GeoPoint.from_strings(
        _find_tagged_value("LAT", tokens),
        _find_tagged_value("LON", tokens),
    )
    if point is None:
        raise ExtractionError(coordinates, RejectReason.CANT_PARSE_LATLONG)

    fields = {
        "status": get_from_lines(lines, "Status", ":") or "",
        "band": get_from_lines(lines, "Band Used", ":") or "",
        "mode": get_from_lines(lines, "Session Type", ":") or "",
        "version": _last_token(get_from_lines(lines, "Version", ":")),
        "comments": _eto_comments(lines),
    }
    return ClassifiedMessage(record, MessageType.ETO_CHECK_IN, fields, point)


def extract_eto_check_in_v2(record: RawRecord) -> ClassifiedMessage:
    """Thursday net check-in, version 2: the body is a JSON object."""
    data = _load_json(record.body)

    latitude = _text(data.get("Latitude"))
    longitude = _text(data.get("Longitude"))
    point = GeoPoint.from_strings(latitude, longitude)
    if point is None:
        raise ExtractionError(
            f"lat: {latitude}, lon: {longitude}",
            RejectReason.CANT_PARSE_LATLONG,
        )

    form_date, form_time = "", ""
    date_time = data.get("DateTimeLocal")
    if date_time:
        parts = str(date_time).split(" ")
        if len(parts) == 2:
            form_date, form_time = parts[0].strip(), parts[1].strip()

    fields = {
        "comments": _text(data.get("Comments")),
        "form_name": _text(data.get("FormName")),
        "version": _text(data.get("Version")),
        "date": form_date,
        "time": form_time,
    }
    return ClassifiedMessage(record, MessageType.ETO_CHECK_IN_V2, fields, point)


def _position_value(lines: list[str], label: str) -> str | None:
    for line in lines:
        if line.startswith(label):
            return line[line.index(": ") + 2:]
    return None


def _position_comments(lines: list[str]) -> str:
    """Collect the comment, joining "=" soft line breaks."""
    comments = ""
    found = False
    for line in lines:
        if not found and line.startswith(("Comment: ", "Comments: ")):
            found = True
            line = line[line.index(" ") + 1:]
        if found:
            if line.endswith("="):
                comments += line[:-1]
            else:
                comments += line
                break
    return comments


def extract_position(record: RawRecord) -> ClassifiedMessage:
    """Position report with degree-minute coordinates in the body."""
    lines = record.body.splitlines()
    latitude = _position_value(lines, "Latitude: ")
    longitude = _position_value(lines, "Longitude: ")

    try:
        point = GeoPoint.from_strings(parse_coordinate(latitude), parse_coordinate(longitude))
    except ValueError:
        point = None
    if point is None:
        raise ExtractionError(
            f"lat: {latitude}, lon: {longitude}",
            RejectReason.CANT_PARSE_LATLONG,
        )

    fields = {"comments": _position_comments(lines)}
    return ClassifiedMessage(record, MessageType.POSITION, fields, point)


def extract_ack(record: RawRecord) -> ClassifiedMessage:
    """Acknowledgement; only the subject and body are kept."""
    fields = {"subject": record.subject, "body": record.body}
    return ClassifiedMessage(record, MessageType.ACK, fields)


EXTRACTORS: dict[MessageType, Extractor] = {
    MessageType.CHECK_IN: form_extractor(MessageType.CHECK_IN, CHECK_IN_TAGS, with_version=True),
    MessageType.CHECK_OUT: form_extractor(MessageType.CHECK_OUT, CHECK_IN_TAGS, with_version=True),
    MessageType.SPOTREP: form_extractor(MessageType.SPOTREP, SPOTREP_TAGS),
    MessageType.FIELD_SITUATION: form_extractor(
        MessageType.FIELD_SITUATION, FIELD_SITUATION_TAGS, with_version=True,
    ),
    MessageType.WX_LOCAL: form_extractor(MessageType.WX_LOCAL, WX_LOCAL_TAGS, override_tags=("gps", "GPS")),
    MessageType.WX_SEVERE: form_extractor(MessageType.WX_SEVERE, WX_SEVERE_TAGS),
    MessageType.HOSPITAL_BED: form_extractor(MessageType.HOSPITAL_BED, HOSPITAL_BED_TAGS),
    MessageType.ICS_213: extract_ics_213,
    MessageType.ICS_213_REPLY: form_extractor(MessageType.ICS_213_REPLY, ICS_213_REPLY_TAGS),
    MessageType.ICS_213_RR: form_extractor(MessageType.ICS_213_RR, ICS_213_RR_TAGS),
    MessageType.WX_HURRICANE: extract_wx_hurricane,
    MessageType.DYFI: extract_dyfi,
    MessageType.ETO_CHECK_IN: extract_eto_check_in,
    MessageType.ETO_CHECK_IN_V2: extract_eto_check_in_v2,
    MessageType.POSITION: extract_position,
    MessageType.ACK: extract_ack,
}


def extract(record: RawRecord, message_type: MessageType) -> ClassifiedMessage | Rejection:
    """Run the extractor for a record's type.

    Pure function. Never raises: unsupported types, bad content and
    unexpected failures all become rejections.

    Args:
        record: Raw exported message
        message_type: Type assigned by the classifier

    Returns:
        ClassifiedMessage on success, otherwise a Rejection
    """
    extractor = EXTRACTORS.get(message_type)
    if extractor is None:
        return reject(record, RejectReason.UNSUPPORTED_TYPE, f"subject: {record.subject}")

    try:
        return extractor(record)
    except PipelineError as e:
        logger.debug("Rejected %s (%s): %s", record.id, e.reason.name, e.context)
        return reject(record, e.reason, e.context)
    except Exception as e:
        logger.warning("Error extracting %s as %s: %s", record.id, message_type.key, e)
        return reject(record, RejectReason.PROCESSING_ERROR, str(e))
