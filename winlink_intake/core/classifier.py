"""Message classification - Pure functions.

Assigns each raw record one semantic MessageType. Form attachments are
checked first, in a fixed priority order, then the subject line. All
functions are pure with no side effects.
"""

from dataclasses import dataclass

from winlink_intake.core.message import MessageType, RawRecord


@dataclass(frozen=True)
class AttachmentRule:
    """Maps a form attachment name to a message type.

    Attributes:
        message_type: Type assigned when the rule matches
        name: Attachment name (or name prefix)
        prefix: If True, match names starting with `name`
    """
    message_type: MessageType
    name: str
    prefix: bool = False

    def matches(self, attachment_name: str) -> bool:
        """Check if an attachment name satisfies this rule."""
        if self.prefix:
            return attachment_name.startswith(self.name)
        return attachment_name == self.name


# Highest priority first: a record carrying two recognized forms is
# classified by the earlier rule.
ATTACHMENT_RULES = (
    AttachmentRule(MessageType.FIELD_SITUATION, "RMS_Express_Form_Field Situation Report", prefix=True),
    AttachmentRule(MessageType.CHECK_IN, "RMS_Express_Form_Winlink_Check_In_Viewer.xml"),
    AttachmentRule(MessageType.CHECK_OUT, "RMS_Express_Form_Winlink_Check_out_Viewer.xml"),
    AttachmentRule(MessageType.HOSPITAL_BED, "RMS_Express_Form_Hospital_Bed_Report_Viewer.xml"),
    AttachmentRule(MessageType.SPOTREP, "RMS_Express_Form_Shares_Spotrep-2_Viewer.xml"),
    AttachmentRule(MessageType.WX_LOCAL, "RMS_Express_Form_Local Weather Report Viewer.xml"),
    AttachmentRule(MessageType.WX_SEVERE, "RMS_Express_Form_Severe WX Report viewer.xml"),
    AttachmentRule(MessageType.ICS_213, "RMS_Express_Form_ICS213_Initial_Viewer.xml"),
    AttachmentRule(MessageType.ICS_213_REPLY, "RMS_Express_Form_ICS213_SendReply_Viewer.xml"),
    AttachmentRule(MessageType.ICS_213_RR, "RMS_Express_Form_ICS213RR_Viewer.xml"),
)

# (message type, subject prefixes)
SUBJECT_PREFIX_RULES = (
    (MessageType.DYFI, ("DYFI Automatic Entry",)),
    (MessageType.WX_HURRICANE, ("Hurricane Report",)),
    (MessageType.ETO_CHECK_IN, (
        "Winlink Thursday Net Check-In",
        "Re: Winlink Thursday Net Check-In",
    )),
    (MessageType.ETO_CHECK_IN_V2, (
        "ETO Winlink Thursday Check-In",
        "Re: ETO Winlink Thursday Check-In",
    )),
)

POSITION_SUBJECT = "Position Report"
ACK_SUBJECT_PREFIX = "ACK:"


def form_attachment_name(record: RawRecord, message_type: MessageType) -> str | None:
    """Return the name of the attachment that identifies message_type.

    Pure function.
    """
    for rule in ATTACHMENT_RULES:
        if rule.message_type != message_type:
            continue
        for name in record.attachments:
            if rule.matches(name):
                return name
    return None


def classify(record: RawRecord) -> MessageType:
    """Determine the semantic type of a raw record.

    Pure function.

    Args:
        record: Raw exported message

    Returns:
        Assigned message type (UNKNOWN if nothing matches)
    """
    for rule in ATTACHMENT_RULES:
        if any(rule.matches(name) for name in record.attachments):
            return rule.message_type

    subject = record.subject or ""
    for message_type, prefixes in SUBJECT_PREFIX_RULES:
        if subject.startswith(prefixes):
            return message_type

    if subject == POSITION_SUBJECT:
        return MessageType.POSITION

    if subject.startswith(ACK_SUBJECT_PREFIX):
        return MessageType.ACK

    return MessageType.UNKNOWN
