"""Explicit rejections loader - Imperative Shell.

Operators can reject specific messages by hand, listing them in a
tab-separated file:

    messageId<TAB>reason[<TAB>context]

Blank lines and lines starting with "#" are ignored. The reason is a
RejectReason name (e.g. EXPLICIT_OTHER) or description.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from winlink_intake.core.message import RejectReason


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplicitRejection:
    """An operator-supplied rejection.

    Attributes:
        message_id: Message to reject
        reason: Rejection reason
        context: Operator's note
    """
    message_id: str
    reason: RejectReason
    context: str = ""


def parse_rejects(text: str) -> dict[str, ExplicitRejection]:
    """Parse explicit rejections from file text.

    Args:
        text: File contents

    Returns:
        Message ID -> ExplicitRejection

    Raises:
        ValueError: If a line is malformed or names an unknown reason
    """
    rejects: dict[str, ExplicitRejection] = {}

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip() or line.lstrip().startswith("#"):
            continue

        fields = line.split("\t")
        if len(fields) < 2:
            raise ValueError(f"line {line_number}: expected messageId<TAB>reason")

        try:
            reason = RejectReason.from_code(fields[1])
        except ValueError as e:
            raise ValueError(f"line {line_number}: {e}") from e

        message_id = fields[0].strip()
        context = fields[2].strip() if len(fields) > 2 else ""
        rejects[message_id] = ExplicitRejection(message_id, reason, context)

    return rejects


def load_rejects(path: str | Path) -> dict[str, ExplicitRejection]:
    """Load explicit rejections from a file.

    This method performs file I/O. A missing file means no rejections.

    Args:
        path: Rejections file

    Returns:
        Message ID -> ExplicitRejection

    Raises:
        ValueError: If the file is malformed
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.debug("No explicit rejections file at %s", file_path)
        return {}

    rejects = parse_rejects(file_path.read_text(encoding="utf-8"))
    logger.info("Loaded %d explicit rejections from %s", len(rejects), file_path)
    return rejects
