"""Domain errors and failure typing."""

from winlink_intake.core.message import RejectReason


class PipelineError(Exception):
    """Base class for pipeline failures.

    Attributes:
        reason: Rejection reason the failure maps to
        context: Diagnostic detail recorded on the rejection
    """

    reason = RejectReason.PROCESSING_ERROR

    def __init__(self, context: str, reason: RejectReason | None = None) -> None:
        super().__init__(context)
        self.context = context
        if reason is not None:
            self.reason = reason


class FormParseError(PipelineError):
    """Raised when a form attachment cannot be parsed as XML."""


class ExtractionError(PipelineError):
    """Raised by an extractor that must reject its record."""
