"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from winlink_intake.core.address import (
    DEFAULT_NOT_PREFERRED_PREFIXES,
    DEFAULT_NOT_PREFERRED_SUFFIXES,
    DEFAULT_PREFERRED_PREFIXES,
    DEFAULT_PREFERRED_SUFFIXES,
    AddressPreferences,
)
from winlink_intake.core.dedup import DEFAULT_THRESHOLD_METERS
from winlink_intake.core.message import MessageType


@dataclass
class PipelineConfig:
    """Pipeline configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        input_path: Directory holding exported message files
        dedup_threshold_meters: Location dedup distance (negative disables)
        dedup_non_gis_by_call: Keep only the latest non-GIS message per sender
        jitter: Spread a sender's co-located points when dedup is disabled
        required_types: Type keys to keep (empty keeps all types)
        preferred_prefixes: Comma-separated preferred address prefixes
        preferred_suffixes: Comma-separated preferred address suffixes
        not_preferred_prefixes: Comma-separated avoided address prefixes
        not_preferred_suffixes: Comma-separated avoided address suffixes
        dump_ids: Message IDs or call signs to log in detail
        rejects_file: Name of the explicit rejections file in input_path
    """
    input_path: str = "."
    dedup_threshold_meters: int = DEFAULT_THRESHOLD_METERS
    dedup_non_gis_by_call: bool = False
    jitter: bool = False
    required_types: list[str] = field(default_factory=list)
    preferred_prefixes: str | None = DEFAULT_PREFERRED_PREFIXES
    preferred_suffixes: str | None = DEFAULT_PREFERRED_SUFFIXES
    not_preferred_prefixes: str | None = DEFAULT_NOT_PREFERRED_PREFIXES
    not_preferred_suffixes: str | None = DEFAULT_NOT_PREFERRED_SUFFIXES
    dump_ids: set[str] = field(default_factory=set)
    rejects_file: str = "rejects.txt"

    @property
    def address_preferences(self) -> AddressPreferences:
        """Address preferences built from the comma-separated settings."""
        return AddressPreferences.from_strings(
            self.preferred_prefixes,
            self.preferred_suffixes,
            self.not_preferred_prefixes,
            self.not_preferred_suffixes,
        )

    @property
    def required_message_types(self) -> set[MessageType]:
        """Required types as MessageType members.

        Raises:
            ValueError: If a key does not name a message type
        """
        return {MessageType.from_key(key) for key in self.required_types}


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_config(config: PipelineConfig) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    for i, key in enumerate(config.required_types):
        try:
            message_type = MessageType.from_key(key)
        except ValueError as e:
            errors.append(ValidationError(field=f"required_types[{i}]", message=str(e)))
            continue
        if message_type == MessageType.UNKNOWN:
            errors.append(ValidationError(
                field=f"required_types[{i}]",
                message="unknown messages are always rejected",
                severity="warning",
            ))

    if config.jitter and config.dedup_threshold_meters >= 0:
        errors.append(ValidationError(
            field="jitter",
            message="jitter only applies when dedup_threshold_meters is negative",
            severity="warning",
        ))

    if not config.preferred_prefixes and not config.preferred_suffixes:
        errors.append(ValidationError(
            field="preferred_prefixes",
            message="No preferred address prefixes or suffixes configured",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
