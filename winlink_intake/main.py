"""Command-line entry point.

Thin wrapper that loads configuration and invokes the pipeline.

Usage:
    # Process a directory of Winlink Express export files
    winlink-intake /path/to/exports

    # Use a YAML config file
    winlink-intake --config config/config.yaml

    # Only keep check-ins, and disable location dedup
    winlink-intake exports --required-types check_in,eto_check_in --threshold -1

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    LOG_LEVEL: Logging level (default: INFO)
"""

import argparse
import logging
import os
import sys

from winlink_intake.core.config import PipelineConfig, validate_config
from winlink_intake.orchestrator import Pipeline
from winlink_intake.shell.config_loader import load_config, load_config_from_env


logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from an explicit level or LOG_LEVEL."""
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _get_config(config_path: str | None) -> PipelineConfig:
    """Load configuration from file or environment."""
    config_path = config_path or os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("INPUT_PATH"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="winlink-intake",
        description="Classify, extract and deduplicate exported Winlink messages",
    )
    parser.add_argument("input_path", nargs="?", help="Directory of export files")
    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument("--threshold", type=int, help="Dedup distance in meters (negative disables)")
    parser.add_argument("--dedup-by-call", action="store_true", help="Keep latest non-GIS message per sender")
    parser.add_argument("--jitter", action="store_true", help="Spread co-located points when dedup is disabled")
    parser.add_argument("--required-types", help="Comma-separated message type keys to keep")
    parser.add_argument("--dump-ids", help="Comma-separated message IDs or call signs to log in detail")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def apply_overrides(config: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    """Apply command-line overrides to a loaded config."""
    if args.input_path:
        config.input_path = args.input_path
    if args.threshold is not None:
        config.dedup_threshold_meters = args.threshold
    if args.dedup_by_call:
        config.dedup_non_gis_by_call = True
    if args.jitter:
        config.jitter = True
    if args.required_types:
        config.required_types = [t.strip() for t in args.required_types.split(",") if t.strip()]
    if args.dump_ids:
        config.dump_ids = {i.strip() for i in args.dump_ids.split(",") if i.strip()}
    return config


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline once.

    Returns:
        Process exit status (0 success, 1 errors, 2 bad configuration)
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    config = apply_overrides(_get_config(args.config), args)

    validation = validate_config(config)
    for warning in validation.warnings:
        logger.warning("Config %s: %s", warning.field, warning.message)
    if not validation.valid:
        for error in validation.critical_errors:
            logger.error("Config %s: %s", error.field, error.message)
        return 2

    result = Pipeline(config).process()

    for message_type, messages in result.messages.items():
        logger.info("%s: %d messages", message_type.key, len(messages))
    for reason, count in result.rejections_by_reason().items():
        logger.info("rejected %s: %d", reason.name, count)

    if result.errors:
        for error in result.errors:
            logger.error("Error: %s", error)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
