#!/usr/bin/env python3
"""Generate a practice export file.

Writes synthetic Thursday-net check-ins and position reports as a
Winlink Express export, for drills and for exercising the pipeline.

Usage:
    # 20 messages into practice/practice.xml
    python scripts/generate_practice.py --count 20 --output practice/practice.xml

    # Reproducible output
    python scripts/generate_practice.py --seed 42

    # Include resends from the same stations (to exercise dedup)
    python scripts/generate_practice.py --resends 5
"""

import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from winlink_intake.core.practice import PracticeGenerator
from winlink_intake.shell.export_writer import write_export

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a practice Winlink export file")
    parser.add_argument("--count", type=int, default=20, help="Number of messages")
    parser.add_argument("--resends", type=int, default=0, help="Extra check-ins from already-used calls")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--output", default="practice/practice.xml", help="Output file")
    args = parser.parse_args()

    generator = PracticeGenerator(seed=args.seed)
    records = generator.batch(args.count)

    senders = [r.sender for r in records]
    for i in range(min(args.resends, len(senders))):
        records.append(generator.eto_check_in(call=senders[i]))

    path = write_export(records, args.output)
    logger.info("Generated %d practice messages in %s", len(records), path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
