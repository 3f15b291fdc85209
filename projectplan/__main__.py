"""
Project Planning Engine
=======================

Command line entry point: ``python -m projectplan --example``.
"""

import argparse
import sys

from .examples.simple_project import create_sample_project
from .utils.logger import configure_logging


def main():
    parser = argparse.ArgumentParser(description="Critical path project planning")
    parser.add_argument(
        "--example", action="store_true", help="Run the example project"
    )
    parser.add_argument(
        "--cost", action="store_true", help="Report resource series as cost"
    )
    parser.add_argument(
        "--log-level", type=str, default=None, help="Override PROJECTPLAN_LOG_LEVEL"
    )

    args = parser.parse_args()
    configure_logging(level=args.log_level)

    if args.example:
        print("Running example project...")
        create_sample_project(cost=args.cost)
        return 0
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
