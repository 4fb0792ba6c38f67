"""
Burndown Forecaster
===================

Resource-leveled burndown forecasting for task-based projects.
"""

import argparse
import logging
import sys
from datetime import date
from .examples.simple_project import create_sample_project


def main(argv=None):
    parser = argparse.ArgumentParser(description="Resource-leveled burndown forecasting")
    parser.add_argument(
        "--example", action="store_true", help="Run the example project"
    )
    parser.add_argument(
        "--output",
        type=str,
        default="burndown_output.png",
        help="Output filename for visualization",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Status date as YYYY-MM-DD (default: the example's own status date)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log scheduling details"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.example:
        print("Running example project...")
        create_sample_project(today=args.today, output=args.output)
        print(f"Visualization saved to {args.output}")
        return 0
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
