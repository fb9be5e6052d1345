"""CLI entry point for the scheduled tracker jobs.

Usage:
    # One cache-build invocation (bootstrap, one batch, or completion report)
    python -m tracker.ingest build-cache

    # Drop the cursor and start the cache build over
    python -m tracker.ingest build-cache --reset

    # Keep invoking until the cache build completes
    python -m tracker.ingest build-cache --until-complete --interval 5

    # Check tracked bills for status and hearing changes
    python -m tracker.ingest check-hearings
"""

import argparse
import json
import logging
import sys

from tracker.ingest.runner import build_detector, build_driver, run_cache_build, run_hearing_check
from tracker.settings import load_settings


def main() -> int:
    """Main entry point for the tracker CLI."""
    parser = argparse.ArgumentParser(
        description="Scheduled jobs for the DC policy tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build-cache", help="Advance the LIMS bill cache build")
    build.add_argument(
        "--reset",
        action="store_true",
        help="Delete the cursor first so the candidate set is regenerated",
    )
    build.add_argument(
        "--until-complete",
        action="store_true",
        help="Invoke repeatedly until the build reports complete",
    )
    build.add_argument(
        "--interval",
        type=float,
        default=0.0,
        help="Seconds between invocations with --until-complete (default: 0)",
    )
    build.add_argument(
        "--max-invocations",
        type=int,
        default=None,
        help="Stop --until-complete after this many invocations",
    )

    subparsers.add_parser("check-hearings", help="Check tracked bills for status/hearing changes")

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    settings = load_settings()
    logger.info(f"Starting {args.command}: council_period={settings.council_period}")

    try:
        if args.command == "build-cache":
            results = run_cache_build(
                build_driver(settings),
                reset=args.reset,
                until_complete=args.until_complete,
                interval=args.interval,
                max_invocations=args.max_invocations,
            )
            print(json.dumps(results[-1].model_dump(mode="json"), indent=2))
        else:
            result = run_hearing_check(build_detector(settings))
            print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
