"""applog demo: record sample entries and print the diagnostics view."""

import logging
import sys
from argparse import ArgumentParser

from applog.config import ConfigError, load_config
from applog.formatter import format_diagnostics_row
from applog.models import LogLevel
from applog.registry import initialize_logger
from applog.reporting import ErrorReporter

SAMPLE_MESSAGES = [
    "Screen mounted",
    "Fetched device info",
    "Image cache miss",
    "Date picker opened",
    "Haptics unavailable on this platform",
    "List page loaded",
]


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="applog-demo",
        description="Record sample log entries and show the diagnostics list.",
    )
    parser.add_argument("--config", help="YAML config file with a 'logging:' section")
    parser.add_argument(
        "--mode",
        choices=["development", "production"],
        help="Runtime mode (overrides config and APPLOG_MODE)",
    )
    parser.add_argument("--max-logs", type=int, help="Retained entry capacity")
    parser.add_argument(
        "--count",
        type=int,
        default=20,
        help="Number of sample entries to record (default: 20)",
    )
    return parser


def _failing_task(index: int):
    raise RuntimeError(f"sample failure #{index}")


def record_samples(store, count: int):
    """Cycle through levels, wrapping every fifth call in error reporting."""
    levels = list(LogLevel)
    reporter = ErrorReporter(store)
    guarded = reporter.wrap(_failing_task, {"screen": "diagnostics"})

    for i in range(count):
        if i % 5 == 4:
            guarded(i)
            continue
        level = levels[i % len(levels)]
        message = SAMPLE_MESSAGES[i % len(SAMPLE_MESSAGES)]
        if level is LogLevel.ERROR:
            store.error(message, None, {"index": i})
        else:
            store.record(level, message, {"index": i})


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )

    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config).with_overrides(mode=args.mode, max_logs=args.max_logs)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    store = initialize_logger(config)
    try:
        record_samples(store, args.count)

        entries = store.get_logs()
        for entry in entries:
            print(format_diagnostics_row(entry))

        counts = " ".join(f"{name}={n}" for name, n in store.level_counts().items())
        print(f"\nActive logs {len(entries)} of {store.total_recorded} (capacity {store.max_logs})")
        print(f"Levels: {counts}")
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
