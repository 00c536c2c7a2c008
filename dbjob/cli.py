"""Command line entry point.

Runs a scheduler with a single database keepalive task::

    dbjob --config /etc/dbjob/db.json --name keepalive --interval 60
"""

import argparse
from collections.abc import Sequence

from dbjob import __version__
from dbjob.application.use_cases import PingDatabaseUseCase
from dbjob.infrastructure.config import get_settings
from dbjob.infrastructure.observability import get_logger, setup_tracing
from dbjob.infrastructure.tasks import create_scheduler

DEFAULT_NAME = "dbjob"
DEFAULT_INTERVAL_SECONDS = 60


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbjob",
        description="Run periodic tasks against a shared database connection.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="database configuration file (default: DBJOB_CONFIG_PATH or ./db.json)",
    )
    parser.add_argument(
        "--name",
        default=DEFAULT_NAME,
        help="scheduler name, also the log file name (default: %(default)s)",
    )
    parser.add_argument(
        "--interval",
        type=_positive_int,
        default=DEFAULT_INTERVAL_SECONDS,
        help="seconds between database keepalive pings (default: %(default)s)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {number}")
    return number


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    scheduler = create_scheduler(args.name, config_path=args.config, settings=settings)
    if scheduler is None:
        return 1

    setup_tracing(settings)
    scheduler.register("database-keepalive", args.interval, PingDatabaseUseCase())

    reports = scheduler.run()
    failed = [report.name for report in reports if report.failed]
    if failed:
        get_logger(__name__).warning("Tasks stopped after failures", tasks=failed)
    return 0

