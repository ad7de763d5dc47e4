"""
Command line driver for the telemetry sidecar.

    telemetry-sidecar run --directory /var/spool/telemetry --endpoint http://collector/ingest
    telemetry-sidecar flush
    telemetry-sidecar pending

Options not given on the command line come from SIDECAR_* environment
variables, which may also be set in a .env file.
"""

import argparse
import logging
import os
import signal

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config import from_env
from .errors import ConfigError, SourceError
from .publisher import Publisher
from .source import DirectorySource

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DELIVERY_FAILED = 1
EXIT_CONFIG_ERROR = 2


class ShutdownSignal(Exception):
    """Process signal received by the driver."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(signal.Signals(signum).name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telemetry-sidecar",
        description="Ship telemetry files from a watched directory to an HTTP endpoint",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_publisher_args(p: argparse.ArgumentParser):
        p.add_argument("--directory", help="Watched directory (SIDECAR_DIRECTORY)")
        p.add_argument("--endpoint", help="Collection endpoint URL (SIDECAR_ENDPOINT)")
        p.add_argument("--interval", type=float, help="Seconds between flushes (SIDECAR_FLUSH_INTERVAL)")
        p.add_argument("--timeout", type=float, help="HTTP timeout in seconds (SIDECAR_TIMEOUT)")

    add_publisher_args(sub.add_parser("run", help="Run the publisher until SIGINT/SIGTERM"))
    add_publisher_args(sub.add_parser("flush", help="Run a single flush cycle and exit"))

    pending = sub.add_parser("pending", help="List files waiting for delivery")
    pending.add_argument("--directory", help="Watched directory (SIDECAR_DIRECTORY)")

    return parser


def _build_publisher(args: argparse.Namespace) -> Publisher:
    config = from_env(
        directory=args.directory,
        endpoint=args.endpoint,
        flush_interval=args.interval,
        timeout=args.timeout,
    )
    return Publisher.from_config(config)


def cmd_run(args: argparse.Namespace) -> int:
    publisher = _build_publisher(args)

    def handle_signal(signum, _frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping publisher")
        publisher.stop(ShutdownSignal(signum))

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    publisher.start()

    # Short waits keep the main thread responsive to signals
    while not publisher.wait(timeout=0.5):
        pass
    return EXIT_OK


def cmd_flush(args: argparse.Namespace) -> int:
    publisher = _build_publisher(args)
    publisher.source.validate()
    try:
        outcome = publisher.flush()
    finally:
        publisher.close()
    if outcome is not None and not outcome.ok:
        return EXIT_DELIVERY_FAILED
    return EXIT_OK


def cmd_pending(args: argparse.Namespace, console: Console | None = None) -> int:
    console = console or Console()
    directory = args.directory or os.environ.get("SIDECAR_DIRECTORY")
    if not directory:
        raise ConfigError("directory required or set SIDECAR_DIRECTORY")

    source = DirectorySource(directory)
    source.validate()
    files = source.pending()

    table = Table(title=f"Pending in {directory}")
    table.add_column("File", style="cyan")
    table.add_column("Bytes", justify="right")
    table.add_column("Modified (UTC)")
    for f in files:
        table.add_row(f.identifier, str(f.size_bytes), f.modified_at.strftime("%Y-%m-%d %H:%M:%S"))

    console.print(table)
    console.print(f"{len(files)} file(s), {sum(f.size_bytes for f in files)} bytes pending")
    return EXIT_OK


COMMANDS = {
    "run": cmd_run,
    "flush": cmd_flush,
    "pending": cmd_pending,
}


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (ConfigError, SourceError) as e:
        logger.error(f"Startup failed: {e}")
        return EXIT_CONFIG_ERROR

