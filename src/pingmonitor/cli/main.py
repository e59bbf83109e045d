"""
Command-line interface for pingmonitor.

This module provides the ``pingmonitor`` entry point: it reads the
configuration, builds one ``Ping`` per host, streams results (merged across
hosts), optionally records them to Parquet and prints either one line per
result or rolling statistics.
"""

import argparse
import asyncio
import logging
import signal
import sys
import tomllib
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional

from ..config import get_config, set_config_path
from ..models.config import AppConfig, LoggingConfig
from ..models.results import ProbeResult, RollingStats
from ..ping import Ping
from ..storage import ParquetStorage, record_results
from ..streaming import PingStream, combine
from ..system import CancellationToken
from ..validation import ValidationError, handle_cli_error

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pingmonitor",
        description="Ping one or more hosts and report results or rolling statistics.",
    )
    parser.add_argument("hosts", nargs="+", help="Hostnames or addresses to probe.")
    parser.add_argument("-c", "--count", type=int, help="Echo requests per host; 0 runs until interrupted.")
    parser.add_argument("-i", "--interval", type=float, help="Seconds between echo requests.")
    parser.add_argument("-W", "--timeout", type=float, help="Seconds to wait for each reply.")
    parser.add_argument("-s", "--size", type=int, help="Payload size in bytes.")
    parser.add_argument("-t", "--ttl", type=int, help="Time to live.")
    version = parser.add_mutually_exclusive_group()
    version.add_argument("-4", dest="ip_version", action="store_const", const=4, help="Force IPv4.")
    version.add_argument("-6", dest="ip_version", action="store_const", const=6, help="Force IPv6.")
    parser.add_argument(
        "--stats",
        type=int,
        nargs="?",
        const=0,
        metavar="N",
        help="Print rolling statistics over the last N results instead of each result "
             "(N defaults to [stream] stats_window_size).",
    )
    parser.add_argument("--output", type=Path, help="Append every result to this Parquet file.")
    parser.add_argument("--config", type=Path, help="Path to config.toml.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def configure_logging(logging_config: LoggingConfig, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, logging_config.level, logging.INFO)
    logging.basicConfig(
        level=level,
        format=logging_config.format,
        datefmt=logging_config.datefmt,
        stream=sys.stdout,
    )
    logging.getLogger().setLevel(level)


def build_pings(args: argparse.Namespace, app_config: AppConfig, token: CancellationToken) -> List[Ping]:
    """One configured ``Ping`` per host; command-line values override the config."""
    pings = []
    for host in args.hosts:
        ping = Ping.from_config(host, app_config)
        if args.count is not None:
            ping.set_count(args.count)
        if args.interval is not None:
            ping.set_interval(args.interval)
        if args.timeout is not None:
            ping.set_timeout(args.timeout)
        if args.size is not None:
            ping.set_packet_size(args.size)
        if args.ttl is not None:
            ping.set_ttl(args.ttl)
        if args.ip_version is not None:
            ping.set_ip_version(args.ip_version)
        pings.append(ping.set_cancel_token(token))
    return pings


def format_result(result: ProbeResult) -> str:
    if result.is_success():
        return (
            f"{result.host}: {result.average_response_time_ms():.2f} ms "
            f"({result.packet_loss_percentage}% loss)"
        )
    return f"{result.host}: failed ({result.error.value})"


def format_stats(stats: RollingStats) -> str:
    return (
        f"n={stats.count} avg={stats.average:.2f} ms min={stats.minimum:.2f} ms "
        f"max={stats.maximum:.2f} ms stddev={stats.standard_deviation:.2f} ms "
        f"jitter={stats.jitter:.2f} ms loss={stats.packet_loss:.2f}%"
    )


async def run_monitor(pings: List[Ping], stats_window: Optional[int] = None,
                      output: Optional[Path] = None, flush_every: int = 10) -> int:
    """
    Stream every ping, print as results arrive, and return an exit status.

    Returns:
        0 if at least one probe succeeded, otherwise 1
    """
    source: AsyncIterator[ProbeResult] = combine(*(ping.stream() for ping in pings))
    if output is not None:
        source = record_results(source, ParquetStorage(), str(output), flush_every=flush_every)

    successes = 0

    def _count(result: ProbeResult) -> ProbeResult:
        nonlocal successes
        if result.is_success():
            successes += 1
        return result

    pipeline = PingStream(source).map(_count)
    if stats_window is not None:
        async for stats in pipeline.rolling_stats(stats_window):
            print(format_stats(stats), flush=True)
    else:
        async for result in pipeline:
            print(format_result(result), flush=True)

    return 0 if successes else 1


def install_signal_handlers(token: CancellationToken) -> Callable[[], None]:
    """
    Cancel ``token`` on SIGINT or SIGTERM for the lifetime of the running loop.

    Handlers are registered with the event loop, so ``token.cancel()`` runs
    as an ordinary loop callback and never interrupts code that holds the
    token's lock. Where the loop cannot watch signals (Windows) the plain
    ``signal`` module is used instead.

    Returns:
        A function that restores the previous handlers
    """
    loop = asyncio.get_running_loop()
    previous_handlers = {}

    def on_signal(signum: int) -> None:
        """Cancel every stream; in-flight ping processes are terminated."""
        if token.is_cancelled:
            logger.warning("Shutdown already in progress.")
            return
        logger.info(f"Signal {signal.strsignal(signum)} received. Stopping...")
        token.cancel()

    loop_handled = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous_handlers[signum] = signal.getsignal(signum)
        try:
            loop.add_signal_handler(signum, on_signal, signum)
            loop_handled.append(signum)
        except NotImplementedError:
            signal.signal(signum, lambda received, frame: on_signal(received))

    def restore() -> None:
        for signum in loop_handled:
            loop.remove_signal_handler(signum)
        for signum, handler in previous_handlers.items():
            # None: installed outside Python, nothing to put back
            if handler is not None:
                signal.signal(signum, handler)

    return restore


async def monitor_until_signalled(pings: List[Ping], token: CancellationToken, **kwargs) -> int:
    """Run ``run_monitor`` with signal handlers bound to ``token``."""
    restore_signals = install_signal_handlers(token)
    try:
        return await run_monitor(pings, **kwargs)
    finally:
        restore_signals()


def main_cli(argv: Optional[List[str]] = None) -> int:
    """
    Main command-line interface for pingmonitor.

    Args:
        argv: Arguments without the program name; ``sys.argv[1:]`` when None

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    if args.config is not None:
        set_config_path(args.config)

    try:
        app_config = get_config()
    except (FileNotFoundError, ValidationError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(error=e, context="configuration loading", exit_code=2, logger=logger)

    configure_logging(app_config.logging, args.verbose)

    stats_window = args.stats
    if stats_window == 0:
        stats_window = app_config.stream.stats_window_size

    token = CancellationToken()
    try:
        pings = build_pings(args, app_config, token)
    except ValidationError as e:
        handle_cli_error(error=e, context="argument validation", exit_code=2, logger=logger)

    try:
        return asyncio.run(
            monitor_until_signalled(
                pings,
                token,
                stats_window=stats_window,
                output=args.output,
                flush_every=app_config.stream.batch_size,
            )
        )
    except ValidationError as e:
        handle_cli_error(error=e, context="stream setup", exit_code=2, logger=logger)
    return 1


def main() -> None:
    sys.exit(main_cli())


if __name__ == "__main__":
    main()
