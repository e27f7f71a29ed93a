"""Command line entry point.

Usage:
    killmonitor --log-file "C:/.../StarCitizen/LIVE/Game.log" --player Alice
    killmonitor --channel PTU --player Alice --show-all --killer-mode --record

Every option falls back to the YAML configuration and ``KILLMONITOR_*``
environment variables.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from killmonitor import __version__
from killmonitor.config import DEFAULT_INSTALL_ROOT, ChannelType, MonitorConfig, load_config, resolve_log_path
from killmonitor.errors import InvalidTargetError
from killmonitor.events.models import MONITOR_ERROR, MONITOR_NOTICE, SESSION_EVENT, MonitorFailure, MonitorNotice
from killmonitor.filters import EventFilter
from killmonitor.formatter import format_event, format_summary
from killmonitor.logging_manager import LoggingManager
from killmonitor.recorder import KillEventRecorder
from killmonitor.scheduler import PollScheduler
from killmonitor.session.models import Classification, MonitorTarget, SessionEvent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="killmonitor",
        description="Watch a Star Citizen Game.log and report kills and deaths of one player.",
    )
    parser.add_argument("--log-file", help="Game.log to monitor (default: the channel's log)")
    parser.add_argument("--player", help="Name of the monitored player")
    parser.add_argument(
        "--channel",
        choices=[c.value for c in ChannelType],
        type=str.upper,
        help="Release channel used to locate Game.log (default: LIVE)",
    )
    parser.add_argument(
        "--install-root",
        default=str(DEFAULT_INSTALL_ROOT),
        help="Directory containing the StarCitizen folder",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--interval", type=float, help="Seconds between polls")
    parser.add_argument(
        "--show-all",
        action="store_true",
        default=None,
        help="Also show NPC events and events between other players",
    )
    parser.add_argument(
        "--killer-mode",
        action="store_true",
        default=None,
        help="Also show kills made by the monitored player",
    )
    parser.add_argument(
        "--skip-existing",
        dest="read_existing",
        action="store_false",
        default=None,
        help="Ignore what is already in the log and only report new entries",
    )
    parser.add_argument("--record", dest="record_events", action="store_true", default=None,
                        help="Append shown events to a JSON lines file")
    parser.add_argument("--compact", action="store_true", help="Print one line per event")
    parser.add_argument("--log-level", help="Console log level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    """Layer command line options over the loaded configuration."""
    config = load_config(args.config)
    return config.with_overrides(
        log_file=args.log_file,
        player_name=args.player,
        channel=args.channel,
        poll_interval_seconds=args.interval,
        show_all=args.show_all,
        killer_mode=args.killer_mode,
        read_existing=args.read_existing,
        record_events=args.record_events,
        log_level=args.log_level,
    )


class ConsoleReporter:
    """Prints accepted events and monitor diagnostics."""

    def __init__(self, event_filter: EventFilter, done: asyncio.Event, out=None, err=None, compact=False):
        self.event_filter = event_filter
        self.compact = compact
        self.done = done
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.shown = 0
        self.kills = 0
        self.deaths = 0
        self.failure: MonitorFailure | None = None

    def on_event(self, event: SessionEvent) -> None:
        if event.classification is Classification.SELF_KILLED:
            self.kills += 1
        elif event.classification is Classification.SELF_DIED:
            self.deaths += 1
        if not self.event_filter.accepts(event):
            return
        self.shown += 1
        if self.compact:
            print(format_summary(event), file=self.out, flush=True)
            return
        print(format_event(event), file=self.out)
        print(file=self.out, flush=True)

    def on_notice(self, notice: MonitorNotice) -> None:
        print(f"[{notice.kind.value}] {notice.message}", file=self.err, flush=True)

    def on_error(self, failure: MonitorFailure) -> None:
        self.failure = failure
        print(f"Monitoring stopped: {failure.message}", file=self.err, flush=True)
        self.done.set()


def _install_signal_handlers(done: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, done.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops only support signal.signal
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(done.set))


async def run(config: MonitorConfig, install_root: str | Path = DEFAULT_INSTALL_ROOT, compact: bool = False) -> int:
    """Monitor until interrupted or until monitoring fails.

    Returns:
        Process exit code
    """
    target = MonitorTarget.create(resolve_log_path(config, install_root), config.player_name)

    done = asyncio.Event()
    scheduler = PollScheduler(config)
    reporter = ConsoleReporter(EventFilter(config.show_all, config.killer_mode), done, compact=compact)
    scheduler.bus.subscribe(SESSION_EVENT, reporter.on_event)
    scheduler.bus.subscribe(MONITOR_NOTICE, reporter.on_notice)
    scheduler.bus.subscribe(MONITOR_ERROR, reporter.on_error)

    recorder = None
    if config.record_events:
        recorder = KillEventRecorder(config.record_dir, reporter.event_filter)
        recorder.subscribe(scheduler.bus)

    _install_signal_handlers(done)

    await scheduler.start(target)
    print(f"Monitoring {target.path} for {target.player_name} (Ctrl+C to stop)", file=sys.stderr)
    try:
        await done.wait()
    finally:
        await scheduler.stop()
        if recorder is not None:
            recorder.close()

    print(
        f"{reporter.kills} kills, {reporter.deaths} deaths, {reporter.shown} events shown",
        file=sys.stderr,
    )
    return 1 if reporter.failure is not None else 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        parser.error(str(e))

    if not config.player_name:
        parser.error("a player name is required (--player or KILLMONITOR_PLAYER_NAME)")

    logging_manager = LoggingManager(config.log_dir, config.log_level)
    try:
        return asyncio.run(run(config, args.install_root, args.compact))
    except InvalidTargetError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
    finally:
        logging_manager.shutdown()


if __name__ == "__main__":
    sys.exit(main())
