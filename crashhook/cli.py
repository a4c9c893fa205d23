"""
Crashhook CLI - run as a supervisord event listener.

Example supervisord section:

    [eventlistener:crashhook]
    command=crashhook -p app:worker -w https://open.feishu.cn/open-apis/bot/v2/hook/...
    events=PROCESS_STATE

Push a notification when a watched process exits unexpectedly. With no
--program options every process is watched.
"""

import argparse
import signal
import sys
from typing import Any

import yaml

from crashhook import __version__
from crashhook.channel import EventChannel
from crashhook.config import WEBHOOK_ENV_VAR, Config, build_config
from crashhook.listener import EventListener
from crashhook.logging_config import get_logger, setup_logging
from crashhook.plugins import create_notifier, get_registry

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="crashhook",
        description=(
            "supervisord event listener that pushes a chat message when a child "
            "process transitions unexpectedly to the EXITED or FATAL state"
        )
    )
    parser.add_argument(
        "-p", "--program",
        action="append",
        default=[],
        help=(
            "Process to watch; use group_name:process_name for grouped processes. "
            "May be given multiple times. If omitted, all processes are watched."
        )
    )
    parser.add_argument(
        "-w", "--webhook",
        help=f"Webhook URL to push notifications to (default: ${WEBHOOK_ENV_VAR})"
    )
    parser.add_argument(
        "-c", "--config",
        help="Optional YAML configuration file"
    )
    parser.add_argument(
        "-n", "--notifier",
        choices=get_registry().list_notifiers(),
        help="Notification backend (default: feishu)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Notification request timeout in seconds (default: 10)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--log-file",
        help="Optional log file path (logs to stderr if not specified)"
    )
    parser.add_argument(
        "--test-notify",
        metavar="MESSAGE",
        help="Send MESSAGE through the configured notifier and exit"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def cmd_test_notify(config: Config, message: str) -> int:
    """Send a single notification and report the outcome."""
    notifier = create_notifier(config.notifier, config.notifier_config())

    if config.webhook is None and notifier.requires_destination:
        print(
            f"Error: no webhook specified (use --webhook or ${WEBHOOK_ENV_VAR})",
            file=sys.stderr
        )
        return 1

    success = notifier.deliver(config.webhook or "", message)
    status = "✓" if success else "✗"
    print(f"  {status} {config.notifier}", file=sys.stderr)
    return 0 if success else 1


def cmd_listen(config: Config) -> int:
    """Run the eventlistener loop on stdin/stdout until supervisord closes it."""
    notifier = create_notifier(config.notifier, config.notifier_config())

    if config.webhook is None and notifier.requires_destination:
        logger.warning(
            "No webhook specified (neither --webhook argument nor %s environment "
            "variable), crash messages will only be logged",
            WEBHOOK_ENV_VAR
        )

    def signal_handler(sig: int, _frame: Any) -> None:
        logger.info("Signal %s received, shutting down", sig)
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)

    channel = EventChannel(sys.stdin.buffer, sys.stdout.buffer)
    listener = EventListener(
        channel=channel,
        watch_set=config.watch_set(),
        notifier=notifier,
        destination_url=config.webhook,
        delivery_deadline=2 * config.timeout,
    )
    listener.run()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = build_config(
            config_path=args.config,
            webhook=args.webhook,
            programs=args.program,
            overrides={
                "notifier": args.notifier,
                "timeout": args.timeout,
                "log_level": args.log_level,
                "log_file": args.log_file,
            },
        )
        get_registry().get_notifier(config.notifier)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        setup_logging(level=config.log_level, log_file=config.log_file)
    except OSError as e:
        print(f"Error: cannot open log file: {e}", file=sys.stderr)
        return 1

    if args.test_notify is not None:
        return cmd_test_notify(config, args.test_notify)

    try:
        return cmd_listen(config)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 0


if __name__ == '__main__':
    sys.exit(main())
