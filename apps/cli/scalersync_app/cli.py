"""CLI entrypoints for the scaler session, port listing, config and transcript replay."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from pathlib import Path

from scalersync_core import ConfigError, SessionController, load_config, validate_config
from scalersync_core.logging_setup import configure_logging, get_logger, install_crash_hooks, shutdown_logging
from scalersync_protocol import SUPPORTED_BAUD_RATES, CenteringError, LinkClosedError, ReplayRunner, Resolution, SerialTransport


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid resolution '{value}' specified")
    if number <= 0:
        raise argparse.ArgumentTypeError("Resolution can't be zero")
    return number


def _baud(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid baud rate '{value}' specified")
    if number not in SUPPORTED_BAUD_RATES:
        raise argparse.ArgumentTypeError("Unsupported baud rate")
    return number


def _load(args: argparse.Namespace):
    return load_config(Path(args.config).expanduser() if args.config else None)


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _load(args)
    cfg.serial.port = args.port
    cfg.serial.baud = args.baud
    if args.output_h is not None:
        cfg.output.h = args.output_h
    if args.output_v is not None:
        cfg.output.v = args.output_v
    if args.idle_timeout is not None:
        cfg.watchdog.idle_timeout_s = max(0.0, args.idle_timeout)
    if args.ack_timeout is not None:
        cfg.watchdog.ack_timeout_s = max(0.0, args.ack_timeout)

    log_directory = Path(args.log_dir).expanduser() if args.log_dir else None
    configure_logging(
        keep_files=cfg.diagnostics.keep_log_files,
        console=cfg.diagnostics.console_log,
        verbose=args.verbose,
        directory=log_directory,
    )
    install_crash_hooks(log_directory)
    try:
        return _run_session(cfg)
    finally:
        shutdown_logging()


def _run_session(cfg) -> int:
    logger = get_logger()

    try:
        validate_config(cfg, require_port=True)
    except ConfigError as exc:
        logger.error("invalid configuration: %s", exc, extra={"event": "config_error"})
        return 2

    controller = SessionController(cfg)
    try:
        controller.connect()
    except Exception as exc:
        logger.error('failed to open "%s": %s', cfg.serial.port, exc, extra={"event": "open_failed"})
        return 1

    try:
        controller.run()
    except KeyboardInterrupt:
        logger.info("stopped by user", extra={"event": "stopped"})
        return 0
    except LinkClosedError as exc:
        logger.critical("link lost: %s", exc, extra={"event": "link_lost"})
        return 1
    except CenteringError as exc:
        logger.critical("cannot center image: %s", exc, extra={"event": "config_error"})
        return 2
    finally:
        controller.disconnect()
    return 0


def cmd_list_ports(_args: argparse.Namespace) -> int:
    _print_json([asdict(d) for d in SerialTransport.discover()])
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    _print_json(asdict(_load(args)))
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    cfg = _load(args)
    output = Resolution(args.output_h or cfg.output.h, args.output_v or cfg.output.v)
    runner = ReplayRunner(output, cfg.calculator())
    report = runner.run(Path(args.transcript), strict=not args.no_strict)
    payload = asdict(report)
    payload["success"] = len(report.errors) == 0
    _print_json(payload)
    return 0 if not report.errors else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scalersync",
        description="Scales the output to match the input size and centers it",
    )
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    # Also accepted after the subcommand; SUPPRESS keeps the top-level value when omitted there.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="Path to a JSON config file")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", parents=[common], help="Watch the scaler and resize on every new input")
    run_cmd.add_argument("port", help="The device path to a serial port")
    run_cmd.add_argument(
        "baud",
        type=_baud,
        help="The baud rate to connect at: " + ", ".join(str(b) for b in SUPPORTED_BAUD_RATES),
    )
    run_cmd.add_argument("output_h", nargs="?", type=_positive_int, default=None, help="The scaler's output horizontal resolution")
    run_cmd.add_argument("output_v", nargs="?", type=_positive_int, default=None, help="The scaler's output vertical resolution")
    run_cmd.add_argument("--idle-timeout", type=float, default=None, help="Report a stalled link after this many silent seconds")
    run_cmd.add_argument("--ack-timeout", type=float, default=None, help="Report a missing acknowledgment after this many seconds")
    run_cmd.add_argument("--verbose", action="store_true", help="Log unrecognised and ignored lines")
    run_cmd.add_argument("--log-dir", default=None, help="Directory for the JSON log and fault log")
    run_cmd.set_defaults(func=cmd_run)

    list_cmd = sub.add_parser("list-ports", parents=[common], help="List serial ports")
    list_cmd.set_defaults(func=cmd_list_ports)

    show_cmd = sub.add_parser("show-config", parents=[common], help="Print the effective configuration")
    show_cmd.set_defaults(func=cmd_show_config)

    replay_cmd = sub.add_parser("replay", parents=[common], help="Replay a captured serial transcript")
    replay_cmd.add_argument("--transcript", required=True, help="Path to JSONL transcript")
    replay_cmd.add_argument("--output-h", type=_positive_int, default=None)
    replay_cmd.add_argument("--output-v", type=_positive_int, default=None)
    replay_cmd.add_argument("--no-strict", action="store_true", help="Skip the completed-cycle check")
    replay_cmd.set_defaults(func=cmd_replay)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
