#!/usr/bin/env python3
"""
Command Line Interface for UDP Probe
"""

import sys
import logging
import argparse

from .config import ConfigError, load_config, load_config_file
from .runner import RunMode, run


def configure_logging(level=logging.INFO):
    """Set the root logger level, adding a stderr handler if none exists"""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(levelname)s:%(name)s:%(message)s'))
        root_logger.addHandler(handler)
    else:
        for handler in root_logger.handlers:
            handler.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='udp-probe',
        description='Measure UDP packet loss, reordering and one-way latency',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Run command
    run_parser = subparsers.add_parser('run', help='Run the sender and/or receiver')
    run_parser.add_argument('--remote', '-e',
                            help='Remote address to send packets to (receiver binds it)')
    run_parser.add_argument('--rate', '-r', type=int,
                            help='Packets sent per second (default 10)')
    run_parser.add_argument('--size', '-s', type=int,
                            help='Packet size in bytes (default 100, minimum 16)')
    run_parser.add_argument('--output', '-o',
                            help='Output file for packets seen by the receiver '
                                 '(default /root/network-test.log)')
    run_parser.add_argument('--network-namespace', '-n',
                            help='Network namespace in which the receiver listens')
    run_parser.add_argument('--loss-timeout', type=float,
                            help='Seconds before a missing packet is reported lost (default 0.5)')
    run_parser.add_argument('--client', action='store_true', help='Only run the sender')
    run_parser.add_argument('--server', action='store_true', help='Only run the receiver')
    run_parser.add_argument('--config', '-c', help='Configuration file (TOML)')
    run_parser.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')

    # Summary command
    summary_parser = subparsers.add_parser('summary', help='Summarize a receiver output log')
    summary_parser.add_argument('log', help='Output log written by the receiver')
    summary_parser.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')

    return parser


def _log_level(args) -> int:
    if args.debug:
        return logging.DEBUG
    if getattr(args, 'config', None):
        level = load_config_file(args.config).get('logging', {}).get('level', 'INFO')
        return getattr(logging, str(level).upper(), logging.INFO)
    return logging.INFO


def main(argv=None):
    """Main entry point for udp-probe command"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        configure_logging(_log_level(args))
        if args.command == 'summary':
            sys.exit(summary(args))

        config = load_config(
            config_file=args.config,
            remote=args.remote,
            rate=args.rate,
            size=args.size,
            output=args.output,
            network_namespace=args.network_namespace,
            loss_timeout=args.loss_timeout,
        )
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    mode = RunMode.from_flags(args.client, args.server)
    try:
        exit_code, unit = run(config, mode)
    except KeyboardInterrupt:
        logging.info("Interrupted")
        sys.exit(130)

    if unit is not None and unit.error is not None:
        print(f"❌ {unit.name}: {unit.error}", file=sys.stderr)
    sys.exit(exit_code)


def summary(args) -> int:
    from .report import summarize_file, format_summary

    try:
        result = summarize_file(args.log)
    except FileNotFoundError:
        print(f"❌ Log file not found: {args.log}", file=sys.stderr)
        return 1
    print(format_summary(result))
    return 0


if __name__ == '__main__':
    main()
