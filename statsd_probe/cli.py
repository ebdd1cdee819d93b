#!/usr/bin/env python3
"""
Command-line entry point for the StatsD probe.

Starts a mock StatsD collector, drives the login scenario against the
target service and reports whether the request counters add up.

Usage:
    statsd-probe [--config CONFIG_FILE] [--target-host HOST] [--target-port PORT]
                 [--statsd-host HOST] [--statsd-port PORT] [--log-level LOG_LEVEL]
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import yaml

from .config import DRAIN_MODES, HarnessConfig, LOG_LEVELS, load_config
from .exceptions import ConfigValidationError
from .runner import ExitCode, run_probe


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file that receives a copy of the log.

    Returns:
        Configured logger instance.
    """
    log_level_value = getattr(logging, log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level_value,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    return logging.getLogger("statsd_probe")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Verify a service emits consistent StatsD request counters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Probe the service on 127.0.0.1:8000, collect on 127.0.0.1:8125
  statsd-probe

  # Use a configuration file
  statsd-probe --config config/default_config.yaml

  # Wait for metrics to settle instead of a fixed drain delay
  statsd-probe --drain-mode quiet

Exit codes:
  0    run completed (validation warnings are reported, not fatal)
  1    target service unreachable
  2    configuration error
  3    mock StatsD collector could not bind
  130  interrupted
        """
    )

    parser.add_argument('--config', type=str, default=None,
                        help='Path to a YAML configuration file')
    parser.add_argument('--target-host', type=str, default=None,
                        help='Target service host (overrides config)')
    parser.add_argument('--target-port', type=int, default=None,
                        help='Target service port (overrides config)')
    parser.add_argument('--statsd-host', type=str, default=None,
                        help='Address the mock StatsD collector binds to (overrides config)')
    parser.add_argument('--statsd-port', type=int, default=None,
                        help='UDP port the mock StatsD collector binds to (overrides config)')
    parser.add_argument('--timeout-ms', type=int, default=None,
                        help='Per-request timeout in milliseconds (overrides config)')
    parser.add_argument('--drain-mode', type=str, default=None, choices=list(DRAIN_MODES),
                        help='How to wait for late metrics before validating')
    parser.add_argument('--log-level', type=str, default=None, choices=list(LOG_LEVELS),
                        help='Logging level (default: INFO)')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Also write the log to this file')
    parser.add_argument('--validate-only', action='store_true',
                        help='Validate configuration and exit')

    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Apply command-line overrides to a configuration dictionary."""
    overrides = [
        ("target", "host", args.target_host),
        ("target", "port", args.target_port),
        ("target", "timeout_ms", args.timeout_ms),
        ("statsd", "host", args.statsd_host),
        ("statsd", "port", args.statsd_port),
        ("timing", "drain_mode", args.drain_mode),
        ("logging", "level", args.log_level),
        ("logging", "file", args.log_file),
    ]
    for section, key, value in overrides:
        if value is not None:
            config.setdefault(section, {})[key] = value
    return config


def print_banner(config: HarnessConfig) -> None:
    """Print the start-up banner."""
    print("🧪 StatsD Counter Test Script")
    print("=" * 50)
    print("This script will test your service's StatsD integration.")
    print(f"Make sure your service is running on http://{config.target_host}:{config.target_port}")
    print()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the StatsD probe."""
    args = parse_arguments(argv)

    try:
        raw_config = apply_overrides(load_config(args.config), args)
        config = HarnessConfig.from_dict(raw_config)
    except (FileNotFoundError, yaml.YAMLError) as e:
        setup_logging(args.log_level or "INFO")
        logging.getLogger("statsd_probe").error(f"Configuration error: {e}")
        return int(ExitCode.CONFIG_ERROR)
    except ConfigValidationError as e:
        logger = setup_logging(args.log_level or "INFO")
        for error in e.errors:
            logger.error(f"Configuration error: {error}")
        return int(ExitCode.CONFIG_ERROR)

    logger = setup_logging(config.log_level, config.log_file or None)

    if args.validate_only:
        logger.info("Configuration validation successful (--validate-only)")
        return int(ExitCode.SUCCESS)

    print_banner(config)

    try:
        exit_code = asyncio.run(run_probe(config))
    except KeyboardInterrupt:
        logger.info("Test interrupted by user")
        return int(ExitCode.INTERRUPTED)

    if exit_code == ExitCode.SUCCESS:
        print("\n🏁 Test completed")
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
