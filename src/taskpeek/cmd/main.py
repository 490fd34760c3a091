#!/usr/bin/env python3
# Copyright 2024 The peek Authors.
# Licensed under the MIT License.

"""taskpeek - Prometheus exporter for Airflow task processes.

Usage:
    # Serve on :8080, sample every 10 seconds
    taskpeek

    # Custom listen address and interval
    taskpeek --web.listen-address 127.0.0.1:9112 --interval 30

    # Attach constant labels team="true", env="true" and host_hostname
    taskpeek --labels team,env --hostname-path /etc/host_hostname

    # Load settings from YAML, flags still win
    taskpeek --config taskpeek.yaml --verbose

Environment variables prefixed with TASKPEEK_ (e.g. TASKPEEK_INTERVAL=30,
TASKPEEK_LOG_LEVEL=debug) override the config file; flags override both.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from taskpeek.__version__ import __version__
from taskpeek.exporter.app import Exporter
from taskpeek.exporter.config import ConfigError, load_config
from taskpeek.logs import LogConfig, install_logs
from taskpeek.metrics.labels import LabelConfigError

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser; unset flags stay None."""
    parser = argparse.ArgumentParser(
        prog="taskpeek",
        description="Export resource usage of Airflow task processes to Prometheus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        type=str,
        help="Server address (default: :8080)",
    )
    parser.add_argument(
        "--metrics-path",
        dest="metrics_path",
        type=str,
        help="Path serving metrics (default: /metrics)",
    )
    parser.add_argument(
        "--interval",
        type=str,
        help="Interval of metrics collection, seconds or duration like 30s (default: 10)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Add more logs",
    )
    parser.add_argument(
        "--labels",
        type=str,
        help="Comma-separated custom label names, each set to \"true\"",
    )
    parser.add_argument(
        "--hostname-path",
        dest="hostname_path",
        type=str,
        help="Path to file with hostname, published as host_hostname",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML config file",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=["glog", "text", "json"],
        help="Log format (default: glog)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed flags into config overrides."""
    overrides: Dict[str, Any] = {
        "listen_address": args.listen_address,
        "metrics_path": args.metrics_path,
        "interval": args.interval,
        "verbose": args.verbose,
        "labels": args.labels,
        "hostname_path": args.hostname_path,
    }
    if args.log_format:
        overrides["log"] = {"formatter": args.log_format}
    return {k: v for k, v in overrides.items() if v is not None}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # log config errors before the configured handler exists
    install_logs(LogConfig())

    try:
        config = load_config(config_file=args.config, overrides=overrides_from_args(args))
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR

    install_logs(config.log, verbose=config.verbose)

    try:
        exporter = Exporter.from_config(config)
    except LabelConfigError as e:
        logger.error("invalid labels: %s", e)
        return EXIT_CONFIG_ERROR

    try:
        exporter.run()
    except SystemExit as e:
        # uvicorn exits when the listener cannot bind
        logger.error("web server exited: %s", e.code)
        return e.code if isinstance(e.code, int) else 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
