#!/usr/bin/env python3
"""
fleet-deployer command line interface.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from fleet_deployer import __version__
from fleet_deployer.config import FleetConfig
from fleet_deployer.deployment import DeploymentController
from fleet_deployer.exceptions import (
    ArtifactStoreError,
    ConfigError,
    ControlPlaneError,
    FleetDeploymentError,
    RegistryError,
    ValidationError,
)
from fleet_deployer.logging_config import setup_basic_logging, setup_logging
from fleet_deployer.models import DeploymentEvent, FleetResult

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2
EXIT_NOT_READY = 3

DEFAULT_CONFIG = "fleet.yml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleet-deployer",
        description="Roll a new image version out to a fleet of ECS services",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write a sample configuration
  fleet-deployer --generate-config --config fleet.yml

  # Check that version 1.4.2 exists and every service is reachable
  fleet-deployer --config fleet.yml check 1.4.2

  # Deploy it
  fleet-deployer --config fleet.yml deploy 1.4.2
        """,
    )
    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--json-logs", action="store_true", help="Write log files as JSON lines"
    )
    parser.add_argument("--region", help="AWS region (overrides the configuration file)")
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate a sample configuration file and exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    deploy_parser = subparsers.add_parser("deploy", help="Deploy a version to every service")
    deploy_parser.add_argument("version", help="Image tag to deploy")
    deploy_parser.add_argument(
        "--json", action="store_true", help="Print the fleet result as JSON"
    )

    check_parser = subparsers.add_parser(
        "check", help="Check that a version exists and every service is ready"
    )
    check_parser.add_argument("version", help="Image tag to check")

    subparsers.add_parser("validate", help="Validate the configuration file")

    return parser


def configure_logging(config: Optional[FleetConfig], verbose: bool, json_logs: bool) -> None:
    """Set up file logging from the configuration, falling back to console only."""
    console_level = "DEBUG" if verbose else "INFO"
    if config is None:
        setup_basic_logging(console_level)
        return

    settings = config.deployer.logging
    try:
        setup_logging(
            log_dir=settings.log_dir,
            console_level=console_level if verbose else settings.console_level,
            file_level=settings.file_level,
            use_json=json_logs or settings.use_json,
            max_bytes=settings.max_bytes,
            backup_count=settings.backup_count,
        )
    except OSError as e:
        setup_basic_logging(console_level)
        logger.warning(f"File logging disabled, cannot use {settings.log_dir}: {e}")


def print_event(event: DeploymentEvent) -> None:
    print(event.describe(), flush=True)


def print_result(result: FleetResult) -> None:
    print()
    for outcome in result.outcomes:
        if outcome.succeeded:
            print(f"  OK      {outcome.service} ({outcome.cluster})")
        else:
            print(f"  FAILED  {outcome.service} ({outcome.cluster}): {outcome.error}")
    print(
        f"\n{len(result.succeeded)} of {len(result.outcomes)} services "
        f"deployed version {result.version}"
    )


async def run_command(args: argparse.Namespace, config: FleetConfig) -> int:
    controller = DeploymentController(
        config.application, config.deployer, listener=print_event
    )

    if args.command == "validate":
        controller.validate()
        print(f"Configuration valid: {args.config}")
        return EXIT_OK

    if args.command == "check":
        await controller.check_readiness(args.version)
        print(f"Version {args.version} is ready to deploy")
        return EXIT_OK

    try:
        result = await controller.deploy(args.version)
    except FleetDeploymentError as e:
        result = e.result

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        print_result(result)
    return EXIT_OK if result.all_succeeded else EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        configure_logging(None, args.verbose, args.json_logs)
        FleetConfig.sample().save(args.config)
        print(f"Generated sample configuration at: {args.config}")
        return EXIT_OK

    if not args.command:
        parser.print_help()
        return EXIT_INVALID

    if not Path(args.config).exists():
        print(f"Configuration file not found: {args.config}", file=sys.stderr)
        print(
            f"Generate one with: fleet-deployer --generate-config --config {args.config}",
            file=sys.stderr,
        )
        return EXIT_INVALID

    try:
        config = FleetConfig.from_file(args.config)
    except ConfigError as e:
        configure_logging(None, args.verbose, args.json_logs)
        print(f"Configuration invalid: {e}", file=sys.stderr)
        return EXIT_INVALID

    if args.region:
        config.deployer.region = args.region

    configure_logging(config, args.verbose, args.json_logs)

    try:
        return asyncio.run(run_command(args, config))
    except ValidationError as e:
        print(f"Configuration invalid: {e}", file=sys.stderr)
        return EXIT_INVALID
    except (RegistryError, ArtifactStoreError, ControlPlaneError) as e:
        logger.error(f"Readiness check failed: {e}")
        print(f"Not ready to deploy {args.version}: {e}", file=sys.stderr)
        return EXIT_NOT_READY
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
