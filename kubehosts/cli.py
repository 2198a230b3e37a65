"""Command-line interface for kubehosts."""

import argparse
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError, HostsError
from .logging_config import setup_logging, get_logger

logger = get_logger(__name__)


def load_config(config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
    """Build a HostsConfig from an optional YAML file and explicit overrides.

    Values in ``overrides`` that are None are ignored, so unset CLI flags do
    not mask values from the file.

    Raises:
        ConfigError: If the file cannot be read or the result does not validate.
    """
    import yaml
    from pydantic import ValidationError
    from .models import HostsConfig

    data: Dict[str, Any] = {}
    if config_path:
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading configuration {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {config_path} must be a mapping")

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return HostsConfig(**data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def _exit_on_sigterm(signum, frame) -> None:
    # Unwind through the controller's cleanup like Ctrl-C does
    raise SystemExit(128 + signum)


def run_command(args: argparse.Namespace) -> None:
    """Reconcile ingresses into the hosts file."""
    from .controller import RunController

    setup_logging(args.verbose)

    overrides = {
        "in_cluster": True if args.incluster else None,
        "api_host": args.host,
        "once": True if args.once else None,
        "filepath": args.filepath,
        "max_errors": args.max_errs,
        "retry_delay_seconds": args.retry_delay,
        "watch_timeout_seconds": args.watch_timeout,
        "atomic_writes": False if args.in_place else None,
        "restore_on_exit": False if args.keep else None,
    }
    try:
        hosts_config = load_config(args.config, overrides)
    except ConfigError as e:
        logger.error("Invalid configuration", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("Starting kubehosts",
                filepath=hosts_config.filepath,
                once=hosts_config.once,
                in_cluster=hosts_config.in_cluster,
                api_host=hosts_config.api_host,
                max_errors=hosts_config.max_errors)

    signal.signal(signal.SIGTERM, _exit_on_sigterm)

    try:
        exit_code = RunController(hosts_config).run()
    except HostsError as e:
        logger.error("Terminating", error=str(e), error_type=type(e).__name__)
        exit_code = 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exit_code = 130
    sys.exit(exit_code)


def restore_command(args: argparse.Namespace) -> None:
    """Strip the managed fragment from a hosts file."""
    from .reconciler import FileReconciler

    setup_logging(args.verbose)

    reconciler = FileReconciler(args.filepath, atomic=not args.in_place)
    try:
        reconciler.restore_original()
    except HostsError as e:
        logger.error("Restore failed", path=args.filepath, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Removed managed entries from {args.filepath}")


def init_config_command(args: argparse.Namespace) -> None:
    """Generate a sample configuration file."""
    import yaml

    sample_config = {
        "in_cluster": True,
        "once": False,
        "filepath": "/etc/hosts",
        "max_errors": 10,
        "retry_delay_seconds": 1.0,
        "watch_timeout_seconds": 300,
        "atomic_writes": True,
        "restore_on_exit": True,
    }

    config_yaml = yaml.dump(sample_config, default_flow_style=False, sort_keys=False)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(config_yaml)
        print(f"Sample configuration written to {output_path}")
    else:
        print("Sample configuration:\n")
        print(config_yaml)


def validate_config_command(args: argparse.Namespace) -> None:
    """Validate a configuration file."""
    try:
        hosts_config = load_config(args.config)
    except ConfigError as e:
        print(f"✗ Configuration file {args.config} is invalid: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Configuration file {args.config} is valid")
    print("\nConfiguration summary:")
    print(f"  API: {'in-cluster' if hosts_config.in_cluster else hosts_config.api_host}")
    print(f"  Mode: {'once' if hosts_config.once else 'watch'}")
    print(f"  File: {hosts_config.filepath}")
    print(f"  Max errors: {hosts_config.max_errors}")
    print(f"  Atomic writes: {hosts_config.atomic_writes}")
    print(f"  Restore on exit: {hosts_config.restore_on_exit}")


def version_command(args: argparse.Namespace) -> None:
    """Show version information."""
    from . import __version__
    print(f"kubehosts {__version__}")


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="kubehosts: keep Kubernetes ingress hostnames in a hosts file",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Write ingress hosts into the file and keep it updated")
    run_parser.add_argument(
        "--config", "-c",
        help="Configuration file path"
    )
    run_parser.add_argument(
        "--incluster",
        action="store_true",
        help="The client is running inside a kubernetes cluster"
    )
    run_parser.add_argument(
        "--host",
        help="The kubernetes API host; required if not run in-cluster"
    )
    run_parser.add_argument(
        "--once",
        action="store_true",
        help="Write the file and then exit; do not watch for ingress changes"
    )
    run_parser.add_argument(
        "--filepath", "-f",
        help="File location for the hosts entries (default: /etc/hosts)"
    )
    run_parser.add_argument(
        "--max-errs",
        type=int,
        help="The number of errors acceptable before quitting in --once mode (default: 10)"
    )
    run_parser.add_argument(
        "--retry-delay",
        type=float,
        help="Seconds to wait between --once retries (default: 1.0)"
    )
    run_parser.add_argument(
        "--watch-timeout",
        type=int,
        help="Ask the API server to close each watch after this many seconds"
    )
    run_parser.add_argument(
        "--in-place",
        action="store_true",
        help="Rewrite the file in place instead of replacing it (needed for bind-mounted files)"
    )
    run_parser.add_argument(
        "--keep",
        action="store_true",
        help="Leave the managed entries in the file on exit"
    )
    run_parser.set_defaults(func=run_command)

    # Restore command
    restore_parser = subparsers.add_parser("restore", help="Remove managed entries from a hosts file")
    restore_parser.add_argument(
        "--filepath", "-f",
        default="/etc/hosts",
        help="File to restore (default: /etc/hosts)"
    )
    restore_parser.add_argument(
        "--in-place",
        action="store_true",
        help="Rewrite the file in place instead of replacing it"
    )
    restore_parser.set_defaults(func=restore_command)

    # Init-config command
    init_parser = subparsers.add_parser("init-config", help="Generate a sample configuration file")
    init_parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)"
    )
    init_parser.set_defaults(func=init_config_command)

    # Validate-config command
    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument(
        "--config", "-c",
        required=True,
        help="Configuration file path"
    )
    validate_parser.set_defaults(func=validate_config_command)

    # Version command
    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=version_command)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
