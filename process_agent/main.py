#!/usr/bin/env python3
"""Main entrypoint resolving and checking the process agent configuration."""

import argparse
import json
import logging
import shlex
import sys
from os import environ
from pathlib import Path
from typing import cast

from pydantic import ValidationError

from process_agent.config import (
    AgentConfig,
    ConfigResolver,
    is_blacklisted,
    load_legacy_config,
    load_structured_config,
)
from process_agent.errors import ConfigError
from process_agent.logger import configure_logging

DEFAULT_LEGACY_CONFIG = Path("/etc/dd-agent/datadog.conf")
DEFAULT_STRUCTURED_CONFIG = Path("/etc/datadog-agent/datadog.yaml")


class Args(argparse.Namespace):
    config: Path
    yaml_config: Path
    rich_logs: bool
    print_config_and_exit: bool
    scrub_cmdline: str | None


logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> Args:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Process agent configuration resolver",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_LEGACY_CONFIG,
        help="Path to the legacy INI configuration file, skipped if missing",
    )

    parser.add_argument(
        "--yaml-config",
        type=Path,
        default=DEFAULT_STRUCTURED_CONFIG,
        help="Path to the YAML configuration file, skipped if missing",
    )

    parser.add_argument(
        "--rich-logs",
        action="store_true",
        help="Enable rich colored logging output",
    )

    parser.add_argument(
        "--print-config-and-exit",
        action="store_true",
        help="Print the resolved configuration as JSON and exit",
    )

    parser.add_argument(
        "--scrub-cmdline",
        metavar="CMDLINE",
        help="Print the given command line, quoted as in a shell, as the agent would report it and exit",
    )

    return cast(Args, parser.parse_args(argv))


def resolve_config(args: Args) -> AgentConfig:
    """Load every configuration source and resolve the configuration."""
    legacy = load_legacy_config(args.config)
    if legacy is not None:
        logger.info("Loaded legacy configuration from %s", args.config)
    structured = load_structured_config(args.yaml_config)
    if structured is not None:
        logger.info("Loaded YAML configuration from %s", args.yaml_config)

    return ConfigResolver().resolve(
        legacy=legacy, structured=structured, environ=environ
    )


def scrub_report(config: AgentConfig, cmdline: list[str]) -> dict:
    return {
        "cmdline": config.scrubber.redact(cmdline),
        "blacklisted": is_blacklisted(cmdline, config.blacklist),
    }


def main(argv: list[str] | None = None) -> int:
    """Main function."""
    args = parse_args(argv)

    configure_logging("info", use_rich=args.rich_logs)

    try:
        config = resolve_config(args)
    except ValidationError as e:
        logger.error(
            "Invalid config\n"
            + "\n".join(
                [
                    f"{'.'.join([str(loc) for loc in err['loc']])}: {err['msg']} (got {err['input']})"
                    for err in e.errors()
                ]
            )
        )
        return 1
    except ConfigError as e:
        logger.error("Error resolving configuration: %s", e)
        return 1

    # (re)configure logging from the resolved configuration
    configure_logging(
        config.log_level,
        log_file=config.log_file,
        log_to_console=config.log_to_console or args.print_config_and_exit,
        use_rich=args.rich_logs,
    )

    if args.scrub_cmdline:
        print(json.dumps(scrub_report(config, shlex.split(args.scrub_cmdline)), indent=2))
        return 0

    if args.print_config_and_exit:
        logger.info("Printing resolved configuration")
        print(json.dumps(config.summary(), indent=2, sort_keys=True))
        return 0

    if not config.enabled:
        logger.info("Process agent is disabled by configuration")
        return 0

    if not config.api_key:
        logger.error("No API key configured, set api_key or DD_API_KEY")
        return 1

    logger.info(
        "Configuration resolved for host '%s', enabled checks: %s",
        config.hostname,
        ", ".join(config.enabled_checks),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
