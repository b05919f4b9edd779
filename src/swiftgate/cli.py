"""Command-line entry point: ``swiftgate --config swiftgate.yaml``."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
import yaml
from pydantic import ValidationError

from swiftgate.blobstore import PROVIDERS
from swiftgate.config import SwiftGateConfig, load_config
from swiftgate.logging_config import configure_logging
from swiftgate.server import create_app

logger = logging.getLogger("swiftgate")

# Option dest -> (config section, field) it overrides
_OVERRIDES = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "log_level": ("server", "log_level"),
    "log_format": ("server", "log_format"),
    "shutdown_timeout": ("server", "shutdown_timeout"),
    "provider": ("provider", "kind"),
    "token_life": ("auth", "token_life"),
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Every option except ``--config`` overrides one value of the loaded
    configuration and defaults to None, meaning "keep the file's value".
    """
    parser = argparse.ArgumentParser(
        prog="swiftgate",
        description="Swift API gateway over pluggable blob stores",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("swiftgate.yaml"),
        help="YAML configuration file (default: %(default)s)",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help="bind address")
    server.add_argument("--port", type=int, help="listen port")
    server.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    server.add_argument("--log-format", choices=["text", "json"])
    server.add_argument("--shutdown-timeout", type=int, metavar="SECONDS")

    gateway = parser.add_argument_group("gateway")
    gateway.add_argument("--provider", choices=sorted(PROVIDERS), help="blob store provider")
    gateway.add_argument("--token-life", type=int, metavar="SECONDS", help="session token lifetime")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SwiftGateConfig:
    """Load the configuration file and apply command-line overrides.

    The result is validated again so overrides obey the same constraints as
    the file (a non-positive ``--token-life`` is rejected).

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value is out of range.
    """
    config = load_config(args.config)
    for dest, (section, field) in _OVERRIDES.items():
        value = getattr(args, dest)
        if value is not None:
            setattr(getattr(config, section), field, value)
    return SwiftGateConfig.model_validate(config.model_dump())


def main(argv: list[str] | None = None) -> None:
    """Run the gateway under uvicorn until it is stopped."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = build_config(args)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except (yaml.YAMLError, ValidationError) as exc:
        logger.error("Invalid configuration in %s: %s", args.config, exc)
        sys.exit(1)

    configure_logging(level=config.server.log_level, fmt=config.server.log_format)

    try:
        app = create_app(config)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    logger.info(
        "Starting swiftgate on %s:%d (provider=%s, token_life=%ds)",
        config.server.host,
        config.server.port,
        config.provider.kind,
        config.auth.token_life,
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,
        log_level=config.server.log_level.lower(),
        access_log=False,
        timeout_graceful_shutdown=config.server.shutdown_timeout,
        timeout_keep_alive=5,
    )


if __name__ == "__main__":
    main()
