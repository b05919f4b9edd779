"""Configuration loading and Pydantic models for swiftgate."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: str = "text"
    shutdown_timeout: int = 30


class AuthConfig(BaseModel):
    """Session token configuration."""

    token_life: int = Field(default=86400, gt=0)


class ProviderConfig(BaseModel):
    """Backing blob store provider configuration."""

    kind: str = "transient"
    filesystem_root: str = "./data/containers"
    aws_region: str = "us-east-1"
    aws_endpoint_url: str = ""
    aws_use_path_style: bool = False


class ObservabilityConfig(BaseModel):
    """Metrics and health probe toggles."""

    metrics: bool = True
    health_check: bool = True


class SwiftGateConfig(BaseModel):
    """Top-level swiftgate configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def _parse_server(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the server section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "host": data.get("host", "0.0.0.0"),
        "port": data.get("port", 8080),
        "log_level": data.get("log_level", "INFO"),
        "log_format": data.get("log_format", "text"),
        "shutdown_timeout": data.get("shutdown_timeout", 30),
    }


def _parse_auth(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the auth section from YAML data."""
    if data is None:
        return {}
    return {"token_life": data.get("token_life", 86400)}


def _parse_provider(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the provider section from YAML data.

    Handles nested structure: provider.filesystem.root_dir -> filesystem_root,
    provider.aws.region -> aws_region, etc.
    """
    if data is None:
        return {}

    result: dict[str, Any] = {"kind": data.get("kind", "transient")}

    fs_section = data.get("filesystem")
    if isinstance(fs_section, dict):
        result["filesystem_root"] = fs_section.get("root_dir", "./data/containers")

    aws_section = data.get("aws")
    if isinstance(aws_section, dict):
        result["aws_region"] = aws_section.get("region", "us-east-1")
        result["aws_endpoint_url"] = aws_section.get("endpoint_url", "")
        result["aws_use_path_style"] = aws_section.get("use_path_style", False)

    return result


def _parse_observability(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the observability section from YAML data."""
    if data is None:
        return {}
    return {
        "metrics": data.get("metrics", True),
        "health_check": data.get("health_check", True),
    }


def load_config(path: Path) -> SwiftGateConfig:
    """Load a SwiftGateConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated SwiftGateConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value is out of range.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return SwiftGateConfig(
        server=ServerConfig(**_parse_server(raw.get("server"))),
        auth=AuthConfig(**_parse_auth(raw.get("auth"))),
        provider=ProviderConfig(**_parse_provider(raw.get("provider"))),
        observability=ObservabilityConfig(**_parse_observability(raw.get("observability"))),
    )
