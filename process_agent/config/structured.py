"""Structured YAML configuration file (``datadog.yaml``) used by newer agents."""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from process_agent import constants
from process_agent.config.blacklist import compile_blacklist
from process_agent.config.settings import parse_endpoint
from process_agent.config.types import (
    Affirmative,
    first_value,
    parse_affirmative,
    split_list,
)
from process_agent.errors import ConfigSourceError, EndpointError, ProxyConfigError
from process_agent.proxy import proxy_from_settings

logger = logging.getLogger(__name__)

# YAML key -> check name
INTERVAL_CHECKS = {
    "container": "container",
    "container_realtime": "rtcontainer",
    "process": "process",
    "process_realtime": "rtprocess",
    "connections": "connections",
}


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class IntervalsSection(_Section):
    """Check intervals in seconds, 0 or missing keeps the current value."""

    container: int = 0
    container_realtime: int = 0
    process: int = 0
    process_realtime: int = 0
    connections: int = 0


class WindowsSection(_Section):
    args_refresh_interval: int | None = None
    add_new_args: bool | None = None


class ProxySection(_Section):
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None


class ProcessSection(_Section):
    # "true" collects processes and containers, "false" only containers and
    # "disabled" turns the agent off altogether
    enabled: str | None = None
    log_file: str | None = None
    intervals: IntervalsSection = Field(default_factory=IntervalsSection)
    blacklist_patterns: list[str] | None = None
    scrub_args: bool | None = None
    custom_sensitive_words: list[str] = Field(default_factory=list)
    strip_proc_arguments: bool | None = None
    queue_size: int = 0
    max_proc_fds: int = 0
    max_per_message: int = 0
    dd_agent_bin: str | None = None
    dd_agent_env: list[str] | None = None
    process_dd_url: str | None = None
    windows: WindowsSection = Field(default_factory=WindowsSection)

    @field_validator("enabled", mode="before")
    @classmethod
    def _enabled_as_string(cls, value: Any) -> Any:
        # unquoted YAML booleans and numbers
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("custom_sensitive_words", mode="before")
    @classmethod
    def _split_words(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_list(value)
        return value


class StructuredAgentConfig(_Section):
    """Schema of the structured configuration file."""

    api_key: str | None = None
    log_level: str | None = None
    log_to_console: bool = False
    dogstatsd_port: int | None = None
    proxy: ProxySection = Field(default_factory=ProxySection)
    process_config: ProcessSection = Field(default_factory=ProcessSection)

    @field_validator("api_key", mode="before")
    @classmethod
    def _api_key_as_string(cls, value: Any) -> Any:
        # all-digit keys are read as numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def from_string(cls, text: str, path: str = "<string>") -> "StructuredAgentConfig":
        """Parse YAML content.

        Raises:
            ConfigSourceError: If the content is not valid YAML or does not
                match the schema
        """
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigSourceError(f"parse error in '{path}': {e}") from e
        if not isinstance(data, dict):
            raise ConfigSourceError(f"parse error in '{path}': expected a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigSourceError(f"invalid configuration in '{path}': {e}") from e


def load_structured_config(path: str | Path) -> StructuredAgentConfig | None:
    """Load the structured configuration file if it exists.

    Returns:
        None when the file does not exist.

    Raises:
        ConfigSourceError: If the file exists but cannot be read or parsed
    """
    path = Path(path)
    if not path.exists():
        logger.debug("Structured configuration file '%s' not found", path)
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigSourceError(f"read error: {e}") from e
    return StructuredAgentConfig.from_string(text, str(path))


def merge_structured_config(cfg: dict[str, Any], yc: StructuredAgentConfig) -> None:
    """Apply the structured configuration file on top of ``cfg``."""
    process = yc.process_config

    if yc.api_key:
        cfg["api_key"] = first_value(yc.api_key)
    if yc.log_level:
        cfg["log_level"] = yc.log_level.lower()
    if yc.log_to_console:
        cfg["log_to_console"] = True
    if yc.dogstatsd_port is not None:
        cfg["statsd_port"] = yc.dogstatsd_port

    try:
        cfg["proxy"] = proxy_from_settings(
            lambda key: getattr(yc.proxy, key), cfg["proxy"]
        )
    except ProxyConfigError as e:
        logger.error("error parsing proxy settings, keeping previous proxy: %s", e)

    enabled = parse_affirmative(process.enabled)
    if enabled is Affirmative.TRUE:
        cfg["enabled"] = True
        cfg["enabled_checks"] = list(constants.PROCESS_CHECKS)
    elif enabled is Affirmative.FALSE:
        if process.enabled.strip().lower() == "disabled":
            cfg["enabled"] = False
        else:
            cfg["enabled"] = True
            cfg["enabled_checks"] = list(constants.CONTAINER_CHECKS)

    if process.process_dd_url:
        try:
            cfg["api_endpoint"] = parse_endpoint(process.process_dd_url)
        except EndpointError as e:
            logger.warning("Ignoring process_dd_url: %s", e)

    if process.log_file:
        cfg["log_file"] = process.log_file

    for key, check_name in INTERVAL_CHECKS.items():
        seconds = getattr(process.intervals, key)
        if seconds > 0:
            logger.info("Overriding %s check interval to %ds", check_name, seconds)
            cfg["check_intervals"][check_name] = timedelta(seconds=seconds)

    if process.blacklist_patterns is not None:
        cfg["blacklist"] = compile_blacklist(process.blacklist_patterns)

    scrubber = cfg["scrubber"]
    if process.scrub_args is not None:
        scrubber.enabled = process.scrub_args
    scrubber.add_custom_words(process.custom_sensitive_words)
    if process.strip_proc_arguments:
        scrubber.strip_all_arguments = True

    if process.queue_size > 0:
        cfg["queue_size"] = process.queue_size
    if process.max_proc_fds > 0:
        cfg["max_proc_fds"] = process.max_proc_fds
    if process.max_per_message > 0:
        if process.max_per_message <= constants.MAX_MESSAGE_BATCH:
            cfg["max_per_message"] = process.max_per_message
        else:
            logger.warning(
                "Overriding the configured item count per message limit because it exceeds maximum"
            )
            cfg["max_per_message"] = constants.MAX_MESSAGE_BATCH

    # newer agents ship a binary able to print the hostname
    cfg["agent_bin"] = process.dd_agent_bin or constants.DEFAULT_AGENT_BIN
    if process.dd_agent_env is not None:
        cfg["agent_py_env"] = list(process.dd_agent_env)

    windows = process.windows
    if windows.args_refresh_interval is not None:
        cfg["windows"]["args_refresh_interval"] = windows.args_refresh_interval
    if windows.add_new_args is not None:
        cfg["windows"]["add_new_args"] = windows.add_new_args
