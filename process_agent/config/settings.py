import logging
import os
import re
from datetime import timedelta
from typing import Any, Mapping
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    NonNegativeInt,
    PositiveInt,
    field_validator,
)

from process_agent import constants
from process_agent.errors import EndpointError
from process_agent.proxy import ProxySelector
from process_agent.scrubber import DataScrubber
from process_agent.transport import OutboundTransport

logger = logging.getLogger(__name__)


def parse_endpoint(value: str) -> str:
    """Validate a submission endpoint URL.

    Raises:
        EndpointError: If the value is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(value.strip())
        _ = parts.port
    except ValueError as e:
        raise EndpointError(f"invalid endpoint URL '{value}': {e}") from e
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise EndpointError(f"invalid endpoint URL '{value}'")
    return parts.geturl()


class WindowsConfig(BaseModel):
    """Windows-specific settings, where reading process arguments is expensive."""

    model_config = ConfigDict(frozen=True)

    # Number of check runs between refreshes of command-line arguments
    args_refresh_interval: int = 15
    # Read arguments as soon as a new process is discovered
    add_new_args: bool = True

    @field_validator("args_refresh_interval")
    @classmethod
    def _disable_zero_interval(cls, value: int) -> int:
        # used with the modulo operator, so it can't be zero
        if value == 0:
            logger.warning(
                "invalid configuration: windows args refresh interval was set to 0. "
                "Disabling argument collection"
            )
            return -1
        return value


class AgentConfig(BaseModel):
    """Resolved agent configuration.

    Settings are immutable once resolved, except for the scrubber which may
    still receive custom sensitive words.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    enabled: bool
    api_key: str
    hostname: str
    api_endpoint: str
    log_file: str
    log_level: str
    log_to_console: bool
    queue_size: PositiveInt
    max_proc_fds: PositiveInt
    max_per_message: PositiveInt
    allow_real_time: bool
    blacklist: tuple[re.Pattern[str], ...]
    scrubber: DataScrubber
    proxy: ProxySelector | None
    transport: OutboundTransport

    # Agent used to resolve the hostname
    agent_py: str
    agent_bin: str
    agent_py_env: tuple[str, ...]

    statsd_host: str
    statsd_port: NonNegativeInt

    # Checks
    enabled_checks: tuple[str, ...]
    check_intervals: dict[str, timedelta]

    # Containers
    container_blacklist: tuple[str, ...]
    container_whitelist: tuple[str, ...]
    collect_docker_network: bool
    container_cache_duration: timedelta

    windows: WindowsConfig

    @field_validator("api_endpoint")
    @classmethod
    def _validate_endpoint(cls, value: str) -> str:
        try:
            return parse_endpoint(value)
        except EndpointError as e:
            raise ValueError(str(e)) from e

    @field_validator("max_per_message")
    @classmethod
    def _clamp_max_per_message(cls, value: int) -> int:
        if value > constants.MAX_MESSAGE_BATCH:
            logger.warning(
                "Overriding the configured item count per message limit because it exceeds maximum"
            )
            return constants.MAX_MESSAGE_BATCH
        return value

    @field_validator("check_intervals")
    @classmethod
    def _complete_check_intervals(
        cls, value: dict[str, timedelta]
    ) -> dict[str, timedelta]:
        return {**constants.DEFAULT_CHECK_INTERVALS, **value}

    def check_is_enabled(self, check_name: str) -> bool:
        return check_name in self.enabled_checks

    def check_interval(self, check_name: str) -> timedelta:
        """Interval for the given check, 10 seconds when unknown."""
        interval = self.check_intervals.get(check_name)
        if interval is None:
            logger.error(
                "missing check interval for '%s', you must set a default", check_name
            )
            return constants.DEFAULT_CHECK_INTERVAL
        return interval

    def summary(self) -> dict[str, Any]:
        """JSON-serializable view of the configuration with secrets masked."""
        data = self.model_dump(
            mode="json", exclude={"blacklist", "scrubber", "proxy", "transport"}
        )
        if self.api_key:
            data["api_key"] = "*" * 5 + self.api_key[-5:]
        data["check_intervals"] = {
            name: interval.total_seconds()
            for name, interval in sorted(self.check_intervals.items())
        }
        data["container_cache_duration"] = self.container_cache_duration.total_seconds()
        data["blacklist"] = [pattern.pattern for pattern in self.blacklist]
        data["proxy"] = repr(self.proxy) if self.proxy else None
        data["scrubber"] = {
            "enabled": self.scrubber.enabled,
            "strip_all_arguments": self.scrubber.strip_all_arguments,
            "sensitive_patterns": len(self.scrubber.sensitive_patterns),
        }
        return data


def is_running_in_kubernetes(environ: Mapping[str, str]) -> bool:
    return bool(environ.get("KUBERNETES_SERVICE_HOST"))


def default_settings(
    environ: Mapping[str, str] | None = None, containers_available: bool = False
) -> dict[str, Any]:
    """Hard-coded defaults as a mutable draft of ``AgentConfig`` fields.

    Args:
        environ: Process environment, defaults to ``os.environ``
        containers_available: Whether containers can be listed on this host,
            the agent is enabled by default only then

    Returns:
        A fresh draft, with its own scrubber, on every call.
    """
    if environ is None:
        environ = os.environ

    container_blacklist: list[str] = []
    if is_running_in_kubernetes(environ):
        container_blacklist = list(constants.DEFAULT_KUBE_BLACKLIST)

    return {
        "enabled": containers_available,
        "api_key": "",
        "hostname": "",
        "api_endpoint": constants.DEFAULT_ENDPOINT,
        "log_file": constants.DEFAULT_LOG_FILE,
        "log_level": "info",
        "log_to_console": False,
        "queue_size": 20,
        "max_proc_fds": 200,
        "max_per_message": constants.MAX_MESSAGE_BATCH,
        "allow_real_time": True,
        "blacklist": [],
        "scrubber": DataScrubber(),
        "proxy": None,
        "transport": OutboundTransport(),
        "agent_py": constants.DEFAULT_AGENT_PY,
        "agent_bin": "",
        "agent_py_env": [constants.DEFAULT_AGENT_PY_ENV],
        "statsd_host": "127.0.0.1",
        "statsd_port": 8125,
        "enabled_checks": list(constants.CONTAINER_CHECKS),
        "check_intervals": dict(constants.DEFAULT_CHECK_INTERVALS),
        "container_blacklist": container_blacklist,
        "container_whitelist": [],
        "collect_docker_network": True,
        "container_cache_duration": timedelta(seconds=10),
        # Windows process config, every 15 runs is 5 minutes with a 20s check
        "windows": {"args_refresh_interval": 15, "add_new_args": True},
    }
