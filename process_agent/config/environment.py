"""Environment variable overrides, applied after every configuration file."""

import logging
from datetime import timedelta
from typing import Any, Mapping

from process_agent import constants
from process_agent.config.settings import parse_endpoint
from process_agent.config.types import (
    Affirmative,
    first_value,
    parse_affirmative,
    split_list,
)
from process_agent.errors import EndpointError, ProxyConfigError
from process_agent.proxy import proxy_from_settings

logger = logging.getLogger(__name__)


def dual_env(environ: Mapping[str, str], preferred: str, legacy: str) -> tuple[str, str]:
    """Value of ``preferred``, or of ``legacy`` when the former is absent.

    Returns:
        Tuple of (variable name, value), the value being empty when neither is set.
    """
    if environ.get(preferred):
        return preferred, environ[preferred]
    if environ.get(legacy):
        return legacy, environ[legacy]
    return preferred, ""


def _int_env(environ: Mapping[str, str], name: str) -> int | None:
    value = environ.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Failed to parse %s: '%s' is not an integer", name, value)
        return None


def merge_environment_variables(cfg: dict[str, Any], environ: Mapping[str, str]) -> None:
    """Apply environment variable overrides on top of ``cfg``."""
    enabled = parse_affirmative(environ.get("DD_PROCESS_AGENT_ENABLED"))
    if enabled is Affirmative.TRUE:
        cfg["enabled"] = True
        cfg["enabled_checks"] = list(constants.PROCESS_CHECKS)
    elif enabled is Affirmative.FALSE:
        cfg["enabled"] = False

    if hostname := environ.get("DD_HOSTNAME"):
        logger.info("overriding hostname from env DD_HOSTNAME value")
        cfg["hostname"] = hostname

    name, api_key = dual_env(environ, "DD_API_KEY", "API_KEY")
    if api_key:
        logger.info("overriding API key from env %s value", name)
        cfg["api_key"] = first_value(api_key)

    _, log_level = dual_env(environ, "DD_LOG_LEVEL", "LOG_LEVEL")
    if log_level:
        cfg["log_level"] = log_level.lower()

    _, log_to_console = dual_env(environ, "DD_LOGS_STDOUT", "LOG_TO_CONSOLE")
    state = parse_affirmative(log_to_console)
    if state is not Affirmative.UNSET:
        cfg["log_to_console"] = state is Affirmative.TRUE

    try:
        cfg["proxy"] = proxy_from_settings(
            lambda key: environ.get(f"PROXY_{key.upper()}"), cfg["proxy"]
        )
    except ProxyConfigError as e:
        logger.error("error parsing proxy settings from env, keeping previous proxy: %s", e)

    if url := environ.get("DD_PROCESS_AGENT_URL"):
        try:
            cfg["api_endpoint"] = parse_endpoint(url)
            logger.info("overriding API endpoint from env")
        except EndpointError as e:
            logger.warning("DD_PROCESS_AGENT_URL is invalid: %s", e)

    # Process arguments scrubbing
    scrubber = cfg["scrubber"]
    scrub_args = parse_affirmative(environ.get("DD_SCRUB_ARGS"))
    if scrub_args is not Affirmative.UNSET:
        scrubber.enabled = scrub_args is Affirmative.TRUE
    if words := environ.get("DD_CUSTOM_SENSITIVE_WORDS"):
        scrubber.add_custom_words(split_list(words))
    if parse_affirmative(environ.get("DD_STRIP_PROCESS_ARGS")) is Affirmative.TRUE:
        scrubber.strip_all_arguments = True

    if agent_py := environ.get("DD_AGENT_PY"):
        cfg["agent_py"] = agent_py
    if agent_py_env := environ.get("DD_AGENT_PY_ENV"):
        cfg["agent_py_env"] = split_list(agent_py_env)

    if (port := _int_env(environ, "DD_DOGSTATSD_PORT")) is not None:
        cfg["statsd_port"] = port
    if bind_host := environ.get("DD_BIND_HOST"):
        cfg["statsd_host"] = bind_host

    if (queue_size := _int_env(environ, "DD_PROCESS_AGENT_QUEUE_SIZE")) is not None:
        if queue_size > 0:
            cfg["queue_size"] = queue_size
    if (batch_size := _int_env(environ, "DD_PROCESS_AGENT_MAX_PER_MESSAGE")) is not None:
        if batch_size > constants.MAX_MESSAGE_BATCH:
            logger.warning(
                "Overriding the configured item count per message limit because it exceeds maximum"
            )
            batch_size = constants.MAX_MESSAGE_BATCH
        if batch_size > 0:
            cfg["max_per_message"] = batch_size

    # Containers
    if environ.get("DD_COLLECT_DOCKER_NETWORK") == "false":
        cfg["collect_docker_network"] = False
    if container_blacklist := environ.get("DD_CONTAINER_BLACKLIST"):
        cfg["container_blacklist"] = split_list(container_blacklist)
    if container_whitelist := environ.get("DD_CONTAINER_WHITELIST"):
        cfg["container_whitelist"] = split_list(container_whitelist)
    if (cache_duration := _int_env(environ, "DD_CONTAINER_CACHE_DURATION")) is not None:
        cfg["container_cache_duration"] = timedelta(seconds=cache_duration)

    if (
        refresh := _int_env(environ, "DD_WINDOWS_ARGS_REFRESH_INTERVAL")
    ) is not None:
        cfg["windows"]["args_refresh_interval"] = refresh

    # in development, not for production use
    if parse_affirmative(environ.get("DD_CONNECTIONS_CHECK")) is Affirmative.TRUE:
        if "connections" not in cfg["enabled_checks"]:
            cfg["enabled_checks"] = [*cfg["enabled_checks"], "connections"]
