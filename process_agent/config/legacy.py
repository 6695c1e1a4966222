"""Legacy key-value configuration file (``datadog.conf`` style INI).

Agent-wide settings live in the ``[Main]`` section while everything
specific to the process agent lives in ``[process.config]``.
"""

import configparser
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

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

MAIN_SECTION = "Main"
PROCESS_SECTION = "process.config"


class LegacyConfigFile:
    """Typed accessors with default fallbacks over an INI file."""

    def __init__(self, parser: configparser.ConfigParser, path: str = ""):
        self._parser = parser
        self.path = path

    @classmethod
    def from_string(cls, text: str, path: str = "<string>") -> "LegacyConfigFile":
        """Parse INI content.

        Raises:
            ConfigSourceError: If the content is not valid INI
        """
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read_string(text, source=path)
        except configparser.Error as e:
            raise ConfigSourceError(f"parse error in '{path}': {e}") from e
        return cls(parser, path)

    def has_section(self, section: str) -> bool:
        return self._parser.has_section(section)

    def get(self, section: str, key: str) -> str | None:
        """Raw value, None if the section or key is missing."""
        value = self._parser.get(section, key, fallback=None)
        if value is None:
            return None
        return value.strip()

    def get_default(self, section: str, key: str, default: str) -> str:
        value = self.get(section, key)
        return value if value else default

    def get_int_default(self, section: str, key: str, default: int) -> int:
        value = self.get(section, key)
        if not value:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s.%s: '%s', using %d", section, key, value, default
            )
            return default

    def get_bool(self, section: str, key: str, default: bool) -> bool:
        value = self.get(section, key)
        if not value:
            return default
        state = configparser.ConfigParser.BOOLEAN_STATES.get(value.lower())
        if state is None:
            logger.warning(
                "Invalid boolean for %s.%s: '%s', using %s", section, key, value, default
            )
            return default
        return state

    def get_duration_default(
        self, section: str, key: str, unit: timedelta, default: timedelta
    ) -> timedelta:
        """Duration expressed as a number of ``unit``."""
        value = self.get(section, key)
        if not value:
            return default
        try:
            return unit * float(value)
        except ValueError:
            logger.warning(
                "Invalid duration for %s.%s: '%s', using %s", section, key, value, default
            )
            return default

    def get_str_list_default(
        self, section: str, key: str, sep: str, default: list[str]
    ) -> list[str]:
        value = self.get(section, key)
        if not value:
            return default
        return split_list(value, sep)


def load_legacy_config(path: str | Path) -> LegacyConfigFile | None:
    """Load the legacy configuration file if it exists.

    Returns:
        None when the file does not exist.

    Raises:
        ConfigSourceError: If the file exists but cannot be read or parsed
    """
    path = Path(path)
    if not path.exists():
        logger.debug("Legacy configuration file '%s' not found", path)
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigSourceError(f"read error: {e}") from e
    return LegacyConfigFile.from_string(text, str(path))


def merge_legacy_config(cfg: dict[str, Any], ini: LegacyConfigFile) -> None:
    """Apply the legacy configuration file on top of ``cfg``."""
    if not ini.has_section(MAIN_SECTION):
        logger.debug("No [%s] section in '%s', skipping", MAIN_SECTION, ini.path)
        return

    api_key = ini.get(MAIN_SECTION, "api_key")
    if api_key:
        cfg["api_key"] = first_value(api_key)
    cfg["log_level"] = ini.get_default(MAIN_SECTION, "log_level", cfg["log_level"]).lower()

    try:
        cfg["proxy"] = proxy_from_settings(
            lambda key: ini.get(MAIN_SECTION, f"proxy_{key}"), cfg["proxy"]
        )
    except ProxyConfigError as e:
        logger.error("error parsing proxy settings, keeping previous proxy: %s", e)

    # only disable the agent when it is explicitly disabled
    enabled = parse_affirmative(ini.get(MAIN_SECTION, "process_agent_enabled"))
    if enabled is Affirmative.TRUE:
        cfg["enabled"] = True
        cfg["enabled_checks"] = list(constants.PROCESS_CHECKS)
    elif enabled is Affirmative.FALSE:
        cfg["enabled"] = False

    cfg["statsd_host"] = ini.get_default(MAIN_SECTION, "bind_host", cfg["statsd_host"])
    # shorthand for `bind_host: 0.0.0.0`
    if parse_affirmative(ini.get(MAIN_SECTION, "non_local_traffic")) is Affirmative.TRUE:
        cfg["statsd_host"] = "0.0.0.0"
    cfg["statsd_port"] = ini.get_int_default(MAIN_SECTION, "dogstatsd_port", cfg["statsd_port"])

    ns = PROCESS_SECTION
    endpoint = ini.get(ns, "endpoint")
    if endpoint:
        try:
            cfg["api_endpoint"] = parse_endpoint(endpoint)
        except EndpointError as e:
            logger.warning("Ignoring endpoint from '%s': %s", ini.path, e)

    queue_size = ini.get_int_default(ns, "queue_size", cfg["queue_size"])
    if queue_size > 0:
        cfg["queue_size"] = queue_size
    max_proc_fds = ini.get_int_default(ns, "max_proc_fds", cfg["max_proc_fds"])
    if max_proc_fds > 0:
        cfg["max_proc_fds"] = max_proc_fds
    cfg["allow_real_time"] = ini.get_bool(ns, "allow_real_time", cfg["allow_real_time"])
    cfg["log_file"] = ini.get_default(ns, "log_file", cfg["log_file"])
    cfg["agent_py"] = ini.get_default(ns, "dd_agent_py", cfg["agent_py"])
    cfg["agent_py_env"] = ini.get_str_list_default(ns, "dd_agent_py_env", ",", cfg["agent_py_env"])

    blacklist = ini.get_str_list_default(ns, "blacklist", ",", [])
    if blacklist:
        cfg["blacklist"] = compile_blacklist(blacklist)

    scrubber = cfg["scrubber"]
    scrubber.enabled = ini.get_bool(ns, "scrub_args", scrubber.enabled)
    scrubber.add_custom_words(ini.get_str_list_default(ns, "custom_sensitive_words", ",", []))
    scrubber.strip_all_arguments = ini.get_bool(
        ns, "strip_proc_arguments", scrubber.strip_all_arguments
    )

    batch_size = ini.get_int_default(ns, "proc_limit", cfg["max_per_message"])
    if batch_size > constants.MAX_MESSAGE_BATCH:
        logger.warning(
            "Overriding the configured item count per message limit because it exceeds maximum"
        )
        batch_size = constants.MAX_MESSAGE_BATCH
    if batch_size > 0:
        cfg["max_per_message"] = batch_size

    intervals = cfg["check_intervals"]
    for check_name, current in list(intervals.items()):
        interval = ini.get_duration_default(
            ns, f"{check_name}_interval", timedelta(seconds=1), current
        )
        if interval != current:
            logger.info("Overriding check interval for %s to %s", check_name, interval)
            intervals[check_name] = interval

    cfg["collect_docker_network"] = ini.get_bool(
        ns, "collect_docker_network", cfg["collect_docker_network"]
    )
    cfg["container_blacklist"] = ini.get_str_list_default(
        ns, "container_blacklist", ",", cfg["container_blacklist"]
    )
    cfg["container_whitelist"] = ini.get_str_list_default(
        ns, "container_whitelist", ",", cfg["container_whitelist"]
    )
    cfg["container_cache_duration"] = ini.get_duration_default(
        ns, "container_cache_duration", timedelta(seconds=1), cfg["container_cache_duration"]
    )

    windows = cfg["windows"]
    windows["args_refresh_interval"] = ini.get_int_default(
        ns, "windows_args_refresh_interval", windows["args_refresh_interval"]
    )
    windows["add_new_args"] = ini.get_bool(ns, "windows_add_new_args", windows["add_new_args"])
