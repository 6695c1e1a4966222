"""Layered resolution of the agent configuration.

Precedence, lowest first: hard-coded defaults, the legacy INI file, the
structured YAML file and finally environment variables. Each layer only
overrides the settings it explicitly sets.
"""

import logging
import os
from typing import Any, Iterable, Mapping

from process_agent.config.environment import merge_environment_variables
from process_agent.config.legacy import LegacyConfigFile, merge_legacy_config
from process_agent.config.settings import AgentConfig, default_settings
from process_agent.config.structured import (
    StructuredAgentConfig,
    merge_structured_config,
)
from process_agent.hostname import HostnameResolver
from process_agent.scrubber import compile_sensitive_patterns

logger = logging.getLogger(__name__)

# Python-style level names used by older agents
LOG_LEVEL_ALIASES = {"warning": "warn"}


def normalize_log_level(level: str) -> str:
    level = level.strip().lower()
    return LOG_LEVEL_ALIASES.get(level, level)


class ConfigResolver:
    """Builds the single authoritative ``AgentConfig`` from every source."""

    def __init__(self, hostname_resolver: HostnameResolver | None = None):
        """Initialize the resolver.

        Args:
            hostname_resolver: Resolves the hostname when no source sets it
        """
        self.hostname_resolver = hostname_resolver or HostnameResolver()
        self._custom_words: list[str] = []

    def add_custom_words(self, words: Iterable[str]) -> None:
        """Register sensitive words for every configuration resolved from now on.

        Invalid words are rejected right away, with a warning.
        """
        words = list(words)
        compile_sensitive_patterns(words)
        self._custom_words.extend(words)

    def resolve(
        self,
        defaults: Mapping[str, Any] | None = None,
        legacy: LegacyConfigFile | None = None,
        structured: StructuredAgentConfig | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> AgentConfig:
        """Resolve the configuration.

        Args:
            defaults: Draft from ``default_settings``, built when omitted
            legacy: Parsed legacy INI file, if any
            structured: Parsed structured YAML file, if any
            environ: Process environment, defaults to ``os.environ``

        Returns:
            The resolved, immutable configuration.

        Raises:
            HostnameError: If no hostname can be determined
            pydantic.ValidationError: If the merged settings are invalid
        """
        if environ is None:
            environ = os.environ
        cfg = self._draft(defaults, environ)

        if legacy is not None:
            logger.debug("Merging legacy configuration from '%s'", legacy.path)
            merge_legacy_config(cfg, legacy)

        if structured is not None:
            logger.debug("Merging structured configuration")
            merge_structured_config(cfg, structured)

        merge_environment_variables(cfg, environ)

        if self._custom_words:
            cfg["scrubber"].add_custom_words(self._custom_words)

        self._post_process(cfg, environ)
        return AgentConfig.model_validate(cfg)

    def _draft(
        self, defaults: Mapping[str, Any] | None, environ: Mapping[str, str]
    ) -> dict[str, Any]:
        if defaults is None:
            return default_settings(environ)

        # never share mutable state with the caller's defaults
        cfg = dict(defaults)
        cfg["scrubber"] = cfg["scrubber"].copy()
        cfg["check_intervals"] = dict(cfg["check_intervals"])
        cfg["windows"] = dict(cfg["windows"])
        return cfg

    def _post_process(self, cfg: dict[str, Any], environ: Mapping[str, str]) -> None:
        cfg["log_level"] = normalize_log_level(cfg["log_level"])

        if not cfg["hostname"]:
            cfg["hostname"] = self.hostname_resolver.resolve(
                agent_bin=cfg["agent_bin"],
                agent_py=cfg["agent_py"],
                agent_env=cfg["agent_py_env"],
                environ=environ,
            )

        if cfg["proxy"] is not None:
            cfg["transport"] = cfg["transport"].model_copy(update={"proxy": cfg["proxy"]})
