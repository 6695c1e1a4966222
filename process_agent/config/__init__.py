"""Layered configuration of the process agent."""

from .blacklist import compile_blacklist, is_blacklisted
from .legacy import LegacyConfigFile, load_legacy_config
from .resolver import ConfigResolver
from .settings import AgentConfig, WindowsConfig, default_settings
from .structured import StructuredAgentConfig, load_structured_config
from .types import Affirmative, parse_affirmative

__all__ = [
    "Affirmative",
    "AgentConfig",
    "ConfigResolver",
    "LegacyConfigFile",
    "StructuredAgentConfig",
    "WindowsConfig",
    "compile_blacklist",
    "default_settings",
    "is_blacklisted",
    "load_legacy_config",
    "load_structured_config",
    "parse_affirmative",
]
