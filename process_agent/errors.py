"""Errors raised while resolving the agent configuration."""


class ConfigError(Exception):
    """Base class for configuration resolution errors."""


class ConfigSourceError(ConfigError):
    """Exception raised when a configuration file exists but cannot be read or parsed."""


class FieldInvalidError(ConfigError):
    """Exception raised when a single configuration value is malformed."""


class ProxyConfigError(FieldInvalidError):
    """Exception raised when proxy settings do not form a valid URL."""


class EndpointError(FieldInvalidError):
    """Exception raised when a submission endpoint is not a valid URL."""


class ExternalToolError(Exception):
    """Exception raised when the external hostname tool fails."""


class HostnameError(ConfigError):
    """Exception raised when no hostname can be determined at all."""


class MetadataError(Exception):
    """Exception raised when the task metadata endpoint cannot be queried."""
