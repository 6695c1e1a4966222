"""Resolution of the host identity reported by the agent.

The hostname is taken, in order, from an explicit override, the task
metadata endpoint on serverless container platforms, the core agent's own
hostname command, and finally the operating system.
"""

import logging
import os
import socket
import subprocess
from typing import Mapping, Protocol, Sequence

import requests

from process_agent import constants
from process_agent.errors import ExternalToolError, HostnameError, MetadataError

logger = logging.getLogger(__name__)

LEGACY_HOSTNAME_SCRIPT = "from utils.hostname import get_hostname; print(get_hostname())"


class ExternalHostnameProvider(Protocol):
    """Runs an external executable that prints the hostname."""

    def resolve_external_hostname(
        self,
        binary: str,
        args: Sequence[str],
        env: Mapping[str, str],
        timeout: float,
    ) -> str: ...


class SubprocessHostnameProvider:
    """Default provider backed by ``subprocess.run``."""

    def resolve_external_hostname(
        self,
        binary: str,
        args: Sequence[str],
        env: Mapping[str, str],
        timeout: float,
    ) -> str:
        try:
            completed = subprocess.run(
                [binary, *args],
                env=dict(env),
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                f"'{binary}' timed out after {timeout} seconds"
            ) from e
        except OSError as e:
            raise ExternalToolError(f"could not run '{binary}': {e}") from e

        if completed.returncode != 0:
            raise ExternalToolError(
                f"'{binary}' exited with code {completed.returncode}: {completed.stderr.strip()}"
            )

        hostname = completed.stdout.strip()
        if not hostname:
            raise ExternalToolError(f"'{binary}' returned an empty hostname: {completed.stderr.strip()}")
        return hostname


class TaskMetadataClient:
    """Reads the task identifier from the container task metadata endpoint."""

    def __init__(
        self,
        url: str = constants.TASK_METADATA_URL,
        timeout: float = constants.TASK_METADATA_TIMEOUT,
    ):
        self.url = url
        self.timeout = timeout

    def get_task_arn(self) -> str:
        """Get the ARN of the running task.

        Raises:
            MetadataError: If the endpoint cannot be reached or has no task ARN
        """
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            task_arn = response.json()["TaskARN"]
        except requests.RequestException as e:
            raise MetadataError(f"cannot query task metadata: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise MetadataError("task metadata has no TaskARN") from e

        if not task_arn:
            raise MetadataError("task metadata has an empty TaskARN")
        return task_arn


def is_fargate_instance(environ: Mapping[str, str]) -> bool:
    return bool(environ.get("ECS_FARGATE"))


def merge_environment(
    overrides: Sequence[str], environ: Mapping[str, str]
) -> dict[str, str]:
    """Merge ``KEY=VALUE`` overrides on top of the process environment."""
    env = dict(environ)
    for entry in overrides:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            logger.warning("Ignoring malformed environment entry '%s'", entry)
            continue
        env[key] = value
    return env


class HostnameResolver:
    """Resolves the host identity through an ordered fallback chain."""

    def __init__(
        self,
        provider: ExternalHostnameProvider | None = None,
        metadata_client: TaskMetadataClient | None = None,
        timeout: float = constants.HOSTNAME_COMMAND_TIMEOUT,
    ):
        """Initialize the resolver.

        Args:
            provider: Runs the external hostname tool
            metadata_client: Task metadata client used on serverless platforms
            timeout: Maximum time to wait for the external tool, in seconds
        """
        self.provider = provider or SubprocessHostnameProvider()
        self.metadata_client = metadata_client or TaskMetadataClient()
        self.timeout = timeout

    def resolve(
        self,
        override: str = "",
        agent_bin: str = "",
        agent_py: str = "",
        agent_env: Sequence[str] = (),
        environ: Mapping[str, str] | None = None,
    ) -> str:
        """Resolve the hostname.

        Args:
            override: Explicit hostname, returned as-is when set
            agent_bin: Core agent binary, preferred over the interpreter
            agent_py: Interpreter running the legacy hostname script
            agent_env: ``KEY=VALUE`` entries passed to the external tool
            environ: Process environment, defaults to ``os.environ``

        Returns:
            The hostname, never empty.

        Raises:
            HostnameError: If even the operating system hostname is unavailable
        """
        if override:
            return override

        if environ is None:
            environ = os.environ

        if is_fargate_instance(environ):
            try:
                # tasks have no host concept, the task ARN identifies them
                return f"fargate_task:{self.metadata_client.get_task_arn()}"
            except MetadataError as e:
                logger.error("Failed to retrieve Fargate task metadata: %s", e)

        hostname = self._external_hostname(agent_bin, agent_py, agent_env, environ)
        if hostname:
            return hostname
        return self._os_hostname()

    def _external_hostname(
        self,
        agent_bin: str,
        agent_py: str,
        agent_env: Sequence[str],
        environ: Mapping[str, str],
    ) -> str | None:
        if agent_bin:
            binary, args = agent_bin, ["hostname"]
        elif agent_py:
            binary, args = agent_py, ["-c", LEGACY_HOSTNAME_SCRIPT]
        else:
            logger.info("No agent configured to provide the hostname, using the OS hostname")
            return None

        env = merge_environment(agent_env, environ)
        try:
            return self.provider.resolve_external_hostname(binary, args, env, self.timeout)
        except ExternalToolError as e:
            logger.info("error retrieving agent hostname, falling back to OS hostname: %s", e)
            return None

    def _os_hostname(self) -> str:
        try:
            hostname = socket.gethostname()
        except OSError as e:
            raise HostnameError(f"cannot determine the OS hostname: {e}") from e
        if not hostname:
            raise HostnameError("the OS reported an empty hostname")
        return hostname
