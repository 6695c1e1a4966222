"""Tests for process_agent.main module."""

import json
import logging
import re
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from rich.logging import RichHandler

from process_agent.errors import ConfigSourceError
from process_agent.logger import configure_logging, to_logging_level
from process_agent.main import main, parse_args, scrub_report


class TestParseArgs:
    """Test cases for argument parsing."""

    def test_defaults(self):
        """Test the default arguments."""
        args = parse_args([])

        assert args.config == Path("/etc/dd-agent/datadog.conf")
        assert args.yaml_config == Path("/etc/datadog-agent/datadog.yaml")
        assert args.rich_logs is False
        assert args.print_config_and_exit is False
        assert args.scrub_cmdline is None

    def test_all_options(self):
        """Test parsing all possible arguments."""
        args = parse_args(
            [
                "--config",
                "/path/to/datadog.conf",
                "--yaml-config",
                "/path/to/datadog.yaml",
                "--rich-logs",
                "--print-config-and-exit",
                "--scrub-cmdline",
                "mysql --password=abc",
            ]
        )

        assert args.config == Path("/path/to/datadog.conf")
        assert args.yaml_config == Path("/path/to/datadog.yaml")
        assert args.rich_logs is True
        assert args.print_config_and_exit is True
        assert args.scrub_cmdline == "mysql --password=abc"

    def test_argv_from_sys(self):
        """Test that sys.argv is used when no arguments are given."""
        with patch("sys.argv", ["process-agent-config", "--rich-logs"]):
            args = parse_args()

        assert args.rich_logs is True


class TestConfigureLogging:
    """Test cases for logging configuration."""

    @patch("process_agent.logger.logging.basicConfig")
    def test_console_only(self, mock_basic_config):
        """Test logging configuration without a log file."""
        configure_logging("debug")

        mock_basic_config.assert_called_once()
        call_args = mock_basic_config.call_args
        assert call_args[1]["level"] == logging.DEBUG
        assert call_args[1]["force"] is True
        (handler,) = call_args[1]["handlers"]
        assert isinstance(handler, logging.StreamHandler)

    @patch("process_agent.logger.logging.basicConfig")
    def test_rich_console(self, mock_basic_config):
        """Test logging configuration with rich formatting."""
        configure_logging("info", use_rich=True)

        (handler,) = mock_basic_config.call_args[1]["handlers"]
        assert isinstance(handler, RichHandler)

    @patch("process_agent.logger.logging.basicConfig")
    def test_log_file_without_console(self, mock_basic_config, temp_dir):
        """Test logging only to a file."""
        configure_logging("warn", log_file=str(temp_dir / "agent.log"), log_to_console=False)

        (handler,) = mock_basic_config.call_args[1]["handlers"]
        assert isinstance(handler, logging.FileHandler)
        assert mock_basic_config.call_args[1]["level"] == logging.WARNING
        handler.close()

    @patch("process_agent.logger.logging.basicConfig")
    def test_unwritable_log_file_falls_back_to_console(self, mock_basic_config, temp_dir):
        """Test that a log file that cannot be opened falls back to the console."""
        with patch("process_agent.logger.logger") as mock_logger:
            configure_logging(
                "info", log_file=str(temp_dir / "missing" / "agent.log"), log_to_console=False
            )

        (handler,) = mock_basic_config.call_args[1]["handlers"]
        assert isinstance(handler, logging.StreamHandler)
        assert not isinstance(handler, logging.FileHandler)
        mock_logger.warning.assert_called_once()

    @pytest.mark.parametrize(
        "level,expected",
        [
            ("trace", logging.DEBUG),
            ("WARN", logging.WARNING),
            ("critical", logging.CRITICAL),
            ("unknown", logging.INFO),
        ],
    )
    def test_to_logging_level(self, level, expected):
        assert to_logging_level(level) == expected


class TestMain:
    """Test cases for main function."""

    @pytest.fixture
    def argv(self, temp_dir):
        """Arguments pointing at configuration files that do not exist."""
        return [
            "--config",
            str(temp_dir / "datadog.conf"),
            "--yaml-config",
            str(temp_dir / "datadog.yaml"),
        ]

    @pytest.fixture(autouse=True)
    def mock_configure_logging(self):
        with patch("process_agent.main.configure_logging") as mock:
            yield mock

    def test_main_enabled(self, argv, mock_configure_logging):
        """Test a successful resolution of an enabled agent."""
        environ = {
            "DD_HOSTNAME": "test-host",
            "DD_API_KEY": "abc",
            "DD_PROCESS_AGENT_ENABLED": "true",
            "DD_LOG_LEVEL": "debug",
        }
        with patch("process_agent.main.environ", environ):
            result = main(argv)

        assert result == 0
        assert mock_configure_logging.call_count == 2
        assert mock_configure_logging.call_args[0][0] == "debug"

    def test_main_disabled(self, argv):
        """Test that a disabled agent exits successfully."""
        with patch("process_agent.main.environ", {"DD_HOSTNAME": "test-host"}):
            assert main(argv) == 0

    def test_main_missing_api_key(self, argv):
        """Test that an enabled agent without API key is an error."""
        environ = {"DD_HOSTNAME": "test-host", "DD_PROCESS_AGENT_ENABLED": "true"}
        with patch("process_agent.main.environ", environ):
            assert main(argv) == 1

    def test_main_with_config_files(self, temp_dir, capsys):
        """Test main function with both configuration files."""
        legacy = temp_dir / "datadog.conf"
        legacy.write_text("[Main]\napi_key = legacy_key\nprocess_agent_enabled = true\n")
        yaml_config = temp_dir / "datadog.yaml"
        yaml_config.write_text("api_key: yaml_key_12345\n")

        with patch("process_agent.main.environ", {"DD_HOSTNAME": "test-host"}):
            result = main(
                [
                    "--config",
                    str(legacy),
                    "--yaml-config",
                    str(yaml_config),
                    "--print-config-and-exit",
                ]
            )

        assert result == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["api_key"] == "*****12345"
        assert summary["hostname"] == "test-host"
        assert summary["enabled"] is True

    def test_main_malformed_config(self, temp_dir):
        """Test that a malformed configuration file is an error."""
        yaml_config = temp_dir / "datadog.yaml"
        yaml_config.write_text("api_key: [unclosed\n")

        with patch("process_agent.main.environ", {"DD_HOSTNAME": "test-host"}):
            result = main(["--yaml-config", str(yaml_config), "--config", str(temp_dir / "x")])

        assert result == 1

    @patch("process_agent.main.resolve_config")
    def test_main_config_error(self, mock_resolve_config, argv):
        """Test main function with a configuration error."""
        mock_resolve_config.side_effect = ConfigSourceError("read error")

        assert main(argv) == 1

    def test_main_invalid_settings(self, argv, caplog):
        """Test that settings failing validation are reported."""
        environ = {"DD_HOSTNAME": "test-host", "DD_DOGSTATSD_PORT": "-1"}
        with patch("process_agent.main.environ", environ):
            result = main(argv)

        assert result == 1
        assert "statsd_port" in caplog.text

    def test_main_scrub_cmdline(self, argv, capsys):
        """Test printing a scrubbed command line."""
        environ = {"DD_HOSTNAME": "test-host", "DD_CUSTOM_SENSITIVE_WORDS": "consul_token"}
        with patch("process_agent.main.environ", environ):
            result = main(argv + ["--scrub-cmdline", "consul --consul_token abc"])

        assert result == 0
        report = json.loads(capsys.readouterr().out)
        assert report == {
            "cmdline": ["consul", "--consul_token", "********"],
            "blacklisted": False,
        }


def test_scrub_report_blacklisted():
    """Test that blacklisted command lines are reported as such."""
    config = Mock()
    config.scrubber.redact.return_value = ["getty"]
    config.blacklist = [re.compile("getty")]

    assert scrub_report(config, ["getty"]) == {"cmdline": ["getty"], "blacklisted": True}
