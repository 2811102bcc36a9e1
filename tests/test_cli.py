"""Tests for CLI commands and help output."""

import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from appdeploy import __version__
from appdeploy.cli import cli
from appdeploy.core import exit_codes


def json_output(result) -> dict:
    """Parse the JSON document a command printed, skipping any log lines before it."""
    lines = result.output.splitlines()
    return json.loads("\n".join(lines[lines.index("{"):]))


class TestCLIEntryPoint:
    """Tests for main CLI entry point, flags, and options."""

    def test_help(self, cli_runner: CliRunner):
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "AppDeploy" in result.output
        assert "run" in result.output
        assert "config" in result.output

    def test_version(self, cli_runner: CliRunner):
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"appdeploy version {__version__}" in result.output

    def test_run_help(self, cli_runner: CliRunner):
        result = cli_runner.invoke(cli, ["run", "--help"])
        assert result.exit_code == 0
        assert "--allow-reboot-passthru" in result.output
        assert "60008" in result.output

    def test_invalid_config_file(self, cli_runner: CliRunner, tmp_path: Path):
        config_file = tmp_path / "appdeploy.yaml"
        config_file.write_text("app:\n  unknown_field: true\n")

        result = cli_runner.invoke(cli, ["-c", str(config_file), "config"])

        assert result.exit_code == exit_codes.CONFIG_ERROR
        assert "Configuration error" in result.output


class TestConfigCommand:
    """Tests for the config command."""

    def test_json(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-q", "--no-color", "-c", temp_config_file, "config", "-o", "json"])

        assert result.exit_code == 0
        data = json_output(result)
        assert data["app"] == "Contoso Widget 2.1.0"
        assert data["toolkit"] == "appdeploy.toolkit.local:LocalToolkit"
        assert data["features"]["chocolatey"] is False

    def test_invalid_format(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "config", "-o", "xml"])
        assert result.exit_code == exit_codes.USAGE_ERROR

    def test_configured_color_never(self, cli_runner: CliRunner, temp_config_file: str):
        config_file = Path(temp_config_file)
        config_file.write_text(config_file.read_text() + "global:\n  color: always\n")
        colored = cli_runner.invoke(cli, ["-q", "-c", temp_config_file, "config", "-o", "json"])

        config_file.write_text(config_file.read_text().replace("color: always", "color: never"))
        plain = cli_runner.invoke(cli, ["-q", "-c", temp_config_file, "config", "-o", "json"])

        assert "\x1b[" in colored.output
        assert "\x1b[" not in plain.output
        assert json_output(plain)["app"] == "Contoso Widget 2.1.0"


class TestRunCommand:
    """Tests for the run command."""

    def test_silent_install(self, cli_runner: CliRunner, temp_config_file: str, log_dir: Path):
        result = cli_runner.invoke(cli, ["-q", "-c", temp_config_file, "run", "-m", "Silent"])

        assert result.exit_code == 0, result.output
        assert (log_dir / "Contoso_Widget_2.1.0_Install.log").exists()

    def test_summary_names_log_file(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["--no-color", "-c", temp_config_file, "run", "-m", "Silent"])

        assert result.exit_code == 0, result.output
        assert "Install completed" in result.output
        assert "Deployment log:" in result.output

    def test_invalid_output_format(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "run", "-m", "Silent", "-o", "xml"])

        assert result.exit_code == exit_codes.USAGE_ERROR
        assert "Invalid format 'xml'" in result.output

    def test_disable_logging(self, cli_runner: CliRunner, temp_config_file: str, log_dir: Path):
        result = cli_runner.invoke(
            cli, ["-q", "-c", temp_config_file, "run", "-t", "uninstall", "-m", "silent", "--disable-logging"]
        )

        assert result.exit_code == 0, result.output
        assert list(log_dir.iterdir()) == []

    def test_invalid_deployment_type(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "run", "-t", "Upgrade"])
        assert result.exit_code == exit_codes.USAGE_ERROR

    def test_invalid_deploy_mode(self, cli_runner: CliRunner, temp_config_file: str):
        result = cli_runner.invoke(cli, ["-c", temp_config_file, "run", "-m", "Quiet"])
        assert result.exit_code == exit_codes.USAGE_ERROR

    def test_toolkit_load_failure(self, cli_runner: CliRunner, temp_config_file: str):
        config_file = Path(temp_config_file)
        config_file.write_text(
            config_file.read_text().replace("toolkit:\n", "toolkit:\n  class_path: vendor_toolkit.main:Toolkit\n")
        )

        with patch("appdeploy.commands.run.DeploymentOrchestrator") as orchestrator:
            result = cli_runner.invoke(cli, ["-q", "-c", temp_config_file, "run", "-m", "Silent"])

        assert result.exit_code == exit_codes.TOOLKIT_LOAD_FAILURE
        orchestrator.assert_not_called()

    def test_reboot_passthru(self, cli_runner: CliRunner, temp_config_file: str, make_toolkit):
        config_file = Path(temp_config_file)
        config_file.write_text(config_file.read_text() + "installer:\n  zero_config_path: widget.msi\n")

        def fake_load(config, deploy_mode, deployment_type, disable_logging=False, **kwargs):
            return make_toolkit(config, deploy_mode=deploy_mode, deployment_type=deployment_type, installer_exit_code=3010)

        with patch("appdeploy.commands.run.load_toolkit", side_effect=fake_load):
            plain = cli_runner.invoke(cli, ["-q", "-c", temp_config_file, "run", "-m", "Silent"])
            passthru = cli_runner.invoke(
                cli, ["-q", "-c", temp_config_file, "run", "-m", "Silent", "--allow-reboot-passthru"]
            )

        assert plain.exit_code == exit_codes.SUCCESS
        assert passthru.exit_code == exit_codes.RESTART_REQUIRED

    def test_json_summary(self, cli_runner: CliRunner, temp_config_file: str, make_toolkit):
        toolkits = []

        def fake_load(config, deploy_mode, deployment_type, disable_logging=False, **kwargs):
            toolkit = make_toolkit(
                config, deploy_mode=deploy_mode, deployment_type=deployment_type, fail_on={"show_welcome"}
            )
            toolkits.append(toolkit)
            return toolkit

        with patch("appdeploy.commands.run.load_toolkit", side_effect=fake_load):
            result = cli_runner.invoke(
                cli, ["-q", "--no-color", "-c", temp_config_file, "run", "-t", "Repair", "-m", "NonInteractive", "-o", "json"]
            )

        assert result.exit_code == exit_codes.FATAL_ERROR
        data = json_output(result)
        assert data["deployment_type"] == "Repair"
        assert data["deploy_mode"] == "NonInteractive"
        assert data["exit_code"] == exit_codes.FATAL_ERROR
        assert "show_welcome failed" in data["error"]
        assert toolkits[0].finalized_with == exit_codes.FATAL_ERROR
