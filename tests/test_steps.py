"""Tests for custom step execution."""

import pytest

from appdeploy.config import StepConfig
from appdeploy.core.exceptions import DeploymentError
from appdeploy.core.logging import Severity
from appdeploy.deploy.models import InstallerAction
from appdeploy.deploy.steps import StepRunner


@pytest.fixture
def packaged_config(mock_config, tmp_path):
    return mock_config.model_copy(update={"package_dir": str(tmp_path / "package")})


class TestStepRunner:
    """Tests for StepRunner."""

    def test_expands_placeholders(self, packaged_config, make_toolkit, tmp_path, log_dir, monkeypatch):
        monkeypatch.setenv("WIDGET_HOME", "/opt/widget")
        runner = StepRunner(make_toolkit(packaged_config))

        assert runner.expand("{PACKAGE_DIR}/files") == f"{tmp_path / 'package'}/files"
        assert runner.expand("{LOG_DIR}/x.log") == f"{log_dir}/x.log"
        assert runner.expand("$WIDGET_HOME/bin") == "/opt/widget/bin"

    def test_process_step(self, packaged_config, make_toolkit, tmp_path):
        toolkit = make_toolkit(packaged_config)
        step = StepConfig(name="register", path="{PACKAGE_DIR}/register.exe", args=("/s",))

        assert StepRunner(toolkit).run(step) == 0
        assert toolkit.calls_to("execute_process") == [(f"{tmp_path / 'package'}/register.exe", ("/s",))]

    def test_installer_step(self, packaged_config, make_toolkit):
        toolkit = make_toolkit(packaged_config, installer_exit_code=3010)
        step = StepConfig(name="runtime", type="installer", path="vcredist.msi", action="Install")

        assert StepRunner(toolkit).run(step) == 3010
        action, path, args, transform = toolkit.calls_to("execute_installer")[0]
        assert action == InstallerAction.INSTALL
        assert path == "vcredist.msi"
        assert transform is None

    def test_file_steps(self, packaged_config, make_toolkit, log_dir):
        toolkit = make_toolkit(packaged_config)
        runner = StepRunner(toolkit)

        runner.run(StepConfig(name="folder", type="create_folder", path="{LOG_DIR}/widget"))
        runner.run(StepConfig(name="license", type="copy_file", source="license.lic", destination="{LOG_DIR}/widget"))

        assert toolkit.operations == ["create_folder", "copy_file"]
        assert toolkit.calls_to("copy_file") == [("license.lic", f"{log_dir}/widget")]

    def test_log_step(self, packaged_config, make_toolkit, caplog):
        toolkit = make_toolkit(packaged_config)

        with caplog.at_level("WARNING", logger="appdeploy"):
            StepRunner(toolkit).run(
                StepConfig(name="note", type="log", message="Legacy version detected", severity=Severity.WARNING.value)
            )

        assert "Legacy version detected" in caplog.text

    def test_failure_propagates(self, packaged_config, make_toolkit):
        toolkit = make_toolkit(packaged_config, fail_on={"create_folder"})
        with pytest.raises(DeploymentError, match="create_folder failed"):
            StepRunner(toolkit).run(StepConfig(name="folder", type="create_folder", path="C:/Widget"))

    def test_continue_on_error(self, packaged_config, make_toolkit):
        toolkit = make_toolkit(packaged_config, fail_on={"create_folder"})
        step = StepConfig(name="folder", type="create_folder", path="C:/Widget", continue_on_error=True)
        assert StepRunner(toolkit).run(step) == 0
