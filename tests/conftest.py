"""Pytest fixtures for appdeploy tests."""

import os
from pathlib import Path
from typing import Any, Generator

import pytest
from click.testing import CliRunner

from appdeploy.config import (
    AppConfig,
    DeploymentConfig,
    EventLogConfig,
    ToolkitConfig,
)
from appdeploy.core.exceptions import DeploymentError
from appdeploy.deploy.models import DeploymentType, DeployMode, InstallerAction
from appdeploy.toolkit.base import ProcessResult, Toolkit, WelcomeOptions


class RecordingToolkit(Toolkit):
    """Toolkit that records every call instead of touching the machine."""

    def __init__(
        self,
        config: DeploymentConfig,
        deploy_mode: DeployMode = DeployMode.SILENT,
        deployment_type: DeploymentType = DeploymentType.INSTALL,
        disable_logging: bool = True,
        output: Any = None,
        fail_on: set[str] | None = None,
        installer_exit_code: int = 0,
        process_output: dict[str, str] | None = None,
        process_exit_codes: dict[str, int] | None = None,
    ):
        super().__init__(config, deploy_mode, deployment_type, disable_logging, output)
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_on = fail_on or set()
        self.installer_exit_code = installer_exit_code
        self.process_output = process_output or {}
        self.process_exit_codes = process_exit_codes or {}
        self.finalized_with: int | None = None

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if operation in self.fail_on:
            raise DeploymentError(f"{operation} failed")

    @property
    def operations(self) -> list[str]:
        return [op for op, _ in self.calls]

    def calls_to(self, operation: str) -> list[tuple[Any, ...]]:
        return [args for op, args in self.calls if op == operation]

    def show_welcome(self, options: WelcomeOptions) -> None:
        self._record("show_welcome", options)

    def show_completion(self, message: str) -> None:
        self._record("show_completion", message)

    def execute_installer(
        self,
        action: InstallerAction,
        path: str,
        args: tuple[str, ...] = (),
        transform: str | None = None,
    ) -> int:
        self._record("execute_installer", action, path, args, transform)
        return self.installer_exit_code

    def execute_process(
        self,
        path: str,
        args: tuple[str, ...] | list[str] = (),
        ignore_exit_codes: tuple[int, ...] = (),
    ) -> ProcessResult:
        self._record("execute_process", path, tuple(args))
        exit_code = self.process_exit_codes.get(path, 0)
        return ProcessResult(
            command=[path, *args],
            exit_code=exit_code,
            stdout=self.process_output.get(path, ""),
            ignored=exit_code != 0 and exit_code in ignore_exit_codes,
        )

    def copy_file(self, source: str | Path, destination: str | Path) -> None:
        self._record("copy_file", str(source), str(destination))

    def create_folder(self, path: str | Path) -> None:
        self._record("create_folder", str(path))

    def show_error_dialog(self, message: str) -> None:
        self._record("show_error_dialog", message)

    def finalize(self, exit_code: int) -> int:
        self.finalized_with = exit_code
        return super().finalize(exit_code)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Directory for deployment logs."""
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture
def mock_config(log_dir: Path) -> DeploymentConfig:
    """Create a minimal deployment configuration."""
    return DeploymentConfig(
        app=AppConfig(name="Widget", vendor="Contoso", version="2.1.0"),
        toolkit=ToolkitConfig(log_dir=str(log_dir)),
        event_log=EventLogConfig(enabled=False),
    )


@pytest.fixture
def make_toolkit():
    """Factory for recording toolkits."""

    def _make(config: DeploymentConfig, **kwargs: Any) -> RecordingToolkit:
        return RecordingToolkit(config, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path) -> Generator[None, None, None]:
    """Clean environment variables before each test."""
    env_vars = [
        "APPDEPLOY_CONFIG",
        "APPDEPLOY_LOG_DIR",
        "APPDEPLOY_LOG_HOST",
        "APPDEPLOY_LOG_SHARE",
        "APPDEPLOY_CONFIG_DIR",
    ]

    original = {k: os.environ.get(k) for k in env_vars}

    for k in env_vars:
        os.environ.pop(k, None)

    # Keep the user's own ~/.appdeploy/config.yaml out of the tests
    os.environ["APPDEPLOY_CONFIG_DIR"] = str(tmp_path / "user-config")

    yield

    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)


@pytest.fixture
def temp_config_file(tmp_path: Path, log_dir: Path) -> str:
    """Create a temporary config file."""
    config_content = f"""
version: "1"
app:
  name: Widget
  vendor: Contoso
  version: 2.1.0
toolkit:
  log_dir: {log_dir.as_posix()}
event_log:
  enabled: false
"""
    config_file = tmp_path / "appdeploy.yaml"
    config_file.write_text(config_content)
    return str(config_file)
