"""Base deployment toolkit."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from appdeploy.config import DeploymentConfig
from appdeploy.core.logging import Severity, StructuredLogger, attach_log_file, detach_log_file
from appdeploy.core.output import OutputFormatter
from appdeploy.deploy.models import DeploymentType, DeployMode, InstallerAction


@dataclass
class ProcessResult:
    """Captured result of an external process."""

    command: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    ignored: bool = False

    @property
    def output_lines(self) -> list[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]


@dataclass
class WelcomeOptions:
    """What the welcome prompt should do before a phase."""

    close_apps: tuple[str, ...] = ()
    countdown: int = 60
    check_disk_space: bool = False
    required_disk_space_mb: int = 0


class Toolkit(ABC):
    """Abstract base class for deployment toolkits.

    A toolkit owns every side effect of a deployment: user prompts,
    installer and process execution, file operations and the deployment log.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        deploy_mode: DeployMode = DeployMode.INTERACTIVE,
        deployment_type: DeploymentType = DeploymentType.INSTALL,
        disable_logging: bool = False,
        output: OutputFormatter | None = None,
    ):
        """Initialize toolkit.

        Args:
            config: Deployment configuration
            deploy_mode: Interactive, Silent or NonInteractive
            deployment_type: Phase being deployed, used for log file naming
            disable_logging: If True, don't write a deployment log file
            output: Console used for prompts and dialogs
        """
        self._config = config
        self._deploy_mode = deploy_mode
        self._deployment_type = deployment_type
        self._output = output or OutputFormatter()
        self._logger = StructuredLogger("toolkit")
        self._log_handler: logging.Handler | None = None

        if not disable_logging:
            self._log_handler = attach_log_file(self.log_file)

    @property
    def config(self) -> DeploymentConfig:
        return self._config

    @property
    def deploy_mode(self) -> DeployMode:
        return self._deploy_mode

    @property
    def is_silent(self) -> bool:
        return self._deploy_mode == DeployMode.SILENT

    @property
    def log_dir(self) -> Path:
        return self._config.toolkit.get_log_dir()

    @property
    def log_file(self) -> Path:
        """Deployment log file, e.g. ``Contoso_Widget_2.1.0_Install.log``."""
        return self.log_dir / f"{self._config.app.log_name}_{self._deployment_type.value}.log"

    @property
    def logging_enabled(self) -> bool:
        return self._log_handler is not None

    def log(self, message: str, severity: Severity = Severity.INFO, source: str | None = None) -> None:
        """Write an entry to the deployment log."""
        self._logger.log(severity, message, component=source)

    def finalize(self, exit_code: int) -> int:
        """Close the deployment log and return the exit code to report."""
        self.log(f"Deployment completed with exit code [{exit_code}]", source="finalize")
        if self._log_handler is not None:
            detach_log_file(self._log_handler)
            self._log_handler = None
        return exit_code

    @abstractmethod
    def show_welcome(self, options: WelcomeOptions) -> None:
        """Greet the user, close blocking applications and check disk space."""
        pass

    @abstractmethod
    def show_completion(self, message: str) -> None:
        """Tell the user the deployment finished."""
        pass

    @abstractmethod
    def execute_installer(
        self,
        action: InstallerAction,
        path: str,
        args: tuple[str, ...] = (),
        transform: str | None = None,
    ) -> int:
        """Run an installer package and return its exit code."""
        pass

    @abstractmethod
    def execute_process(
        self,
        path: str,
        args: tuple[str, ...] | list[str] = (),
        ignore_exit_codes: tuple[int, ...] = (),
    ) -> ProcessResult:
        """Run an external process."""
        pass

    @abstractmethod
    def copy_file(self, source: str | Path, destination: str | Path) -> None:
        """Copy a file or glob of files to a destination."""
        pass

    @abstractmethod
    def create_folder(self, path: str | Path) -> None:
        """Create a folder and its parents."""
        pass

    @abstractmethod
    def show_error_dialog(self, message: str) -> None:
        """Show a blocking error dialog."""
        pass
