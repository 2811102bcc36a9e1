"""Optional integrations contributing work to the deployment phases.

Each integration is enabled by its own feature flag and hooks into the
Pre, Main and Post sub-phases. A Main hook returns ``None`` when it has
nothing to do for the current deployment type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from appdeploy.config import DeploymentConfig
from appdeploy.core import exit_codes
from appdeploy.core.logging import get_logger
from appdeploy.deploy.models import DeploymentType, DeployMode

if TYPE_CHECKING:
    from appdeploy.toolkit.base import Toolkit

logger = get_logger(__name__)


class Integration(ABC):
    """Abstract base class for phase integrations."""

    def __init__(self, toolkit: Toolkit):
        self._toolkit = toolkit
        self._config = toolkit.config

    @property
    @abstractmethod
    def name(self) -> str:
        """Get integration name."""
        pass

    @classmethod
    @abstractmethod
    def enabled(cls, config: DeploymentConfig) -> bool:
        """Check whether the feature flag for this integration is set."""
        pass

    def pre(self, deployment_type: DeploymentType) -> None:
        """Work before the main sub-phase."""
        pass

    def main(self, deployment_type: DeploymentType) -> int | None:
        """Work for the main sub-phase; return the resulting exit code."""
        return None

    def post(self, deployment_type: DeploymentType) -> None:
        """Work after the main sub-phase."""
        pass


class ChocolateyIntegration(Integration):
    """Install packages from a Chocolatey repository."""

    name = "chocolatey"

    @classmethod
    def enabled(cls, config: DeploymentConfig) -> bool:
        return config.features.chocolatey

    def pre(self, deployment_type: DeploymentType) -> None:
        choco = self._config.chocolatey

        # Raises ProcessError when choco is missing
        version = self._toolkit.execute_process(choco.executable, ["--version"])
        lines = version.output_lines
        # Upgrade notices come first; the version is the last line
        self._toolkit.log(f"Chocolatey version [{lines[-1] if lines else 'unknown'}]", source=self.name)

        if choco.source_url:
            self._toolkit.execute_process(
                choco.executable,
                ["source", "add", f"--name={choco.source_name}", f"--source={choco.source_url}", "--priority=1"],
            )

    def main(self, deployment_type: DeploymentType) -> int | None:
        choco = self._config.chocolatey
        if not choco.package:
            return None

        result = self._toolkit.execute_process(
            choco.executable,
            self.build_args(deployment_type),
            ignore_exit_codes=(exit_codes.RESTART_INITIATED, exit_codes.RESTART_REQUIRED),
        )
        return result.exit_code

    def build_args(self, deployment_type: DeploymentType) -> list[str]:
        """Build choco arguments for a deployment type."""
        choco = self._config.chocolatey

        if deployment_type == DeploymentType.UNINSTALL:
            return ["uninstall", choco.package, "-y", "--no-progress"]

        args = ["install", choco.package, "-y", "--no-progress"]
        if choco.version:
            args.append(f"--version={choco.version}")
        if choco.source_url:
            args.append(f"--source={choco.source_name}")
        if deployment_type == DeploymentType.REPAIR:
            args.append("--force")
        return args


class InnoSetupIntegration(Integration):
    """Run Inno Setup installers with a log next to the deployment log."""

    name = "inno_setup"

    @classmethod
    def enabled(cls, config: DeploymentConfig) -> bool:
        return config.features.inno_setup

    def main(self, deployment_type: DeploymentType) -> int | None:
        installer = self._config.installer
        path = installer.uninstall_path if deployment_type == DeploymentType.UNINSTALL else installer.setup_path
        if not path:
            return None

        result = self._toolkit.execute_process(path, self.build_args(deployment_type))
        return result.exit_code

    @property
    def log_path(self) -> str:
        return str(self._toolkit.log_dir / f"{self._config.app.log_name}_InnoSetup")

    def build_args(self, deployment_type: DeploymentType) -> list[str]:
        """Build Inno Setup command line switches."""
        quiet = "/SILENT" if self._toolkit.deploy_mode == DeployMode.INTERACTIVE else "/VERYSILENT"
        args = [
            quiet,
            "/SUPPRESSMSGBOXES",
            "/NORESTART",
            f"/LOG={self.log_path}_{deployment_type.value}.log",
        ]
        if deployment_type != DeploymentType.UNINSTALL:
            args.extend(self._config.installer.args)
        return args


INTEGRATIONS: list[type[Integration]] = [
    ChocolateyIntegration,
    InnoSetupIntegration,
]


def build_integrations(toolkit: Toolkit) -> list[Integration]:
    """Instantiate the integrations whose feature flags are set."""
    active = [cls(toolkit) for cls in INTEGRATIONS if cls.enabled(toolkit.config)]
    if active:
        logger.debug("Active integrations: %s", ", ".join(i.name for i in active))
    return active
