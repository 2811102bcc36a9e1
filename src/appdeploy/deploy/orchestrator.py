"""Deployment orchestrator.

Runs the Pre, Main and Post sub-phases of one deployment type, then the
always-run post-actions, and reports the accumulated exit code.
"""

from __future__ import annotations

import traceback
from datetime import datetime
from pathlib import Path

from appdeploy.config import DeploymentConfig, StepConfig
from appdeploy.core import exit_codes
from appdeploy.core.exceptions import AppDeployError
from appdeploy.core.logging import Severity, StructuredLogger
from appdeploy.deploy.integrations import Integration, build_integrations
from appdeploy.deploy.models import (
    DeploymentResult,
    DeploymentType,
    DeployMode,
    ExitCode,
    InstallerAction,
    SubPhase,
)
from appdeploy.deploy.post_actions import PostAction, build_post_actions
from appdeploy.deploy.steps import StepRunner
from appdeploy.toolkit.base import Toolkit, WelcomeOptions

logger = StructuredLogger(__name__)

TERMINAL_SERVER_COMMAND = "change.exe"


class DeploymentOrchestrator:
    """Dispatch a deployment type to its Pre/Main/Post sequence."""

    def __init__(
        self,
        config: DeploymentConfig,
        toolkit: Toolkit,
        integrations: list[Integration] | None = None,
        post_actions: list[PostAction] | None = None,
        allow_reboot_passthru: bool = False,
        terminal_server_mode: bool = False,
    ):
        """Initialize orchestrator.

        Args:
            config: Immutable deployment configuration
            toolkit: Collaborator that performs every side effect
            integrations: Phase integrations; built from feature flags if None
            post_actions: Always-run post-actions; defaults if None
            allow_reboot_passthru: Report 3010 when an installer asks for a restart
            terminal_server_mode: Switch the session to install mode around the phase
        """
        self._config = config
        self._toolkit = toolkit
        self._integrations = build_integrations(toolkit) if integrations is None else integrations
        self._post_actions = build_post_actions(toolkit) if post_actions is None else post_actions
        self._allow_reboot_passthru = allow_reboot_passthru
        self._terminal_server_mode = terminal_server_mode
        self._steps = StepRunner(toolkit)

    def run(self, deployment_type: DeploymentType | str) -> DeploymentResult:
        """Run one deployment type end to end.

        Args:
            deployment_type: Install, Uninstall or Repair

        Returns:
            DeploymentResult carrying the exit code to report

        Raises:
            ValidationError: If the deployment type is not valid; nothing has run
        """
        deployment_type = DeploymentType.parse(deployment_type)

        result = DeploymentResult(
            deployment_type=deployment_type,
            deploy_mode=self._toolkit.deploy_mode,
            exit_code=ExitCode(self._allow_reboot_passthru),
        )
        log = logger.bind(type=deployment_type.value, mode=result.deploy_mode.value)
        log.info("Starting deployment", app=self._config.app.display_name or "-")
        result.add_event("started", f"{deployment_type.value} started")

        try:
            self._run_phase(deployment_type, result)
            result.add_event("completed", f"{deployment_type.value} completed")
        except Exception as e:
            self._handle_failure(e, result)

        self._run_post_actions(result)

        result.completed_at = datetime.now()
        self._toolkit.finalize(result.exit_code.value)
        log.info("Deployment finished", exit_code=result.exit_code.value)
        return result

    def _run_phase(self, deployment_type: DeploymentType, result: DeploymentResult) -> None:
        if self._terminal_server_mode:
            self._set_terminal_server_mode(install=True, result=result)

        try:
            self._pre(deployment_type, result)
            self._main(deployment_type, result)
            self._post(deployment_type, result)
        finally:
            if self._terminal_server_mode:
                self._set_terminal_server_mode(install=False, result=result)

    def _pre(self, deployment_type: DeploymentType, result: DeploymentResult) -> None:
        self._toolkit.log(f"[{SubPhase.PRE.value}-{deployment_type.value}]", source="orchestrator")

        close_apps = self._config.close_apps
        check_disk_space = deployment_type == DeploymentType.INSTALL and self._config.disk_space_mb > 0
        self._toolkit.show_welcome(
            WelcomeOptions(
                close_apps=close_apps.processes,
                countdown=close_apps.countdown,
                check_disk_space=check_disk_space,
                required_disk_space_mb=self._config.disk_space_mb,
            )
        )
        result.add_step(SubPhase.PRE, "welcome")

        for integration in self._integrations:
            integration.pre(deployment_type)
            result.add_step(SubPhase.PRE, integration.name)

        self._run_custom_steps(self._config.steps_for(deployment_type.value).pre, SubPhase.PRE, result)

    def _main(self, deployment_type: DeploymentType, result: DeploymentResult) -> None:
        self._toolkit.log(f"[{SubPhase.MAIN.value}-{deployment_type.value}]", source="orchestrator")

        installer = self._config.installer
        if installer.zero_config_path:
            self._run_zero_config(deployment_type, result)
            return

        for integration in self._integrations:
            code = integration.main(deployment_type)
            if code is not None:
                result.exit_code.record(code)
                result.add_step(SubPhase.MAIN, integration.name)

        self._run_custom_steps(self._config.steps_for(deployment_type.value).main, SubPhase.MAIN, result)

    def _run_zero_config(self, deployment_type: DeploymentType, result: DeploymentResult) -> None:
        """Run the packaged installer directly, bypassing custom main steps."""
        installer = self._config.installer
        action = InstallerAction.for_deployment(deployment_type)

        code = self._toolkit.execute_installer(
            action,
            installer.zero_config_path,
            installer.args,
            transform=installer.transform,
        )
        result.exit_code.record(code)
        result.add_step(SubPhase.MAIN, f"installer:{action.value}")

        if deployment_type != DeploymentType.INSTALL:
            return

        for patch in installer.patches:
            code = self._toolkit.execute_installer(InstallerAction.PATCH, patch)
            result.exit_code.record(code)
            result.add_step(SubPhase.MAIN, f"patch:{Path(patch).name}")

    def _post(self, deployment_type: DeploymentType, result: DeploymentResult) -> None:
        self._toolkit.log(f"[{SubPhase.POST.value}-{deployment_type.value}]", source="orchestrator")

        for integration in self._integrations:
            integration.post(deployment_type)
            result.add_step(SubPhase.POST, integration.name)

        self._run_custom_steps(self._config.steps_for(deployment_type.value).post, SubPhase.POST, result)

        if deployment_type == DeploymentType.INSTALL and result.deploy_mode == DeployMode.INTERACTIVE:
            app = self._config.app.display_name or "The application"
            self._toolkit.show_completion(f"{app} has been installed.")
            result.add_step(SubPhase.POST, "completion")

    def _run_custom_steps(
        self,
        steps: tuple[StepConfig, ...],
        sub_phase: SubPhase,
        result: DeploymentResult,
    ) -> None:
        for step in steps:
            result.exit_code.record(self._steps.run(step))
            result.add_step(sub_phase, step.name)

    def _set_terminal_server_mode(self, install: bool, result: DeploymentResult) -> None:
        switch = "/install" if install else "/execute"
        try:
            self._toolkit.execute_process(TERMINAL_SERVER_COMMAND, ["user", switch])
        except AppDeployError as e:
            if install:
                raise
            # Leaving install mode must not mask the phase outcome
            self._toolkit.log(f"Failed to leave terminal server install mode: {e}", Severity.WARNING, source="orchestrator")
            return
        result.add_step(SubPhase.PRE if install else SubPhase.POST, f"terminal_server:{switch}")

    def _handle_failure(self, error: Exception, result: DeploymentResult) -> None:
        message = f"{type(error).__name__}: {error}"
        result.error = message
        result.exit_code.record(exit_codes.FATAL_ERROR)
        result.add_event("failed", f"{result.deployment_type.value} failed: {message}")

        self._toolkit.log(message, Severity.ERROR, source="orchestrator")
        logger.debug(traceback.format_exc())

        try:
            self._toolkit.show_error_dialog(message)
        except Exception as dialog_error:
            logger.warning("Error dialog failed", error=str(dialog_error))

    def _run_post_actions(self, result: DeploymentResult) -> None:
        for action in self._post_actions:
            try:
                action.run(result)
                result.add_event("post_action", f"{action.name} completed")
            except Exception as e:
                self._toolkit.log(f"Post-action [{action.name}] failed: {e}", Severity.WARNING, source="post_action")
                result.add_event("post_action_failed", f"{action.name} failed: {e}")
