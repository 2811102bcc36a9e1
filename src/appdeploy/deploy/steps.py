"""Custom steps configured per deployment phase."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from appdeploy.config import StepConfig
from appdeploy.core import exit_codes
from appdeploy.core.exceptions import AppDeployError
from appdeploy.core.logging import Severity
from appdeploy.deploy.models import InstallerAction

if TYPE_CHECKING:
    from appdeploy.toolkit.base import Toolkit


class StepRunner:
    """Map configured steps onto toolkit calls."""

    def __init__(self, toolkit: Toolkit):
        self._toolkit = toolkit
        config = toolkit.config
        self._placeholders = {
            "{PACKAGE_DIR}": config.package_dir or os.getcwd(),
            "{LOG_DIR}": str(toolkit.log_dir),
        }

    def expand(self, value: str) -> str:
        """Replace placeholders and environment variables in a step value."""
        for placeholder, replacement in self._placeholders.items():
            value = value.replace(placeholder, replacement)
        return os.path.expandvars(value)

    def run(self, step: StepConfig) -> int:
        """Run one step and return the exit code it produced.

        Raises:
            AppDeployError: If the step fails and ``continue_on_error`` is not set
        """
        try:
            return self._dispatch(step)
        except AppDeployError as e:
            if not step.continue_on_error:
                raise
            self._toolkit.log(f"Step '{step.name}' failed, continuing: {e}", Severity.WARNING, source="step")
            return 0

    def _dispatch(self, step: StepConfig) -> int:
        toolkit = self._toolkit

        if step.type == "process":
            result = toolkit.execute_process(
                self.expand(step.path),
                [self.expand(a) for a in step.args],
                ignore_exit_codes=step.ignore_exit_codes,
            )
            # Ignored restart requests still count towards the reported exit code
            if result.ignored and not exit_codes.is_restart(result.exit_code):
                return 0
            return result.exit_code

        if step.type == "installer":
            return toolkit.execute_installer(
                InstallerAction(step.action),
                self.expand(step.path),
                tuple(self.expand(a) for a in step.args),
                transform=self.expand(step.transform) if step.transform else None,
            )

        if step.type == "copy_file":
            toolkit.copy_file(self.expand(step.source), self.expand(step.destination))
        elif step.type == "create_folder":
            toolkit.create_folder(self.expand(step.path))
        elif step.type == "log":
            toolkit.log(self.expand(step.message), Severity(step.severity), source=step.name)

        return 0
