"""Custom exceptions for appdeploy."""

from typing import Any


class AppDeployError(Exception):
    """Base exception for all appdeploy errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(AppDeployError):
    """Configuration-related errors."""

    pass


class ValidationError(AppDeployError):
    """Input validation errors."""

    pass


class ToolkitLoadError(AppDeployError):
    """The deployment toolkit could not be loaded."""

    def __init__(
        self,
        message: str,
        class_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.class_path = class_path


class InstallerError(AppDeployError):
    """Installer package execution errors."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        action: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.exit_code = exit_code
        self.action = action


class ProcessError(AppDeployError):
    """External process execution errors."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        command: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.exit_code = exit_code
        self.command = command or []


class DeploymentError(AppDeployError):
    """Deployment phase errors."""

    pass
