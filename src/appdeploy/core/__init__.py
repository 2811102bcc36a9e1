"""Core utilities and shared components for appdeploy."""

# Note: Import context lazily to avoid circular imports
# Use: from appdeploy.core.context import AppDeployContext, pass_context
from appdeploy.core.exceptions import (
    AppDeployError,
    ConfigError,
    DeploymentError,
    InstallerError,
    ProcessError,
    ToolkitLoadError,
    ValidationError,
)
from appdeploy.core.output import OutputFormatter, console

__all__ = [
    "AppDeployError",
    "ConfigError",
    "DeploymentError",
    "InstallerError",
    "ProcessError",
    "ToolkitLoadError",
    "ValidationError",
    "OutputFormatter",
    "console",
]
