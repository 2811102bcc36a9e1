"""Deployment orchestration module."""

from appdeploy.deploy.models import (
    DeploymentResult,
    DeploymentType,
    DeployMode,
    ExitCode,
    InstallerAction,
    SubPhase,
)

__all__ = [
    "DeploymentResult",
    "DeploymentType",
    "DeployMode",
    "ExitCode",
    "InstallerAction",
    "SubPhase",
]
