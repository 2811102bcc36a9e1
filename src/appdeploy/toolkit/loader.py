"""Resolve and instantiate the configured deployment toolkit."""

import importlib
import subprocess
from typing import Any

from appdeploy.config import DeploymentConfig
from appdeploy.core.exceptions import ToolkitLoadError
from appdeploy.core.logging import StructuredLogger
from appdeploy.core.utils import is_windows
from appdeploy.deploy.models import DeploymentType, DeployMode
from appdeploy.toolkit.base import Toolkit

logger = StructuredLogger(__name__)


def resolve_toolkit_class(class_path: str) -> type[Toolkit]:
    """Import a toolkit class from a ``package.module:Class`` path.

    Raises:
        ToolkitLoadError: If the module or class cannot be loaded
    """
    module_name, sep, class_name = class_path.partition(":")
    if not sep or not module_name or not class_name:
        raise ToolkitLoadError(
            f"Invalid toolkit path '{class_path}', expected 'package.module:Class'",
            class_path=class_path,
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ToolkitLoadError(f"Failed to import toolkit module '{module_name}': {e}", class_path=class_path)

    toolkit_class = getattr(module, class_name, None)
    if toolkit_class is None:
        raise ToolkitLoadError(f"Toolkit class '{class_name}' not found in '{module_name}'", class_path=class_path)

    if not isinstance(toolkit_class, type) or not issubclass(toolkit_class, Toolkit):
        raise ToolkitLoadError(f"'{class_path}' is not a Toolkit subclass", class_path=class_path)

    return toolkit_class


def load_toolkit(
    config: DeploymentConfig,
    deploy_mode: DeployMode,
    deployment_type: DeploymentType,
    disable_logging: bool = False,
    **kwargs: Any,
) -> Toolkit:
    """Load and instantiate the toolkit named in the configuration.

    Args:
        config: Deployment configuration
        deploy_mode: Deploy mode passed to the toolkit
        deployment_type: Deployment type passed to the toolkit
        disable_logging: Skip the deployment log file
        **kwargs: Extra keyword arguments for the toolkit constructor

    Returns:
        Toolkit instance

    Raises:
        ToolkitLoadError: If the toolkit cannot be loaded or constructed
    """
    relax_execution_policy(config.toolkit.execution_policy)

    toolkit_class = resolve_toolkit_class(config.toolkit.class_path)
    try:
        toolkit = toolkit_class(
            config,
            deploy_mode=deploy_mode,
            deployment_type=deployment_type,
            disable_logging=disable_logging,
            **kwargs,
        )
    except (OSError, TypeError) as e:
        raise ToolkitLoadError(f"Failed to initialize toolkit: {e}", class_path=config.toolkit.class_path)

    logger.debug("Loaded toolkit", toolkit=config.toolkit.class_path, mode=deploy_mode.value)
    return toolkit


def relax_execution_policy(policy: str | None) -> bool:
    """Set the PowerShell execution policy for this process tree.

    Failure is not an error; installers that need scripts will report it.

    Returns:
        True if the policy was applied
    """
    if not policy or not is_windows():
        return False

    try:
        subprocess.run(
            ["powershell.exe", "-NoProfile", "-Command", f"Set-ExecutionPolicy -Scope Process {policy} -Force"],
            capture_output=True,
            check=True,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Could not set execution policy, continuing", policy=policy, error=str(e))
        return False

    return True
