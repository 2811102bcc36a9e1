"""Run command - execute one deployment type."""

import sys
from pathlib import Path

import click

from appdeploy.core import exit_codes
from appdeploy.core.context import AppDeployContext, pass_context
from appdeploy.core.exceptions import ToolkitLoadError
from appdeploy.core.output import OUTPUT_FORMAT, OutputFormat, format_duration
from appdeploy.deploy.models import DeploymentResult, DeploymentType, DeployMode
from appdeploy.deploy.orchestrator import DeploymentOrchestrator
from appdeploy.toolkit.loader import load_toolkit


@click.command("run")
@click.option(
    "-t",
    "--deployment-type",
    type=click.Choice([t.value for t in DeploymentType], case_sensitive=False),
    default=DeploymentType.INSTALL.value,
    show_default=True,
    help="Deployment type to run",
)
@click.option(
    "-m",
    "--deploy-mode",
    type=click.Choice([m.value for m in DeployMode], case_sensitive=False),
    default=DeployMode.INTERACTIVE.value,
    show_default=True,
    help="How much the user sees during the deployment",
)
@click.option(
    "--allow-reboot-passthru",
    is_flag=True,
    help="Exit with 3010 when an installer requests a restart",
)
@click.option(
    "--terminal-server-mode",
    is_flag=True,
    help="Switch a Remote Desktop session host to install mode during the deployment",
)
@click.option(
    "--disable-logging",
    is_flag=True,
    help="Don't write a deployment log file",
)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Summary format: table, json, yaml, raw",
)
@pass_context
def run(
    ctx: AppDeployContext,
    deployment_type: str,
    deploy_mode: str,
    allow_reboot_passthru: bool,
    terminal_server_mode: bool,
    disable_logging: bool,
    output_format: OutputFormat | None,
) -> None:
    """Install, uninstall or repair the configured application.

    \b
    Exit codes:
        0       Success
        3010    Restart required (only with --allow-reboot-passthru)
        60001   Deployment failed
        60008   Toolkit could not be loaded

    \b
    Examples:
        appdeploy run
        appdeploy run -t Uninstall -m Silent
        appdeploy run -t Install -m NonInteractive --allow-reboot-passthru
    """
    ctx.use_format(output_format)
    dtype = DeploymentType.parse(deployment_type)
    mode = DeployMode.parse(deploy_mode)

    try:
        toolkit = load_toolkit(
            ctx.config,
            deploy_mode=mode,
            deployment_type=dtype,
            disable_logging=disable_logging,
            output=ctx.output,
        )
    except ToolkitLoadError as e:
        ctx.output.print_error(f"Failed to load toolkit: {e}")
        ctx.logger.error("Toolkit load failed", class_path=e.class_path)
        sys.exit(exit_codes.TOOLKIT_LOAD_FAILURE)

    orchestrator = DeploymentOrchestrator(
        ctx.config,
        toolkit,
        allow_reboot_passthru=allow_reboot_passthru,
        terminal_server_mode=terminal_server_mode,
    )
    log_file = toolkit.log_file if toolkit.logging_enabled else None
    result = orchestrator.run(dtype)

    _print_result(ctx, result, log_file)
    sys.exit(result.exit_code.value)


def _print_result(ctx: AppDeployContext, result: DeploymentResult, log_file: Path | None = None) -> None:
    if ctx.output_format != OutputFormat.TABLE:
        ctx.output.print_data(result.to_dict())
        return

    duration = format_duration(result.duration_seconds or 0)
    name = result.deployment_type.value
    if result.succeeded:
        ctx.output.print_success(f"{name} completed in {duration} (exit code {result.exit_code.value})")
        if result.exit_code.restart_required:
            ctx.output.print_warning("A restart is required to complete the deployment")
    else:
        ctx.output.print_error(f"{name} failed: {result.error} (exit code {result.exit_code.value})")

    if log_file is not None:
        ctx.output.print_info(f"Deployment log: {log_file}")
