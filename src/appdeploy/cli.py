"""Main CLI entry point for appdeploy."""

import sys

import click
from rich.console import Console

from appdeploy import __version__
from appdeploy.config import load_config
from appdeploy.core import exit_codes
from appdeploy.core.context import AppDeployContext, pass_context
from appdeploy.core.exceptions import AppDeployError, ConfigError
from appdeploy.core.output import OUTPUT_FORMAT, OutputFormat


CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console = Console()
    console.print(f"appdeploy version {__version__}")
    ctx.exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    metavar="FILE",
    envvar="APPDEPLOY_CONFIG",
    help="Path to deployment config file",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vv for debug)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: str | None,
    verbose: int,
    quiet: bool,
    no_color: bool,
) -> None:
    """AppDeploy - install, uninstall or repair an application package.

    Runs the Pre, Main and Post steps of one deployment type through the
    configured toolkit, then collects and ships the deployment logs.

    \b
    Examples:
        appdeploy run
        appdeploy run -t Uninstall -m Silent
        appdeploy -c package/appdeploy.yaml run -t Repair --allow-reboot-passthru
        appdeploy config -o yaml

    \b
    Configuration:
        ~/.appdeploy/config.yaml    User configuration
        ./appdeploy.yaml            Package configuration
        APPDEPLOY_*                 Environment variables
    """
    try:
        config = load_config(config_file)

        ctx.obj = AppDeployContext(
            config=config,
            verbose=verbose,
            quiet=quiet,
            color=False if no_color else None,
        )

    except ConfigError as e:
        console = Console(stderr=True)
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(exit_codes.CONFIG_ERROR)


def register_commands() -> None:
    """Register all commands."""
    from appdeploy.commands.run import run

    cli.add_command(run)


register_commands()


@cli.command()
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@pass_context
def config(ctx: AppDeployContext, output_format: OutputFormat | None) -> None:
    """Show current configuration."""
    ctx.use_format(output_format)
    cfg = ctx.config
    config_data = {
        "app": cfg.app.display_name or "-",
        "package_dir": cfg.package_dir,
        "toolkit": cfg.toolkit.class_path,
        "log_dir": str(cfg.toolkit.get_log_dir()),
        "zero_config_installer": cfg.installer.zero_config_path,
        "close_apps": ", ".join(cfg.close_apps.processes) or "-",
        "features": {
            "chocolatey": cfg.features.chocolatey,
            "inno_setup": cfg.features.inno_setup,
            "sccm_naming": cfg.features.sccm_naming,
        },
        "log_shipping": {
            "enabled": cfg.log_shipping.enabled,
            "host": cfg.log_shipping.get_host(),
        },
    }
    ctx.output.print_data(config_data, title="Current Configuration")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except AppDeployError as e:
        console = Console(stderr=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(exit_codes.CONFIG_ERROR)
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(exit_codes.INTERRUPTED)


if __name__ == "__main__":
    main()
