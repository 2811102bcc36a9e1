"""Click context object for sharing state across commands."""

from __future__ import annotations

import click

from appdeploy.config import DeploymentConfig, get_default_config
from appdeploy.core.logging import LogLevel, StructuredLogger, setup_logging
from appdeploy.core.output import OutputFormat, OutputFormatter


class AppDeployContext:
    """Shared context object for appdeploy commands.

    This object is passed through Click's context mechanism and provides
    access to configuration and console output.
    """

    def __init__(
        self,
        config: DeploymentConfig | None = None,
        output_format: OutputFormat | None = None,
        verbose: int = 0,
        quiet: bool = False,
        color: bool | None = None,
    ):
        self._config = config or get_default_config()
        self._output_format = output_format or self._config.global_settings.output_format
        self._verbose = verbose
        self._quiet = quiet
        # --no-color wins over the configured setting
        self._color = self._config.global_settings.use_color() if color is None else color

        # Determine log level from verbosity
        if verbose >= 2:
            log_level = LogLevel.DEBUG
        elif verbose >= 1:
            log_level = LogLevel.INFO
        elif quiet:
            log_level = LogLevel.ERROR
        else:
            log_level = self._config.global_settings.verbosity

        setup_logging(log_level, rich_output=self._color)
        self._logger = StructuredLogger("context")

        self._output = OutputFormatter(
            format=self._output_format,
            color=self._color,
            quiet=quiet,
        )

    @property
    def config(self) -> DeploymentConfig:
        """Get the loaded configuration."""
        return self._config

    @property
    def output(self) -> OutputFormatter:
        """Get the output formatter."""
        return self._output

    @property
    def output_format(self) -> OutputFormat:
        """Get the output format."""
        return self._output_format

    def use_format(self, output_format: OutputFormat | None) -> None:
        """Override the output format for the current command."""
        if output_format is not None:
            self._output_format = output_format
            self._output.format = output_format

    @property
    def verbose(self) -> int:
        """Get verbosity level."""
        return self._verbose

    @property
    def quiet(self) -> bool:
        """Check if quiet mode is enabled."""
        return self._quiet

    @property
    def color(self) -> bool:
        """Check if color output is enabled."""
        return self._color

    @property
    def logger(self) -> StructuredLogger:
        """Get the context logger."""
        return self._logger


# Click decorator for passing context
pass_context = click.make_pass_decorator(AppDeployContext, ensure=True)
