"""Configuration management for appdeploy using Pydantic."""

import os
import re
import sys
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from appdeploy.core.exceptions import ConfigError
from appdeploy.core.logging import LogLevel
from appdeploy.core.output import OutputFormat
from appdeploy.core.utils import get_config_dir, is_windows, merge_dicts, sanitize_filename

DEFAULT_TOOLKIT = "appdeploy.toolkit.local:LocalToolkit"

# Vendor_Name_Version[_Arch[_Lang[_Revision]]]
PACKAGE_FOLDER_PATTERN = re.compile(
    r"^(?P<vendor>[^_]+)_(?P<name>[^_]+)_(?P<version>[^_]+)"
    r"(?:_(?P<arch>x86|x64|arm64))?"
    r"(?:_(?P<lang>[A-Za-z]{2}))?"
    r"(?:_(?P<revision>\d+))?$",
    re.IGNORECASE,
)


class FrozenModel(BaseModel):
    """Base for configuration sections that must not change after startup."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class AppConfig(FrozenModel):
    """Application metadata."""

    name: str = ""
    vendor: str = ""
    version: str = ""
    arch: str = "x64"
    lang: str = "EN"
    revision: str = "01"
    script_version: str = "1.0.0"
    script_date: str = ""
    script_author: str = ""

    @property
    def display_name(self) -> str:
        """Human readable name used in prompts."""
        return " ".join(part for part in (self.vendor, self.name, self.version) if part)

    @property
    def log_name(self) -> str:
        """Base name for deployment log files."""
        parts = [p for p in (self.vendor, self.name, self.version) if p]
        return sanitize_filename("_".join(parts).replace(" ", "")) if parts else "appdeploy"


class InstallerConfig(FrozenModel):
    """Installer package locations."""

    zero_config_path: str | None = None  # MSI used when no custom main steps are needed
    transform: str | None = None
    patches: tuple[str, ...] = ()
    args: tuple[str, ...] = ()
    setup_path: str | None = None  # Inno Setup executable
    uninstall_path: str | None = None  # Inno Setup uninstaller (unins000.exe)


class CloseAppsConfig(FrozenModel):
    """Applications that must be closed before the phase runs."""

    processes: tuple[str, ...] = ()
    countdown: int = 60

    @field_validator("countdown")
    @classmethod
    def validate_countdown(cls, v: int) -> int:
        if v < 0:
            raise ValueError("countdown must not be negative")
        return v


class FeatureFlags(FrozenModel):
    """Optional integrations."""

    chocolatey: bool = False
    inno_setup: bool = False
    sccm_naming: bool = False


class ChocolateyConfig(FrozenModel):
    """Chocolatey repository integration."""

    executable: str = "choco"
    package: str | None = None
    version: str | None = None
    source_name: str = "internal"
    source_url: str | None = None


class EventLogConfig(FrozenModel):
    """System event log scraping after the phase."""

    enabled: bool = True
    log_name: str = "Application"
    max_events: int = 200


class LogShippingConfig(FrozenModel):
    """Copy deployment logs to a central collection share."""

    enabled: bool = False
    host: str | None = None
    port: int = 445
    share: str | None = None
    timeout: float = 3.0

    def get_host(self) -> str | None:
        """Get log host from config or environment."""
        return os.environ.get("APPDEPLOY_LOG_HOST") or self.host

    def get_share(self) -> str | None:
        """Get destination share from config or environment."""
        share = os.environ.get("APPDEPLOY_LOG_SHARE") or self.share
        if share:
            return share
        host = self.get_host()
        if host and is_windows():
            return rf"\\{host}\Logs$"
        return None


class ToolkitConfig(FrozenModel):
    """Deployment toolkit selection."""

    class_path: str = DEFAULT_TOOLKIT
    log_dir: str | None = None
    execution_policy: str | None = "Bypass"

    def get_log_dir(self) -> Path:
        """Get log directory from config or environment."""
        configured = os.environ.get("APPDEPLOY_LOG_DIR") or self.log_dir
        if configured:
            return Path(configured).expanduser()
        if is_windows():
            return Path(os.environ.get("SystemRoot", r"C:\Windows")) / "Logs" / "Software"
        return get_config_dir() / "logs"


class StepConfig(FrozenModel):
    """Single custom step run inside a sub-phase."""

    name: str
    type: Literal["process", "installer", "copy_file", "create_folder", "log"] = "process"
    path: str | None = None
    args: tuple[str, ...] = ()
    ignore_exit_codes: tuple[int, ...] = ()
    action: Literal["Install", "Uninstall", "Repair", "Patch"] | None = None
    transform: str | None = None
    source: str | None = None
    destination: str | None = None
    message: str | None = None
    severity: int = 1
    continue_on_error: bool = False

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v: int) -> int:
        if v not in (1, 2, 3):
            raise ValueError("severity must be 1, 2 or 3")
        return v

    @model_validator(mode="after")
    def validate_required_fields(self) -> "StepConfig":
        """Ensure the fields the step type needs are present."""
        required = {
            "process": ("path",),
            "installer": ("path", "action"),
            "copy_file": ("source", "destination"),
            "create_folder": ("path",),
            "log": ("message",),
        }[self.type]
        missing = [f for f in required if getattr(self, f) is None]
        if missing:
            raise ValueError(f"{self.type} step '{self.name}' requires: {', '.join(missing)}")
        return self


class PhaseSteps(FrozenModel):
    """Custom steps for the Pre, Main and Post sub-phases."""

    pre: tuple[StepConfig, ...] = ()
    main: tuple[StepConfig, ...] = ()
    post: tuple[StepConfig, ...] = ()


class PhasesConfig(FrozenModel):
    """Custom steps per deployment type."""

    install: PhaseSteps = Field(default_factory=PhaseSteps)
    uninstall: PhaseSteps = Field(default_factory=PhaseSteps)
    repair: PhaseSteps = Field(default_factory=PhaseSteps)


class GlobalConfig(FrozenModel):
    """Global settings."""

    output_format: OutputFormat = OutputFormat.TABLE
    color: str = "auto"  # auto, always, never
    verbosity: LogLevel = LogLevel.INFO

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if v not in ("auto", "always", "never"):
            raise ValueError("color must be 'auto', 'always', or 'never'")
        return v

    def use_color(self) -> bool:
        """Resolve the color setting, detecting a terminal for ``auto``."""
        if self.color == "auto":
            return sys.stdout.isatty()
        return self.color == "always"


class DeploymentConfig(FrozenModel):
    """Main configuration model, created once and read-only thereafter."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    version: str = "1"
    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    app: AppConfig = Field(default_factory=AppConfig)
    installer: InstallerConfig = Field(default_factory=InstallerConfig)
    close_apps: CloseAppsConfig = Field(default_factory=CloseAppsConfig)
    disk_space_mb: int = 0
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    chocolatey: ChocolateyConfig = Field(default_factory=ChocolateyConfig)
    event_log: EventLogConfig = Field(default_factory=EventLogConfig)
    log_shipping: LogShippingConfig = Field(default_factory=LogShippingConfig)
    toolkit: ToolkitConfig = Field(default_factory=ToolkitConfig)
    phases: PhasesConfig = Field(default_factory=PhasesConfig)
    package_dir: str | None = None

    def steps_for(self, deployment_type: str) -> PhaseSteps:
        """Get the custom steps for a deployment type."""
        return getattr(self.phases, deployment_type.lower())


def parse_package_folder(folder_name: str) -> dict[str, str]:
    """Derive application metadata from a package folder name.

    Args:
        folder_name: e.g. ``Contoso_Widget_2.1.0_x64_EN_02``

    Returns:
        Metadata fields found in the name; empty if it does not match
    """
    match = PACKAGE_FOLDER_PATTERN.match(folder_name)
    if not match:
        return {}
    return {k: v for k, v in match.groupdict().items() if v}


def apply_package_naming(data: dict[str, Any], package_dir: str | Path) -> dict[str, Any]:
    """Fill empty ``app`` fields from the package folder name.

    Explicitly configured values always win.
    """
    derived = parse_package_folder(Path(package_dir).resolve().name)
    if not derived:
        return data

    app = dict(data.get("app") or {})
    for key, value in derived.items():
        if not app.get(key):
            app[key] = value
    return {**data, "app": app}


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    CONFIG_FILENAMES = ["appdeploy.yaml", "appdeploy.yml", ".appdeploy.yaml", ".appdeploy.yml"]

    def __init__(self):
        self._config: DeploymentConfig | None = None

    def load(self, config_file: str | Path | None = None) -> DeploymentConfig:
        """Load configuration from files and environment.

        Priority (highest to lowest):
        1. Explicitly specified config file
        2. Project config (./appdeploy.yaml)
        3. User config (~/.appdeploy/config.yaml)

        Args:
            config_file: Optional explicit config file path

        Returns:
            Merged configuration
        """
        configs: list[dict[str, Any]] = []
        package_dir: Path = Path.cwd()

        user_config_path = get_config_dir() / "config.yaml"
        if user_config_path.exists():
            configs.append(self._load_yaml_file(user_config_path))

        project_config = self._find_project_config()
        if project_config:
            configs.append(self._load_yaml_file(project_config))
            package_dir = project_config.parent

        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            configs.append(self._load_yaml_file(config_path))
            package_dir = config_path.resolve().parent

        merged: dict[str, Any] = {}
        for config in configs:
            merged = merge_dicts(merged, config)

        merged.setdefault("package_dir", str(package_dir))
        if (merged.get("features") or {}).get("sccm_naming"):
            merged = apply_package_naming(merged, merged["package_dir"])

        self._config = build_config(merged)
        return self._config

    def _find_project_config(self) -> Path | None:
        """Find project config file in current or parent directories."""
        current = Path.cwd()

        while current != current.parent:
            for filename in self.CONFIG_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    return config_path
            current = current.parent

        return None

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        """Load a YAML config file."""
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")

        if not isinstance(content, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return content


def build_config(data: dict[str, Any]) -> DeploymentConfig:
    """Validate a raw mapping into a DeploymentConfig.

    Raises:
        ConfigError: If validation fails
    """
    try:
        return DeploymentConfig(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


# Global config loader instance
_config_loader = ConfigLoader()


def load_config(config_file: str | Path | None = None) -> DeploymentConfig:
    """Load appdeploy configuration.

    Args:
        config_file: Optional explicit config file path

    Returns:
        Loaded configuration
    """
    return _config_loader.load(config_file)


def get_default_config() -> DeploymentConfig:
    """Get default configuration without loading from files."""
    return DeploymentConfig()
