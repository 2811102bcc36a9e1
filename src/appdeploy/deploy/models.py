"""Deployment data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from appdeploy.core import exit_codes
from appdeploy.core.exceptions import ValidationError


class _ParseableEnum(str, Enum):
    """String enum that parses its values case-insensitively."""

    @classmethod
    def parse(cls, value: "str | _ParseableEnum") -> Any:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        choices = ", ".join(m.value for m in cls)
        raise ValidationError(
            f"Invalid {cls.__name__} '{value}'. Choose from: {choices}",
            details={"value": value},
        )


class DeploymentType(_ParseableEnum):
    """Deployment phases selectable from the command line."""

    INSTALL = "Install"
    UNINSTALL = "Uninstall"
    REPAIR = "Repair"


class DeployMode(_ParseableEnum):
    """How much the user sees during the deployment."""

    INTERACTIVE = "Interactive"
    SILENT = "Silent"
    NON_INTERACTIVE = "NonInteractive"


class SubPhase(str, Enum):
    """Sub-phases every deployment type runs through, in order."""

    PRE = "Pre"
    MAIN = "Main"
    POST = "Post"


class InstallerAction(str, Enum):
    """Actions understood by the toolkit's installer execution."""

    INSTALL = "Install"
    UNINSTALL = "Uninstall"
    REPAIR = "Repair"
    PATCH = "Patch"

    @classmethod
    def for_deployment(cls, deployment_type: DeploymentType) -> "InstallerAction":
        return cls(deployment_type.value)


class ExitCode:
    """Exit code accumulator.

    The first failure wins. A restart request is remembered separately and
    reported only when reboot pass-through is allowed.
    """

    def __init__(self, allow_reboot_passthru: bool = False):
        self._allow_reboot_passthru = allow_reboot_passthru
        self._failure: int | None = None
        self._restart = False

    def record(self, code: int) -> None:
        """Record the result code of a delegate call."""
        if code == exit_codes.SUCCESS:
            return
        if exit_codes.is_restart(code):
            self._restart = True
            return
        if self._failure is None:
            self._failure = code

    @property
    def failed(self) -> bool:
        return self._failure is not None

    @property
    def restart_required(self) -> bool:
        return self._restart

    @property
    def value(self) -> int:
        if self._failure is not None:
            return self._failure
        if self._restart and self._allow_reboot_passthru:
            return exit_codes.RESTART_REQUIRED
        return exit_codes.SUCCESS

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"ExitCode({self.value})"


@dataclass
class StepRecord:
    """A delegate step that ran during the deployment."""

    deployment_type: DeploymentType
    sub_phase: SubPhase
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": f"{self.sub_phase.value}-{self.deployment_type.value}",
            "step": self.name,
        }


@dataclass
class DeploymentEvent:
    """Deployment event for the run summary."""

    timestamp: datetime
    event_type: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class DeploymentResult:
    """Outcome of one orchestrator run."""

    deployment_type: DeploymentType
    deploy_mode: DeployMode
    exit_code: ExitCode = field(default_factory=ExitCode)
    steps: list[StepRecord] = field(default_factory=list)
    events: list[DeploymentEvent] = field(default_factory=list)
    error: str | None = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    def add_step(self, sub_phase: SubPhase, name: str) -> None:
        self.steps.append(StepRecord(self.deployment_type, sub_phase, name))

    def add_event(self, event_type: str, message: str, details: dict[str, Any] | None = None) -> None:
        """Add an event to the run history."""
        self.events.append(
            DeploymentEvent(
                timestamp=datetime.now(),
                event_type=event_type,
                message=message,
                details=details or {},
            )
        )

    def step_names(self, sub_phase: SubPhase | None = None) -> list[str]:
        return [s.name for s in self.steps if sub_phase is None or s.sub_phase == sub_phase]

    @property
    def succeeded(self) -> bool:
        return not self.exit_code.failed

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "deployment_type": self.deployment_type.value,
            "deploy_mode": self.deploy_mode.value,
            "exit_code": self.exit_code.value,
            "succeeded": self.succeeded,
            "restart_required": self.exit_code.restart_required,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "steps": [s.to_dict() for s in self.steps],
            "events": [e.to_dict() for e in self.events[-20:]],
        }
