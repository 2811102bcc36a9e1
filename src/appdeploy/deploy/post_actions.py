"""Post-actions that run after every deployment phase."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from appdeploy.config import DeploymentConfig
from appdeploy.core.logging import Severity
from appdeploy.core.utils import computer_name, files_modified_since, host_reachable, is_windows
from appdeploy.deploy.models import DeploymentResult

if TYPE_CHECKING:
    from appdeploy.toolkit.base import Toolkit

EVENT_HEADER = re.compile(r"^Event\[\d+\]:?\s*$")


class PostAction(ABC):
    """Abstract base class for post-actions.

    Post-actions are best-effort; the orchestrator isolates their failures.
    """

    def __init__(self, toolkit: Toolkit):
        self._toolkit = toolkit
        self._config: DeploymentConfig = toolkit.config

    @property
    @abstractmethod
    def name(self) -> str:
        """Get post-action name."""
        pass

    @abstractmethod
    def run(self, result: DeploymentResult) -> None:
        """Run the post-action."""
        pass


class EventLogCollector(PostAction):
    """Copy system event log entries that mention the application into the deployment log."""

    name = "event_log"

    def run(self, result: DeploymentResult) -> None:
        settings = self._config.event_log
        app_name = self._config.app.name
        if not settings.enabled or not app_name:
            return

        if not is_windows():
            self._toolkit.log("Event log collection is only available on Windows", source=self.name)
            return

        output = self._toolkit.execute_process(
            "wevtutil.exe",
            ["qe", settings.log_name, f"/c:{settings.max_events}", "/rd:true", "/f:text"],
        )
        matches = self.matching_events(output.stdout, app_name)

        if not matches:
            self._toolkit.log(f"No [{settings.log_name}] events mention [{app_name}]", source=self.name)
            return

        self._toolkit.log(f"Found {len(matches)} [{settings.log_name}] events for [{app_name}]", source=self.name)
        for event in matches:
            self._toolkit.log(event, Severity.INFO, source=self.name)

    @staticmethod
    def split_events(text: str) -> list[str]:
        """Split ``wevtutil /f:text`` output into one string per event."""
        events: list[list[str]] = []
        for line in text.splitlines():
            if EVENT_HEADER.match(line.strip()):
                events.append([])
                continue
            if events and line.strip():
                events[-1].append(" ".join(line.split()))
        return ["; ".join(lines) for lines in events if lines]

    @classmethod
    def matching_events(cls, text: str, app_name: str) -> list[str]:
        """Events whose text mentions the application name, case-insensitively."""
        needle = app_name.lower()
        return [event for event in cls.split_events(text) if needle in event.lower()]


class LogShipper(PostAction):
    """Copy this run's log files to the central log share when it is reachable."""

    name = "log_shipping"

    def run(self, result: DeploymentResult) -> None:
        settings = self._config.log_shipping
        if not settings.enabled:
            return

        host = settings.get_host()
        share = settings.get_share()
        if not host or not share:
            self._toolkit.log("Log shipping enabled but no host or share configured", Severity.WARNING, source=self.name)
            return

        if not host_reachable(host, settings.port, settings.timeout):
            self._toolkit.log(f"Log host [{host}] is not reachable, skipping log upload", source=self.name)
            return

        files = files_modified_since(self._toolkit.log_dir, result.started_at)
        if not files:
            return

        destination = Path(share) / computer_name()
        self._toolkit.create_folder(destination)
        for log_file in files:
            self._toolkit.copy_file(log_file, destination)

        self._toolkit.log(f"Shipped {len(files)} log files to [{destination}]", source=self.name)


POST_ACTIONS: list[type[PostAction]] = [
    EventLogCollector,
    LogShipper,
]


def build_post_actions(toolkit: Toolkit) -> list[PostAction]:
    """Instantiate the always-run post-actions."""
    return [cls(toolkit) for cls in POST_ACTIONS]
