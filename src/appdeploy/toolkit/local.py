"""Toolkit that runs deployments on the local machine."""

import glob
import shutil
import subprocess
from pathlib import Path

import click
import psutil

from appdeploy.core.exceptions import DeploymentError, InstallerError, ProcessError
from appdeploy.core.logging import Severity
from appdeploy.core.output import format_bytes
from appdeploy.deploy.models import DeployMode, InstallerAction
from appdeploy.toolkit.base import ProcessResult, Toolkit, WelcomeOptions

# Installer return codes that mean success; the last two ask for a restart
INSTALLER_SUCCESS_CODES = (0, 1641, 3010)

MSI_ACTION_SWITCHES = {
    InstallerAction.INSTALL: "/i",
    InstallerAction.UNINSTALL: "/x",
    InstallerAction.REPAIR: "/fecmus",
    InstallerAction.PATCH: "/update",
}


class LocalToolkit(Toolkit):
    """Run installers and processes with subprocess, prompt on the console."""

    # Prompts

    def show_welcome(self, options: WelcomeOptions) -> None:
        app = self._config.app.display_name or "application"
        self.log(f"Preparing deployment of [{app}] in [{self._deploy_mode.value}] mode", source="welcome")

        if options.check_disk_space:
            self._check_disk_space(options.required_disk_space_mb)

        running = self.find_running(options.close_apps)
        if not running:
            return

        names = sorted({p.info["name"] for p in running})
        if self._deploy_mode == DeployMode.INTERACTIVE:
            self._output.print_panel(
                "The following applications must be closed before continuing:\n  "
                + "\n  ".join(names),
                title=f"{app} deployment",
                style="yellow",
            )
            if not self._output.confirm("Close these applications now?", default=True):
                raise DeploymentError("User declined to close applications", details={"apps": names})

        self.close_processes(running, timeout=options.countdown)

    def show_completion(self, message: str) -> None:
        self.log(message, source="completion")
        if self._deploy_mode == DeployMode.INTERACTIVE:
            self._output.print_panel(message, title="Deployment complete", style="green")

    def show_error_dialog(self, message: str) -> None:
        if self.is_silent:
            self.log(f"Suppressed error dialog in silent mode: {message}", Severity.WARNING, source="dialog")
            return
        self._output.print_panel(message, title="Deployment failed", style="red")
        if self._output.quiet:
            return
        # Returns immediately when stdin is not a terminal
        click.pause("Press any key to close...")

    # Execution

    def execute_installer(
        self,
        action: InstallerAction,
        path: str,
        args: tuple[str, ...] = (),
        transform: str | None = None,
    ) -> int:
        command = self.build_installer_command(action, path, args, transform)
        self.log(f"Executing installer [{action.value}]: {' '.join(command)}", source="installer")

        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as e:
            raise InstallerError(f"Failed to start installer: {e}", action=action.value)

        if completed.returncode not in INSTALLER_SUCCESS_CODES:
            if completed.stderr:
                self.log(completed.stderr.strip(), Severity.ERROR, source="installer")
            raise InstallerError(
                f"Installer [{Path(path).name}] failed with exit code {completed.returncode}",
                exit_code=completed.returncode,
                action=action.value,
            )

        self.log(f"Installer completed with exit code [{completed.returncode}]", source="installer")
        return completed.returncode

    def build_installer_command(
        self,
        action: InstallerAction,
        path: str,
        args: tuple[str, ...] = (),
        transform: str | None = None,
    ) -> list[str]:
        """Build the command line for an installer package."""
        suffix = Path(path).suffix.lower()
        if suffix not in (".msi", ".msp"):
            return [path, *args]

        log_path = self.log_dir / f"{self._config.app.log_name}_{action.value}_MSI.log"
        ui_level = "/qb-!" if self._deploy_mode == DeployMode.INTERACTIVE else "/qn"

        command = ["msiexec.exe", MSI_ACTION_SWITCHES[action], path]
        if transform and action == InstallerAction.INSTALL:
            command.append(f"TRANSFORMS={transform}")
        command.extend([ui_level, "REBOOT=ReallySuppress", "/L*v", str(log_path)])
        command.extend(args)
        return command

    def execute_process(
        self,
        path: str,
        args: tuple[str, ...] | list[str] = (),
        ignore_exit_codes: tuple[int, ...] = (),
    ) -> ProcessResult:
        command = [path, *args]
        self.log(f"Executing process: {' '.join(command)}", source="process")

        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as e:
            raise ProcessError(f"Failed to start {path}: {e}", command=command)

        result = ProcessResult(
            command=command,
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if result.exit_code != 0:
            if result.exit_code in ignore_exit_codes:
                result.ignored = True
                self.log(f"Ignoring exit code [{result.exit_code}] from {path}", Severity.WARNING, source="process")
            else:
                raise ProcessError(
                    f"{Path(path).name} failed with exit code {result.exit_code}",
                    exit_code=result.exit_code,
                    command=command,
                    details={"stderr": result.stderr.strip()} if result.stderr.strip() else None,
                )

        return result

    # Files

    def copy_file(self, source: str | Path, destination: str | Path) -> None:
        pattern = str(source)
        if any(c in pattern for c in "*?["):
            sources = [Path(p) for p in sorted(glob.glob(pattern))]
        else:
            sources = [Path(source)]
        dest = Path(destination)

        if len(sources) > 1 or str(destination).endswith(("/", "\\")):
            dest.mkdir(parents=True, exist_ok=True)

        for src in sources:
            if not src.exists():
                raise DeploymentError(f"Source file not found: {src}")
            self.log(f"Copying [{src}] to [{dest}]", source="copy")
            if src.is_dir():
                shutil.copytree(src, dest / src.name, dirs_exist_ok=True)
            else:
                shutil.copy2(src, dest)

    def create_folder(self, path: str | Path) -> None:
        folder = Path(path)
        if folder.is_dir():
            return
        self.log(f"Creating folder [{folder}]", source="folder")
        folder.mkdir(parents=True, exist_ok=True)

    # Helpers

    def find_running(self, names: tuple[str, ...]) -> list[psutil.Process]:
        """Find running processes by executable name, with or without .exe."""
        if not names:
            return []
        wanted = {n.lower().removesuffix(".exe") for n in names}
        running = []
        for proc in psutil.process_iter(["name"]):
            name = (proc.info.get("name") or "").lower().removesuffix(".exe")
            if name in wanted:
                running.append(proc)
        return running

    def close_processes(self, processes: list[psutil.Process], timeout: int = 60) -> None:
        """Terminate processes, killing whatever is still alive after the timeout.

        Processes this account may not signal are logged and left running.
        """
        closing = []
        for proc in processes:
            self.log(f"Closing [{proc.info['name']}] (pid {proc.pid})", source="welcome")
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                self.log(f"Access denied closing [{proc.pid}]", Severity.WARNING, source="welcome")
                continue
            closing.append(proc)

        if not closing:
            return

        _, alive = psutil.wait_procs(closing, timeout=timeout)
        for proc in alive:
            self.log(f"Killing [{proc.pid}] after {timeout}s", Severity.WARNING, source="welcome")
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied:
                self.log(f"Access denied killing [{proc.pid}]", Severity.WARNING, source="welcome")

    def _check_disk_space(self, required_mb: int) -> None:
        anchor = Path(self.log_dir.anchor or "/")
        free = psutil.disk_usage(str(anchor)).free
        if free < required_mb * 1024 * 1024:
            raise DeploymentError(
                f"Insufficient disk space: {format_bytes(free)} free, {required_mb} MB required",
                details={"drive": str(anchor)},
            )
        self.log(f"Disk space check passed: {format_bytes(free)} free", source="welcome")
