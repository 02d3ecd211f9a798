"""Idempotent package and service management."""

import shutil
import time
from typing import Dict, List, Tuple

from agnodeinstaller.constants import REQUIRED_TOOLS, SERVICE_GRACE_SECONDS
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.errors_catalog import actionable_error
from agnodeinstaller.models import HostProfile, PackageManagerKind
from agnodeinstaller.services.host_probe import dependency_packages, service_name

PACKAGE_COMMANDS: Dict[PackageManagerKind, Tuple[List[str], List[str]]] = {
    PackageManagerKind.APT: (["apt-get", "update", "-y"], ["apt-get", "install", "-y"]),
    PackageManagerKind.DNF: (["dnf", "update", "-y"], ["dnf", "install", "-y"]),
    PackageManagerKind.YUM: (["yum", "update", "-y"], ["yum", "install", "-y"]),
    PackageManagerKind.PACMAN: (["pacman", "-Syu", "--noconfirm"], ["pacman", "-S", "--noconfirm"]),
}

PACKAGE_QUERIES: Dict[PackageManagerKind, List[str]] = {
    PackageManagerKind.APT: ["dpkg-query", "-W", "-f=${Status}"],
    PackageManagerKind.DNF: ["rpm", "-q"],
    PackageManagerKind.YUM: ["rpm", "-q"],
    PackageManagerKind.PACMAN: ["pacman", "-Q"],
}


class PackageService:
    """Wraps presence checks around every package and service mutation."""

    def __init__(self, host: HostProfile, command_runner, logger, console, which=shutil.which):
        self.host = host
        self.command_runner = command_runner
        self.logger = logger
        self.console = console
        self.which = which

    def is_present(self, name: str) -> bool:
        if self.which(name):
            return True
        return self.package_installed(name) or self.service_installed(name)

    def package_installed(self, name: str) -> bool:
        query = PACKAGE_QUERIES.get(self.host.package_manager)
        if query is None:
            return False
        try:
            result = self.command_runner.run(query + [name], check=False)
        except InstallerError as exc:
            self.logger.debug("Could not query package database: %s", exc)
            return False
        if result.returncode != 0:
            return False
        # dpkg keeps removed packages around in "deinstall ok config-files" state.
        if self.host.package_manager == PackageManagerKind.APT:
            return "install ok installed" in result.stdout
        return bool(result.stdout.strip())

    def service_installed(self, name: str) -> bool:
        unit = f"{service_name(name)}.service"
        try:
            result = self.command_runner.run(["systemctl", "list-unit-files"], check=False)
        except InstallerError as exc:
            self.logger.debug("Could not list unit files: %s", exc)
            return False
        if result.returncode != 0:
            return False
        return any(line.split()[0] == unit for line in result.stdout.splitlines() if line.strip())

    def install(self, *names: str):
        missing = [name for name in names if not self.is_present(name)]
        if not missing:
            self.logger.info("Already installed, skipping: %s", " ".join(names))
            return

        package_list = " ".join(missing)
        manager = self.host.package_manager
        if manager not in PACKAGE_COMMANDS:
            raise InstallerError(f"Unsupported package manager: {manager}")

        update_cmd, install_cmd = PACKAGE_COMMANDS[manager]
        env = {"DEBIAN_FRONTEND": "noninteractive"} if manager == PackageManagerKind.APT else None

        self.console.print(f"[blue]Installing packages: {package_list}[/blue]")
        try:
            self.command_runner.run(update_cmd, sudo=True, env=env)
        except InstallerError as exc:
            raise InstallerError(f"{manager.value} failed to update package lists.\n{exc}") from exc
        try:
            self.command_runner.run(install_cmd + missing, sudo=True, env=env)
        except InstallerError as exc:
            message = actionable_error(
                "package_install_failed", manager=manager.value, packages=package_list
            )
            raise InstallerError(f"{message}\n{exc}") from exc

        self.console.print(f"[green]Packages installed successfully: {package_list}[/green]")

    def install_dependencies(self):
        self.console.print("[blue]Installing required dependencies...[/blue]")
        self.install(*dependency_packages(self.host.package_manager))

        for tool in REQUIRED_TOOLS:
            if not self.which(tool):
                raise InstallerError(
                    f"Required tool '{tool}' is not installed despite installation attempt."
                )
        self.console.print("[green]Dependencies installed successfully.[/green]")

    def is_active(self, name: str) -> bool:
        return self.command_runner.succeeds(
            ["systemctl", "is-active", "--quiet", service_name(name)], sudo=True
        )

    def ensure_service_running(self, name: str):
        unit = service_name(name)
        if not self.is_active(name):
            self.console.print(f"[yellow]Warning:[/yellow] {unit} is not running. Starting it now...")
            self.logger.warning("%s is not running, starting it", unit)
            self.command_runner.run(["systemctl", "start", unit], check=False, sudo=True)
            time.sleep(SERVICE_GRACE_SECONDS)

        if not self.is_active(name):
            raise InstallerError(actionable_error("service_not_running", service=unit))

    def enable_service(self, name: str):
        unit = service_name(name)
        self.console.print(f"[blue]Starting and enabling {unit}...[/blue]")
        try:
            self.command_runner.run(["systemctl", "start", unit], sudo=True)
            self.command_runner.run(["systemctl", "enable", unit], sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to start and enable {unit}.\n{exc}") from exc

    def restart_service(self, name: str):
        unit = service_name(name)
        try:
            self.command_runner.run(["systemctl", "restart", unit], sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to restart {unit}.\n{exc}") from exc
