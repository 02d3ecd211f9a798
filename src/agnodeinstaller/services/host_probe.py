"""Operating system and package manager detection."""

import os
import shutil
from pathlib import Path
from typing import Dict, List

from agnodeinstaller.errors import InstallerError
from agnodeinstaller.errors_catalog import actionable_error
from agnodeinstaller.models import HostProfile, PackageManagerKind, ProxyChoice

PACKAGE_MANAGER_COMMANDS = (
    ("apt-get", PackageManagerKind.APT),
    ("dnf", PackageManagerKind.DNF),
    ("yum", PackageManagerKind.YUM),
    ("pacman", PackageManagerKind.PACMAN),
)

DNS_TOOLS_PACKAGES = {
    PackageManagerKind.APT: "dnsutils",
    PackageManagerKind.DNF: "bind-utils",
    PackageManagerKind.YUM: "bind-utils",
    PackageManagerKind.PACMAN: "bind-tools",
}

APACHE_PACKAGES = {
    PackageManagerKind.APT: "apache2",
    PackageManagerKind.DNF: "httpd",
    PackageManagerKind.YUM: "httpd",
    PackageManagerKind.PACMAN: "apache",
}


def parse_os_release(content: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip("\"'")
    return values


def dependency_packages(kind: PackageManagerKind) -> List[str]:
    return ["curl", "wget", DNS_TOOLS_PACKAGES[kind], "net-tools"]


def apache_package(kind: PackageManagerKind) -> str:
    return APACHE_PACKAGES[kind]


def certbot_packages(kind: PackageManagerKind, proxy: ProxyChoice) -> List[str]:
    prefix = "certbot-" if kind == PackageManagerKind.PACMAN else "python3-certbot-"
    return ["certbot", f"{prefix}{proxy.value}"]


def service_name(name: str, apache_root: str = "/etc/apache2") -> str:
    """Maps an abstract service name to the unit name used on this host."""
    if name in ("apache2", ProxyChoice.APACHE.value):
        return "apache2" if os.path.isdir(apache_root) else "httpd"
    return name


class HostProbeService:
    """Identifies the host once so later steps can stay distribution-agnostic."""

    def __init__(self, logger, console, command_runner, which=shutil.which):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.which = which

    def check_sudo(self):
        self.console.print("[blue]Checking sudo privileges...[/blue]")
        if not self.command_runner.use_sudo:
            self.logger.debug("Running as root, sudo check skipped.")
            return

        if not self.command_runner.succeeds(["sudo", "-n", "true"]):
            raise InstallerError(actionable_error("sudo_required"))
        self.console.print("[green]Sudo privileges confirmed.[/green]")

    def detect(self, os_release_path: str = "/etc/os-release") -> HostProfile:
        path = Path(os_release_path)
        if not path.is_file():
            raise InstallerError(actionable_error("os_unknown", path=os_release_path))

        try:
            values = parse_os_release(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise InstallerError(f"Could not read {os_release_path}: {exc}") from exc

        pretty_name = values.get("PRETTY_NAME") or values.get("NAME") or values.get("ID", "unknown")
        self.console.print(f"[blue]Operating system: {pretty_name}[/blue]")
        self.logger.info("Operating system: %s", pretty_name)

        kind = self._detect_package_manager()
        self.console.print(f"[blue]Package manager: {kind.value.upper()}[/blue]")
        self.logger.info("Package manager: %s", kind.value)

        return HostProfile(
            distribution_id=values.get("ID", "").lower(),
            package_manager=kind,
            distribution_like=values.get("ID_LIKE", ""),
            pretty_name=pretty_name,
            version_codename=values.get("VERSION_CODENAME", ""),
            ubuntu_codename=values.get("UBUNTU_CODENAME", ""),
        )

    def _detect_package_manager(self) -> PackageManagerKind:
        for command, kind in PACKAGE_MANAGER_COMMANDS:
            if self.which(command):
                return kind
        raise InstallerError(actionable_error("package_manager_unsupported"))
