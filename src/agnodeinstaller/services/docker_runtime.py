"""Docker engine installation for AG Node Installer."""

import getpass
import os
from typing import Tuple

import requests

from agnodeinstaller.constants import DOCKER_REPO_BASE
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.models import HostProfile, PackageManagerKind

DOCKER_PACKAGES = ("docker-ce", "docker-ce-cli", "containerd.io")
APT_KEYRING = "/etc/apt/keyrings/docker.asc"
APT_SOURCE_LIST = "/etc/apt/sources.list.d/docker.list"


def apt_repository(host: HostProfile) -> Tuple[str, str]:
    """Returns the (distro, codename) pair of the Docker apt repository for this host.

    Derivatives such as Mint or Raspbian have no repository of their own, so they
    follow their parent distribution from ``ID_LIKE`` and ``UBUNTU_CODENAME``.
    """
    if host.distribution_id in ("debian", "ubuntu"):
        return host.distribution_id, host.version_codename
    like = host.distribution_like.lower().split()
    if host.ubuntu_codename or "ubuntu" in like:
        return "ubuntu", host.ubuntu_codename or host.version_codename
    if "debian" in like:
        return "debian", host.version_codename
    return "ubuntu", host.version_codename


class DockerRuntimeService:
    """Installs and enables the Docker engine when it is not already usable."""

    def __init__(self, package_service, filesystem_service, command_runner, logger, console, requests_module=requests):
        self.packages = package_service
        self.filesystem = filesystem_service
        self.command_runner = command_runner
        self.logger = logger
        self.console = console
        self.requests = requests_module

    def is_installed(self) -> bool:
        if not self.packages.which("docker"):
            return False
        return self.command_runner.succeeds(["docker", "--version"], sudo=True)

    def install(self, host: HostProfile):
        if self.is_installed():
            self.console.print("[blue]Docker is already installed.[/blue]")
            return

        self.console.print("[blue]Installing Docker...[/blue]")
        kind = host.package_manager
        if kind == PackageManagerKind.APT:
            self._install_apt(host)
        elif kind in (PackageManagerKind.DNF, PackageManagerKind.YUM):
            self._install_rpm(kind)
        elif kind == PackageManagerKind.PACMAN:
            self.packages.install("docker")
        else:
            raise InstallerError(f"Unsupported package manager for Docker installation: {kind}")

        self.packages.enable_service("docker")

        if not self.is_installed():
            raise InstallerError("Docker installation verification failed.")
        self.console.print("[green]Docker has been successfully installed.[/green]")

        self.add_user_to_group(self.invoking_user())

    def _install_apt(self, host: HostProfile):
        self.packages.install("apt-transport-https", "ca-certificates", "curl", "gnupg")

        distro, codename = apt_repository(host)
        if not codename:
            result = self.command_runner.run(["lsb_release", "-cs"])
            codename = result.stdout.strip()

        self.console.print("[blue]Adding Docker's GPG key...[/blue]")
        try:
            response = self.requests.get(f"{DOCKER_REPO_BASE}/{distro}/gpg", timeout=30)
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise InstallerError(f"Failed to download Docker's GPG key: {exc}") from exc

        self.filesystem.ensure_dir(os.path.dirname(APT_KEYRING), "755")
        self.filesystem.install_file(response.text, APT_KEYRING, owner="root:root", mode="644", label="Docker GPG key")

        self.console.print("[blue]Adding Docker repository...[/blue]")
        arch = self.command_runner.run(["dpkg", "--print-architecture"]).stdout.strip() or "amd64"
        source_line = (
            f"deb [arch={arch} signed-by={APT_KEYRING}] {DOCKER_REPO_BASE}/{distro} {codename} stable\n"
        )
        self.filesystem.install_file(
            source_line, APT_SOURCE_LIST, owner="root:root", mode="644", label="Docker repository"
        )

        self.packages.install(*DOCKER_PACKAGES)

    def _install_rpm(self, kind: PackageManagerKind):
        if kind == PackageManagerKind.DNF:
            self.packages.install("dnf-plugins-core")
            repo_cmd = ["dnf", "config-manager", "--add-repo", f"{DOCKER_REPO_BASE}/fedora/docker-ce.repo"]
        else:
            self.packages.install("yum-utils", "device-mapper-persistent-data", "lvm2")
            repo_cmd = ["yum-config-manager", "--add-repo", f"{DOCKER_REPO_BASE}/centos/docker-ce.repo"]

        self.console.print("[blue]Adding Docker repository...[/blue]")
        try:
            self.command_runner.run(repo_cmd, sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to add Docker repository.\n{exc}") from exc

        self.packages.install(*DOCKER_PACKAGES)

    @staticmethod
    def invoking_user() -> str:
        return os.environ.get("SUDO_USER") or getpass.getuser()

    def add_user_to_group(self, user: str):
        self.console.print(f"[blue]Adding user {user} to the docker group...[/blue]")
        result = self.command_runner.run(["usermod", "-aG", "docker", user], check=False, sudo=True)
        if result.returncode != 0:
            self.logger.warning("Failed to add %s to the docker group.", user)
            self.console.print(
                "[yellow]Warning:[/yellow] Failed to add user to docker group. "
                "You may need to use sudo with docker commands."
            )
            return
        self.console.print(
            f"[blue]Added {user} to the docker group. "
            "You may need to log out and back in for this to take effect.[/blue]"
        )
