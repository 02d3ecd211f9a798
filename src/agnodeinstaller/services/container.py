"""AG Node container lifecycle."""

import os
import time
from typing import List

from agnodeinstaller.constants import (
    CONFIG_DIR_MODE,
    CONTAINER_CONFIG_DIR,
    CONTAINER_IMAGE,
    CONTAINER_NAME,
    CONTAINER_SETTLE_SECONDS,
    DOCKER_SOCKET,
    UPSTREAM_PORT,
)
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.errors_catalog import actionable_error
from agnodeinstaller.models import ContainerSpec


def default_container_spec(env_file: str) -> ContainerSpec:
    return ContainerSpec(
        name=CONTAINER_NAME,
        image=CONTAINER_IMAGE,
        port=UPSTREAM_PORT,
        env_file=env_file,
        volumes=((CONTAINER_CONFIG_DIR, CONTAINER_CONFIG_DIR), (DOCKER_SOCKET, DOCKER_SOCKET)),
        restart_policy="always",
        extra_hosts=("host.docker.internal:host-gateway",),
    )


def build_run_command(spec: ContainerSpec) -> List[str]:
    cmd = ["docker", "run", "-d"]
    for host in spec.extra_hosts:
        cmd.append(f"--add-host={host}")
    cmd += [
        f"--env-file={spec.env_file}",
        "--restart",
        spec.restart_policy,
        "-p",
        f"{spec.port}:{spec.port}",
        "--name",
        spec.name,
    ]
    for source, target in spec.volumes:
        cmd += ["-v", f"{source}:{target}"]
    cmd.append(spec.image)
    return cmd


class ContainerService:
    """Replaces, pulls, runs and verifies the single node container."""

    def __init__(self, filesystem_service, command_runner, logger, console, config_dir: str = CONTAINER_CONFIG_DIR):
        self.filesystem = filesystem_service
        self.command_runner = command_runner
        self.logger = logger
        self.console = console
        self.config_dir = config_dir

    def container_names(self, all_containers: bool = False) -> List[str]:
        cmd = ["docker", "ps", "--format", "{{.Names}}"]
        if all_containers:
            cmd.insert(2, "-a")
        result = self.command_runner.run(cmd, sudo=True)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def launch(self, spec: ContainerSpec, prompter) -> bool:
        """Returns False when an existing container was kept as is."""
        self.console.rule("[bold]STARTING AG-NODE DOCKER CONTAINER[/bold]")

        if not os.path.isfile(spec.env_file):
            raise InstallerError(
                f"{os.path.basename(spec.env_file)} file not found at {spec.env_file}. "
                "Cannot start the Docker container."
            )

        self.console.print("[blue]Creating required directories...[/blue]")
        self.filesystem.ensure_dir(self.config_dir, CONFIG_DIR_MODE)

        if spec.name in self.container_names(all_containers=True):
            self.console.print(f"[blue]A Docker container named '{spec.name}' already exists.[/blue]")
            if not prompter.confirm("Do you want to remove it and create a new one?"):
                self.console.print("[blue]Keeping existing container. Docker setup skipped.[/blue]")
                return False
            self.remove(spec.name)

        self.console.print(f"[blue]Pulling the latest image {spec.image}...[/blue]")
        try:
            self.command_runner.run(["docker", "pull", spec.image], sudo=True)
        except InstallerError as exc:
            raise InstallerError(
                "Failed to pull the AG Node Docker image. "
                f"Please check your internet connection and registry access.\n{exc}"
            ) from exc

        self.console.print(f"[blue]Starting {spec.name} container...[/blue]")
        try:
            self.command_runner.run(build_run_command(spec), sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to start AG Node Docker container.\n{exc}") from exc

        time.sleep(CONTAINER_SETTLE_SECONDS)

        if spec.name not in self.container_names():
            self.dump_logs(spec.name)
            raise InstallerError(actionable_error("container_failed", name=spec.name))

        self.console.print("[green]AG Node Docker container started successfully![/green]")
        self.console.print(f"[blue]Container logs can be viewed with: sudo docker logs {spec.name}[/blue]")
        return True

    def remove(self, name: str):
        self.console.print("[blue]Stopping and removing existing container...[/blue]")
        result = self.command_runner.run(["docker", "stop", name], check=False, sudo=True)
        if result.returncode != 0:
            self.logger.warning("Failed to stop existing %s container.", name)
            self.console.print(f"[yellow]Warning:[/yellow] Failed to stop existing {name} container.")

        try:
            self.command_runner.run(["docker", "rm", name], sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to remove existing {name} container.\n{exc}") from exc

    def dump_logs(self, name: str):
        result = self.command_runner.run(["docker", "logs", name], check=False, sudo=True)
        output = "\n".join(part for part in (result.stdout, result.stderr) if part).strip()
        self.console.print("Container logs:")
        self.console.print(output or "<no output>", markup=False)
        self.logger.error("Container %s logs:\n%s", name, output)
