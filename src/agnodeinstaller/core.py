import dataclasses
import logging
import os
import shutil
from typing import Optional

import requests
from rich.console import Console

from .constants import CONTAINER_NAME, ENV_FILE_NAME, PUBLIC_IP_URL
from .errors import InstallerError
from .models import HostProfile, InstallerContext
from .services.certificates import CertificateService
from .services.command_runner import CommandRunner
from .services.container import ContainerService, default_container_spec
from .services.credentials import CredentialService
from .services.docker_runtime import DockerRuntimeService
from .services.filesystem import FileSystemService
from .services.host_probe import HostProbeService
from .services.packages import PackageService
from .services.prompts import PromptService
from .services.validation import EndpointValidator
from .services.web_server import WebServerService

console = Console()
logger = logging.getLogger("agnodeinstaller")


class NodeInstaller:
    def __init__(
        self,
        env_file: Optional[str] = None,
        max_url_attempts: Optional[int] = None,
        command_timeout: Optional[float] = None,
        public_ip_url: str = PUBLIC_IP_URL,
        command_runner: Optional[CommandRunner] = None,
        prompter: Optional[PromptService] = None,
        which=shutil.which,
        os_release_path: str = "/etc/os-release",
    ):
        if max_url_attempts is not None and max_url_attempts < 1:
            raise InstallerError("max_url_attempts must be a positive number.")

        self.env_file = os.path.abspath(env_file or os.path.join(os.getcwd(), ENV_FILE_NAME))
        self.max_url_attempts = max_url_attempts
        self.os_release_path = os_release_path
        self.which = which
        self.context = InstallerContext()
        self.current_step_name: Optional[str] = None

        self.command_runner = command_runner or CommandRunner(logger=logger, default_timeout=command_timeout)
        self.prompter = prompter or PromptService()
        self.filesystem_service = FileSystemService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.host_probe_service = HostProbeService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            which=which,
        )
        self.validator = EndpointValidator(
            command_runner=self.command_runner,
            logger=logger,
            console=console,
            requests_module=requests,
            public_ip_url=public_ip_url,
        )
        self.container_service = ContainerService(
            filesystem_service=self.filesystem_service,
            command_runner=self.command_runner,
            logger=logger,
            console=console,
        )

        # Built once the host profile is known.
        self.package_service: Optional[PackageService] = None
        self.web_server_service: Optional[WebServerService] = None
        self.certificate_service: Optional[CertificateService] = None
        self.docker_runtime_service: Optional[DockerRuntimeService] = None

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.current_step_name = name
        logger.debug("Starting step: %s", name)
        result = callback(*args, **kwargs)
        logger.debug("Finished step: %s", name)
        self.current_step_name = None
        return result

    def _bind_host(self, host: HostProfile):
        self.context = dataclasses.replace(self.context, host=host)
        self.package_service = PackageService(
            host=host,
            command_runner=self.command_runner,
            logger=logger,
            console=console,
            which=self.which,
        )
        self.web_server_service = WebServerService(
            package_service=self.package_service,
            filesystem_service=self.filesystem_service,
            command_runner=self.command_runner,
            logger=logger,
            console=console,
        )
        self.certificate_service = CertificateService(
            package_service=self.package_service,
            command_runner=self.command_runner,
            logger=logger,
            console=console,
        )
        self.docker_runtime_service = DockerRuntimeService(
            package_service=self.package_service,
            filesystem_service=self.filesystem_service,
            command_runner=self.command_runner,
            logger=logger,
            console=console,
            requests_module=requests,
        )

    def detect_host(self):
        host = self.host_probe_service.detect(self.os_release_path)
        self._bind_host(host)
        return host

    def prompt_node_url(self):
        endpoint = self.validator.prompt_node_url(self.prompter, max_attempts=self.max_url_attempts)
        self.context = dataclasses.replace(self.context, endpoint=endpoint)
        console.print(f"[green]Node URL validated successfully: {endpoint.url}[/green]")
        return endpoint

    def setup_web_server(self):
        proxy = self.web_server_service.setup(self.prompter)
        self.context = dataclasses.replace(self.context, proxy=proxy)
        return proxy

    def configure_web_server(self):
        return self.web_server_service.configure(self.context.proxy, self.context.endpoint)

    def install_certbot(self):
        self.certificate_service.install_certbot(self.context.proxy)

    def obtain_certificate(self):
        return self.certificate_service.obtain(self.context.proxy, self.context.endpoint, self.prompter)

    def install_docker(self):
        self.docker_runtime_service.install(self.context.host)

    def setup_private_key(self):
        service = CredentialService(
            env_file=self.env_file,
            filesystem_service=self.filesystem_service,
            logger=logger,
            console=console,
        )
        return service.collect(self.context, self.prompter)

    def start_container(self):
        return self.container_service.launch(default_container_spec(self.env_file), self.prompter)

    def print_summary(self):
        console.rule("[bold]INSTALLATION COMPLETE[/bold]")
        console.print("[green]Setup completed with:[/green]")
        console.print(f"- Node URL: {self.context.endpoint.url}")
        console.print(f"- Web Server: {self.context.proxy.value}")
        console.print(f"- Private key saved to: {self.env_file}")
        console.print(f"- Docker container name: {CONTAINER_NAME}")
        console.print("")
        console.print(f"Your node should now be accessible at: {self.context.endpoint.url}")
        console.print("")
        console.print(f"To check the status of your node, run: sudo docker logs {CONTAINER_NAME}")
        console.print(f"To stop your node, run: sudo docker stop {CONTAINER_NAME}")
        console.print(f"To start your node again, run: sudo docker start {CONTAINER_NAME}")

    def run(self) -> int:
        try:
            logger.info("Starting AG Node installer...")

            self._run_step("check_sudo", self.host_probe_service.check_sudo)
            self._run_step("detect_host", self.detect_host)
            self._run_step("install_dependencies", self.package_service.install_dependencies)
            self._run_step("prompt_node_url", self.prompt_node_url)
            self._run_step("setup_web_server", self.setup_web_server)
            self._run_step("configure_web_server", self.configure_web_server)
            self._run_step("install_certbot", self.install_certbot)
            self._run_step("obtain_certificate", self.obtain_certificate)
            self._run_step("install_docker", self.install_docker)
            self._run_step("setup_private_key", self.setup_private_key)
            self._run_step("start_container", self.start_container)

            self.print_summary()
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except InstallerError as exc:
            step = self.current_step_name or "run"
            console.print(f"[bold red]Error:[/bold red] {exc} (step: {step})")
            console.print("[bold red]Installation failed. Exiting...[/bold red]")
            logger.error("Step %s failed: %s", step, exc)
            return 1
        except Exception as exc:
            step = self.current_step_name or "run"
            console.print(f"[bold red]Unexpected error:[/bold red] {exc} (step: {step})")
            logger.exception("Unexpected error")
            return 1
