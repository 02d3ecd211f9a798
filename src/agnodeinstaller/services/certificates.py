"""TLS certificate provisioning through Certbot."""

import os

from agnodeinstaller.constants import LETSENCRYPT_LIVE_DIR
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.errors_catalog import actionable_error
from agnodeinstaller.models import EndpointConfig, ProxyChoice
from agnodeinstaller.services.host_probe import certbot_packages


class CertificateService:
    """Installs Certbot and obtains a certificate for the node domain."""

    def __init__(self, package_service, command_runner, logger, console, live_dir: str = LETSENCRYPT_LIVE_DIR):
        self.packages = package_service
        self.command_runner = command_runner
        self.logger = logger
        self.console = console
        self.live_dir = live_dir

    def install_certbot(self, proxy: ProxyChoice):
        if self.packages.which("certbot"):
            self.console.print("[blue]Certbot is already installed.[/blue]")
            return

        self.console.print("[blue]Installing Certbot for SSL certificates...[/blue]")
        self.packages.install(*certbot_packages(self.packages.host.package_manager, proxy))

        self.console.print("[blue]Setting up automatic certificate renewal...[/blue]")
        try:
            self.command_runner.run(["systemctl", "enable", "certbot.timer"], sudo=True)
            self.command_runner.run(["systemctl", "start", "certbot.timer"], sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to enable automatic certificate renewal.\n{exc}") from exc

        if not self.packages.which("certbot"):
            raise InstallerError("Certbot installation verification failed.")
        self.console.print("[green]Certbot has been successfully installed.[/green]")

    def obtain(self, proxy: ProxyChoice, endpoint: EndpointConfig, prompter) -> bool:
        """Returns False when the operator skips issuance."""
        domain = endpoint.domain
        self.console.print(f"[blue]Obtaining SSL certificate for {domain} using Certbot...[/blue]")

        if not self.packages.which("certbot"):
            self.console.print("[blue]Certbot is not installed. Installing it first...[/blue]")
            self.install_certbot(proxy)

        if not prompter.confirm(f"Do you want to obtain an SSL certificate for {domain} now?"):
            self.console.print("[blue]SSL certificate setup skipped.[/blue]")
            return False

        self.packages.ensure_service_running(proxy.value)

        email = prompter.ask("Enter your email address for certificate notifications")
        if not email:
            raise InstallerError("Email address is required for Let's Encrypt certificate.")

        self.console.print(f"[blue]Running Certbot with {proxy.value} plugin...[/blue]")
        result = self.command_runner.run(
            [
                "certbot",
                f"--{proxy.value}",
                "-d",
                domain,
                "--non-interactive",
                "--agree-tos",
                "--email",
                email,
            ],
            check=False,
            sudo=True,
        )

        if result.returncode != 0:
            output = "\n".join(part for part in (result.stdout, result.stderr) if part).strip()
            self.console.print("Certbot output:")
            self.console.print(output or "<no output>", markup=False)
            self.logger.error("Certbot failed:\n%s", output)
            raise InstallerError(actionable_error("certificate_failed", exit_code=str(result.returncode)))

        # The live directory is readable by root only.
        live_path = os.path.join(self.live_dir, domain)
        if not self.command_runner.succeeds(["test", "-d", live_path], sudo=True):
            raise InstallerError(
                "Certificate directory not found after Certbot ran successfully. This is unexpected."
            )

        self.console.print(f"[green]SSL certificate obtained successfully for {domain}[/green]")
        self.console.print("[blue]Certificate is installed and web server is configured to use HTTPS.[/blue]")
        return True
