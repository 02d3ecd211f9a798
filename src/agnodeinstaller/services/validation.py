"""Node URL validation: the domain must resolve to this host."""

import ipaddress
import re
from typing import List, Optional, Set
from urllib.parse import urlparse

import requests

from agnodeinstaller.constants import PUBLIC_IP_TIMEOUT, PUBLIC_IP_URL
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.models import EndpointConfig, ValidationResult

DOMAIN_PATTERN = re.compile(r"^https://([^:/]+)")


def extract_domain(url: str) -> Optional[str]:
    match = DOMAIN_PATTERN.match(url)
    return match.group(1) if match else None


def ipv4_addresses(tokens) -> List[str]:
    addresses = []
    for token in tokens:
        try:
            address = ipaddress.ip_address(token.strip())
        except ValueError:
            continue
        if address.version == 4 and str(address) not in addresses:
            addresses.append(str(address))
    return addresses


class EndpointValidator:
    """Checks that a node URL is HTTPS and points at one of this host's addresses."""

    def __init__(
        self,
        command_runner,
        logger,
        console,
        requests_module=requests,
        public_ip_url: str = PUBLIC_IP_URL,
    ):
        self.command_runner = command_runner
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.public_ip_url = public_ip_url

    def resolve_domain(self, domain: str) -> List[str]:
        result = self.command_runner.run(["dig", "+short", domain], check=False)
        addresses = ipv4_addresses(result.stdout.split()) if result.returncode == 0 else []
        if addresses:
            return addresses

        result = self.command_runner.run(["host", domain], check=False)
        if result.returncode != 0:
            return []
        return ipv4_addresses(
            line.split()[-1] for line in result.stdout.splitlines() if "has address" in line
        )

    def local_addresses(self) -> List[str]:
        try:
            result = self.command_runner.run(["hostname", "-I"], check=False)
        except InstallerError as exc:
            self.logger.debug("%s", exc)
            result = None
        addresses = []
        if result is not None and result.returncode == 0:
            addresses = ipv4_addresses(result.stdout.split())
        if not addresses:
            self.logger.warning("Could not determine local IP addresses.")
        return addresses

    def public_address(self) -> Optional[str]:
        try:
            response = self.requests.get(self.public_ip_url, timeout=PUBLIC_IP_TIMEOUT)
            response.raise_for_status()
        except self.requests.RequestException as exc:
            self.logger.warning("Could not determine public IP address: %s", exc)
            self.console.print(
                "[yellow]Warning:[/yellow] Public IP lookup failed, checking local addresses only."
            )
            return None

        found = ipv4_addresses([response.text])
        if not found:
            self.logger.warning("Public IP service returned an unexpected answer: %r", response.text)
            return None
        return found[0]

    def server_addresses(self) -> Set[str]:
        addresses = set(self.local_addresses())
        public_ip = self.public_address()
        if public_ip:
            addresses.add(public_ip)
        return addresses

    def validate(self, url: str) -> ValidationResult:
        url = (url or "").strip()
        if urlparse(url).scheme.lower() != "https" or not url.startswith("https://"):
            return ValidationResult.reject("URL must start with https://")

        domain = extract_domain(url)
        if not domain:
            return ValidationResult.reject(f"Could not extract a domain from {url}")

        self.console.print(f"[blue]Validating that {domain} resolves to this server...[/blue]")
        domain_ips = self.resolve_domain(domain)
        if not domain_ips:
            return ValidationResult.reject(f"Could not resolve domain {domain}")

        server_ips = self.server_addresses()
        if not server_ips:
            return ValidationResult.reject("Could not determine server IP addresses")

        matches = [address for address in domain_ips if address in server_ips]
        if not matches:
            return ValidationResult.reject(
                f"URL does not resolve to this server. Domain resolves to: {', '.join(domain_ips)}. "
                f"This server's IPs: {', '.join(sorted(server_ips))}"
            )

        self.console.print(f"[green]Verified: {domain} ({matches[0]}) resolves to this server.[/green]")
        return ValidationResult.accept(EndpointConfig(url=url, domain=domain))

    def prompt_node_url(self, prompter, max_attempts: Optional[int] = None) -> EndpointConfig:
        attempts = 0
        while True:
            attempts += 1
            url = prompter.ask("Enter your node URL (must use https and resolve to this server)")
            result = self.validate(url)
            if result.accepted:
                self.logger.info("Node URL validated successfully: %s", result.value.url)
                return result.value

            self.console.print(f"[yellow]Warning:[/yellow] {result.reason}")
            self.logger.warning("Invalid node URL %r: %s", url, result.reason)
            if max_attempts is not None and attempts >= max_attempts:
                raise InstallerError(
                    f"No valid node URL after {attempts} attempts. Last error: {result.reason}"
                )
            self.console.print("[yellow]Invalid URL. Please try again.[/yellow]")
