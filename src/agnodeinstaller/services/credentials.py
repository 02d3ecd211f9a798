"""Private key collection and env file persistence."""

from datetime import datetime
from pathlib import Path
from typing import Optional

from agnodeinstaller.constants import DASHBOARD_URL, ENV_FILE_MODE
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.models import CredentialRecord, InstallerContext


def render_env_file(record: CredentialRecord, created_at: Optional[datetime] = None) -> str:
    created_at = created_at or datetime.now().astimezone()
    lines = [
        "# Alliance Games Node Environment Configuration",
        f"# Created on: {created_at.strftime('%a %b %d %H:%M:%S %Z %Y')}",
        f"NODE_URL={record.node_url}",
        f"WEB_SERVER={record.web_server}",
        f"PRIVATE_KEY={record.private_key}",
    ]
    return "\n".join(lines) + "\n"


class CredentialService:
    """Collects the node private key and writes it to an owner-only env file."""

    def __init__(self, env_file: str, filesystem_service, logger, console):
        self.env_file = env_file
        self.filesystem = filesystem_service
        self.logger = logger
        self.console = console

    def collect(self, context: InstallerContext, prompter) -> Path:
        self._print_banner()

        path = Path(self.env_file)
        if path.exists():
            if not prompter.confirm(
                f"An existing {path.name} file was found. Do you want to overwrite it?"
            ):
                self.console.print(f"[blue]Keeping existing {path.name} file.[/blue]")
                return path

        private_key = prompter.ask_secret("Please enter your private key (input will be hidden)")
        confirm_key = prompter.ask_secret("Please confirm your private key (input will be hidden)")
        if private_key != confirm_key:
            self.console.print("[yellow]Error: Private keys do not match. Please try again.[/yellow]")
            self.logger.warning("Private key confirmation mismatch, restarting key collection.")
            return self.collect(context, prompter)

        if not private_key:
            raise InstallerError("Private key cannot be empty.")
        if context.endpoint is None:
            raise InstallerError(f"NODE_URL is not set. Cannot create {path.name} file.")
        if context.proxy is None:
            raise InstallerError(f"WEB_SERVER is not set. Cannot create {path.name} file.")

        record = CredentialRecord(
            node_url=context.endpoint.url,
            web_server=context.proxy.value,
            private_key=private_key,
        )

        self.console.print(f"[blue]Creating {path.name} file...[/blue]")
        self.filesystem.write_private_file(str(path), render_env_file(record), ENV_FILE_MODE)
        self.console.print(
            f"[green]Private key has been saved to {path} with restricted permissions.[/green]"
        )
        self.console.print("[blue]Only the owner of the file can read or modify it.[/blue]")
        return path

    def _print_banner(self):
        self.console.rule("[bold]PRIVATE KEY CONFIGURATION[/bold]")
        self.console.print("You need to obtain a private key from the Alliance Games dashboard.")
        self.console.print("This key is required for your node to connect to the network.")
        self.console.print(f"You can obtain your private key at: {DASHBOARD_URL}")
        self.console.print("")
