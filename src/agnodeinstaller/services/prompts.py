"""Interactive operator prompts for AG Node Installer."""

import click


class PromptService:
    """Thin wrapper over click prompts so steps can be driven by a fake in tests."""

    def ask(self, message: str, default: str = "") -> str:
        value = click.prompt(message, default=default, show_default=False)
        return value.strip()

    def ask_secret(self, message: str) -> str:
        return click.prompt(message, default="", hide_input=True, show_default=False)

    def confirm(self, message: str) -> bool:
        return click.confirm(message, default=False)
