import logging
import os

import click
from rich.logging import RichHandler

from .core import InstallerError, NodeInstaller
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_FILE = ".agnodeinstaller.yml"


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if config.get(key) is not None:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Show output of the underlying tools")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--env-file",
    required=False,
    type=click.Path(),
    help="Where to write the node env file (default: ./.ag-node.env).",
)
@click.option(
    "--max-url-attempts",
    required=False,
    type=click.IntRange(min=1),
    default=None,
    help="Give up after this many invalid node URLs (default: keep asking).",
)
@click.option(
    "--command-timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for each external command (default: none).",
)
def main(config, verbose, log_file, env_file, max_url_attempts, command_timeout):
    """Provision this host to run an AG node behind Apache or Nginx."""
    logger = logging.getLogger("agnodeinstaller")

    try:
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = ConfigLoader().load(resolved_config)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    env_file = _resolve_option(env_file, config_values, "env_file")
    max_url_attempts = _resolve_option(max_url_attempts, config_values, "max_url_attempts")
    command_timeout = _resolve_option(command_timeout, config_values, "command_timeout")
    public_ip_url = config_values.get("public_ip_url")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    options = {
        "env_file": env_file,
        "max_url_attempts": int(max_url_attempts) if max_url_attempts is not None else None,
        "command_timeout": float(command_timeout) if command_timeout is not None else None,
    }
    if public_ip_url:
        options["public_ip_url"] = public_ip_url

    try:
        installer = NodeInstaller(**options)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(installer.run())


if __name__ == "__main__":
    main()
