"""Actionable error catalog for AG Node Installer."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "sudo_required": {
        "what": "This installer requires sudo privileges to install and configure software.",
        "next": "Run it as a user with sudo privileges, or run `sudo -v` first.",
    },
    "os_unknown": {
        "what": "Cannot determine operating system: {path} not found.",
        "next": "Run the installer on a Linux distribution that ships /etc/os-release.",
    },
    "package_manager_unsupported": {
        "what": "Could not determine package manager.",
        "next": "Only APT, DNF, YUM, and Pacman are supported.",
    },
    "package_install_failed": {
        "what": "{manager} failed to install packages: {packages}.",
        "next": "Check network access and the package database, then rerun the installer.",
    },
    "service_not_running": {
        "what": "{service} failed to start.",
        "next": "Check the configuration and start it manually with `sudo systemctl start {service}`.",
    },
    "certificate_failed": {
        "what": "Failed to obtain SSL certificate with exit code {exit_code}.",
        "next": "Make sure port 80 is reachable from the internet and the domain points to this host.",
    },
    "container_failed": {
        "what": "AG Node container failed to start or immediately exited.",
        "next": "Inspect `sudo docker logs {name}`, fix the cause, and rerun the installer.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
