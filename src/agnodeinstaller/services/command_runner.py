"""Subprocess execution service for AG Node Installer."""

import os
import subprocess
from typing import Dict, List, Optional

from agnodeinstaller.errors import InstallerError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None, use_sudo: Optional[bool] = None):
        self.logger = logger
        self.default_timeout = default_timeout
        if use_sudo is None:
            use_sudo = hasattr(os, "geteuid") and os.geteuid() != 0
        self.use_sudo = use_sudo

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = True,
        sudo: bool = False,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        if sudo and self.use_sudo:
            if env:
                cmd = ["sudo", "env"] + [f"{key}={value}" for key, value in env.items()] + list(cmd)
                env = None
            else:
                cmd = ["sudo"] + list(cmd)

        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout
        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
                env=run_env,
            )
        except FileNotFoundError as exc:
            raise InstallerError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise InstallerError(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc
        except Exception as exc:
            raise InstallerError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise InstallerError(message)

        self.logger.debug(message)
        return result

    def succeeds(self, cmd: List[str], sudo: bool = False) -> bool:
        """Returns True when the command exits zero; missing binaries count as failure."""
        try:
            result = self.run(cmd, check=False, sudo=sudo)
        except InstallerError as exc:
            self.logger.debug("%s", exc)
            return False
        return result.returncode == 0
