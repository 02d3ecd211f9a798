"""Filesystem helpers for AG Node Installer."""

import logging
import os
import tempfile

from rich.console import Console

from agnodeinstaller.errors import InstallerError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console, command_runner=None):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner

    def write_private_file(self, path: str, content: str, mode: int):
        """Writes ``content`` so the file never holds data under looser permissions than ``mode``."""
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        except OSError as exc:
            raise InstallerError(f"Failed to create {path}: {exc}") from exc

        try:
            # O_CREAT ignores mode for an existing file, so tighten before writing.
            os.fchmod(fd, mode)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as file_obj:
                fd = None
                file_obj.write(content)
                file_obj.flush()
                os.fsync(file_obj.fileno())
        except OSError as exc:
            raise InstallerError(f"Failed to write {path}: {exc}") from exc
        finally:
            if fd is not None:
                os.close(fd)

    def install_file(self, content: str, destination: str, owner: str, mode: str, label: str):
        """Stages content in a temp file and moves it into place with elevated privileges."""
        fd, temp_path = tempfile.mkstemp(prefix="ag-node-", suffix=os.path.splitext(destination)[1])
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(content)
        except OSError as exc:
            raise InstallerError(f"Could not stage {label}: {exc}") from exc

        try:
            self._privileged(["mv", temp_path, destination], f"Failed to create {label} at {destination}")
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as exc:
                    self.logger.warning("Could not remove %s: %s", temp_path, exc)

        self._privileged(["chown", owner, destination], f"Failed to set ownership of {label}")
        self._privileged(["chmod", mode, destination], f"Failed to set permissions of {label}")

    def ensure_dir(self, path: str, mode: str):
        self._privileged(["mkdir", "-p", path], f"Failed to create {path} directory")
        self._privileged(["chmod", mode, path], f"Failed to set permissions on {path} directory")

    def _privileged(self, cmd, failure: str):
        try:
            self.command_runner.run(cmd, sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"{failure}.\n{exc}") from exc
