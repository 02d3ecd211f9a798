"""Test doubles shared by the test suite."""

import subprocess

from agnodeinstaller.errors import InstallerError


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None

    def error(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def __init__(self):
        self.lines = []

    def print(self, *args, **_kwargs):
        self.lines.append(" ".join(str(arg) for arg in args))

    def rule(self, *_args, **_kwargs):
        return None

    @property
    def text(self):
        return "\n".join(self.lines)


class FakeCommandRunner:
    """Records commands and answers them from a prefix -> (returncode, stdout, stderr) table."""

    def __init__(self, responses=None, use_sudo=False):
        self.responses = dict(responses or {})
        self.use_sudo = use_sudo
        self.calls = []

    def _lookup(self, cmd):
        best = None
        for prefix, response in self.responses.items():
            if tuple(cmd[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best[0])):
                best = (prefix, response)
        if best is None:
            return 0, "", ""
        response = best[1]
        if callable(response):
            response = response(cmd)
        return response

    def run(self, cmd, check=True, capture_output=True, sudo=False, timeout=None, env=None):
        self.calls.append(list(cmd))
        returncode, stdout, stderr = self._lookup(list(cmd))
        if returncode != 0 and check:
            raise InstallerError(f"Command failed ({returncode}): {' '.join(cmd)}\n{stderr}")
        return subprocess.CompletedProcess(list(cmd), returncode, stdout=stdout, stderr=stderr)

    def succeeds(self, cmd, sudo=False):
        return self.run(cmd, check=False, sudo=sudo).returncode == 0

    def ran(self, *prefix):
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)


class FakePrompter:
    def __init__(self, answers=None, secrets=None, confirms=None):
        self.answers = list(answers or [])
        self.secrets = list(secrets or [])
        self.confirms = list(confirms or [])
        self.asked = []

    def ask(self, message, default=""):
        self.asked.append(message)
        return self.answers.pop(0)

    def ask_secret(self, message):
        self.asked.append(message)
        return self.secrets.pop(0)

    def confirm(self, message):
        self.asked.append(message)
        return self.confirms.pop(0)
