import subprocess
import sys

import pytest

import agnodeinstaller.services.command_runner as command_runner_module
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.services.command_runner import CommandRunner


def test_command_runner_raises_with_stderr(logger):
    runner = CommandRunner(logger=logger, use_sudo=False)

    with pytest.raises(InstallerError, match="boom"):
        runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(1)"],
            check=True,
        )


def test_command_runner_returns_when_check_disabled(logger):
    runner = CommandRunner(logger=logger, use_sudo=False)

    result = runner.run([sys.executable, "-c", "import sys; sys.exit(1)"], check=False)

    assert result.returncode == 1


def test_command_runner_timeout_raises_error(logger):
    runner = CommandRunner(logger=logger, use_sudo=False)

    with pytest.raises(InstallerError, match="timed out"):
        runner.run([sys.executable, "-c", "import time; time.sleep(2)"], timeout=0.1)


def test_command_runner_reports_missing_binary(logger):
    runner = CommandRunner(logger=logger, use_sudo=False)

    with pytest.raises(InstallerError, match="Required command not found"):
        runner.run(["definitely-not-a-real-command-agnode"])

    assert runner.succeeds(["definitely-not-a-real-command-agnode"]) is False


def test_command_runner_prefixes_sudo_and_env(logger, monkeypatch):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        captured["env"] = kwargs.get("env")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(command_runner_module.subprocess, "run", fake_run)
    runner = CommandRunner(logger=logger, use_sudo=True)

    runner.run(["apt-get", "install", "-y", "curl"], sudo=True, env={"DEBIAN_FRONTEND": "noninteractive"})

    assert captured["cmd"] == [
        "sudo",
        "env",
        "DEBIAN_FRONTEND=noninteractive",
        "apt-get",
        "install",
        "-y",
        "curl",
    ]
    assert captured["env"] is None


def test_command_runner_skips_sudo_when_root(logger, monkeypatch):
    captured = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(command_runner_module.subprocess, "run", fake_run)
    runner = CommandRunner(logger=logger, use_sudo=False)

    runner.run(["systemctl", "reload", "nginx"], sudo=True)

    assert captured["cmd"] == ["systemctl", "reload", "nginx"]
