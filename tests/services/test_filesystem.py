import os
import stat

import pytest

from agnodeinstaller.errors import InstallerError
from agnodeinstaller.services.filesystem import FileSystemService


def _staged_path(runner):
    return next(call[1] for call in runner.calls if call[0] == "mv")


@pytest.mark.parametrize(
    "destination, suffix",
    [
        ("/etc/apt/keyrings/docker.asc", ".asc"),
        ("/etc/apt/sources.list.d/docker.list", ".list"),
        ("/etc/nginx/conf.d/ag-node.conf", ".conf"),
    ],
)
def test_install_file_stages_with_destination_suffix(destination, suffix, logger, console, make_runner):
    runner = make_runner()
    service = FileSystemService(logger, console, command_runner=runner)

    service.install_file("content\n", destination, owner="root:root", mode="644", label="file")

    staged = _staged_path(runner)
    assert os.path.splitext(staged)[1] == suffix
    assert not os.path.exists(staged)
    assert ["chown", "root:root", destination] in runner.calls
    assert ["chmod", "644", destination] in runner.calls


def test_install_file_failure_names_label(logger, console, make_runner):
    runner = make_runner({("mv",): (1, "", "permission denied")})
    service = FileSystemService(logger, console, command_runner=runner)

    with pytest.raises(InstallerError, match="Failed to create Docker repository"):
        service.install_file("deb ...\n", "/etc/apt/sources.list.d/docker.list", "root:root", "644", "Docker repository")

    assert not os.path.exists(_staged_path(runner))


def test_write_private_file_tightens_existing_file(tmp_path, logger, console):
    path = tmp_path / ".ag-node.env"
    path.write_text("old\n", encoding="utf-8")
    os.chmod(path, 0o644)

    FileSystemService(logger, console).write_private_file(str(path), "PRIVATE_KEY=0xabc\n", 0o600)

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert path.read_text(encoding="utf-8") == "PRIVATE_KEY=0xabc\n"
