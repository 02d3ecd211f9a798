import os
import stat
from datetime import datetime, timezone

import pytest

from agnodeinstaller.errors import InstallerError
from agnodeinstaller.models import CredentialRecord, EndpointConfig, InstallerContext, ProxyChoice
from agnodeinstaller.services.credentials import CredentialService, render_env_file
from agnodeinstaller.services.filesystem import FileSystemService

CONTEXT = InstallerContext(
    endpoint=EndpointConfig(url="https://node.example.org", domain="node.example.org"),
    proxy=ProxyChoice.NGINX,
)


def _service(tmp_path, logger, console):
    env_file = tmp_path / ".ag-node.env"
    filesystem = FileSystemService(logger=logger, console=console)
    return CredentialService(str(env_file), filesystem, logger, console), env_file


def test_render_env_file_contains_required_keys():
    record = CredentialRecord(node_url="https://node.example.org", web_server="apache", private_key="0xabc")

    content = render_env_file(record, created_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc))

    assert content.splitlines() == [
        "# Alliance Games Node Environment Configuration",
        "# Created on: Fri Jan 02 03:04:05 UTC 2026",
        "NODE_URL=https://node.example.org",
        "WEB_SERVER=apache",
        "PRIVATE_KEY=0xabc",
    ]


def test_collect_writes_owner_only_env_file(tmp_path, logger, console, make_prompter):
    service, env_file = _service(tmp_path, logger, console)
    prompter = make_prompter(secrets=["0xsecret", "0xsecret"])

    service.collect(CONTEXT, prompter)

    content = env_file.read_text(encoding="utf-8")
    assert "NODE_URL=https://node.example.org\n" in content
    assert "WEB_SERVER=nginx\n" in content
    assert "PRIVATE_KEY=0xsecret\n" in content
    assert stat.S_IMODE(os.stat(env_file).st_mode) == 0o600


def test_mismatched_entries_reprompt_without_writing(tmp_path, logger, console, make_prompter):
    service, env_file = _service(tmp_path, logger, console)
    written = []
    original_write = service.filesystem.write_private_file

    def tracking_write(path, content, mode):
        written.append(content)
        original_write(path, content, mode)

    service.filesystem.write_private_file = tracking_write
    prompter = make_prompter(secrets=["0xfirst", "0xfirts", "0xsecond", "0xsecond"])

    service.collect(CONTEXT, prompter)

    assert len(written) == 1
    assert "PRIVATE_KEY=0xsecond" in written[0]
    assert len(prompter.asked) == 4
    assert "do not match" in console.text


def test_declined_overwrite_keeps_file_byte_identical(tmp_path, logger, console, make_prompter):
    service, env_file = _service(tmp_path, logger, console)
    original = b"NODE_URL=https://old.example.org\nPRIVATE_KEY=old\n"
    env_file.write_bytes(original)
    prompter = make_prompter(confirms=[False])

    assert service.collect(CONTEXT, prompter) == env_file
    assert env_file.read_bytes() == original


def test_overwrite_tightens_existing_permissions(tmp_path, logger, console, make_prompter):
    service, env_file = _service(tmp_path, logger, console)
    env_file.write_text("PRIVATE_KEY=old\n", encoding="utf-8")
    os.chmod(env_file, 0o644)
    prompter = make_prompter(confirms=[True], secrets=["0xnew", "0xnew"])

    service.collect(CONTEXT, prompter)

    assert stat.S_IMODE(os.stat(env_file).st_mode) == 0o600
    assert "PRIVATE_KEY=0xnew" in env_file.read_text(encoding="utf-8")


def test_empty_secret_is_fatal(tmp_path, logger, console, make_prompter):
    service, env_file = _service(tmp_path, logger, console)
    prompter = make_prompter(secrets=["", ""])

    with pytest.raises(InstallerError, match="cannot be empty"):
        service.collect(CONTEXT, prompter)

    assert not env_file.exists()


def test_missing_web_server_is_fatal(tmp_path, logger, console, make_prompter):
    service, env_file = _service(tmp_path, logger, console)
    prompter = make_prompter(secrets=["0xsecret", "0xsecret"])
    context = InstallerContext(endpoint=CONTEXT.endpoint)

    with pytest.raises(InstallerError, match="WEB_SERVER is not set"):
        service.collect(context, prompter)

    assert not env_file.exists()
