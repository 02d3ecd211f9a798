import pytest

from agnodeinstaller.errors import InstallerError
from agnodeinstaller.models import EndpointConfig, HostProfile, PackageManagerKind, ProxyChoice
from agnodeinstaller.services.packages import PackageService
from agnodeinstaller.services.web_server import WebServerService


class RecordingFileSystem:
    def __init__(self):
        self.installed = {}

    def install_file(self, content, destination, owner, mode, label):
        self.installed[destination] = (content, owner, mode)


ENDPOINT = EndpointConfig(url="https://node.example.org", domain="node.example.org")


def _which_only(*available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


def _service(tmp_path, runner, logger, console, which=None, kind=PackageManagerKind.APT):
    packages = PackageService(
        HostProfile(distribution_id="debian", package_manager=kind),
        runner,
        logger,
        console,
        which=which or _which_only(),
    )
    filesystem = RecordingFileSystem()
    service = WebServerService(
        packages,
        filesystem,
        runner,
        logger,
        console,
        nginx_root=str(tmp_path / "nginx"),
        apache_root=str(tmp_path / "apache2"),
        httpd_root=str(tmp_path / "httpd"),
    )
    return service, filesystem


def test_nginx_template_proxies_default_and_session_paths(tmp_path, logger, console, make_runner):
    service, _ = _service(tmp_path, make_runner(), logger, console)

    content = service.render(ProxyChoice.NGINX, "node.example.org")

    assert "server_name node.example.org;" in content
    assert "proxy_pass http://localhost:26490;" in content
    assert "location /session/ {" in content
    assert "proxy_pass http://localhost:26490/session/;" in content
    assert "proxy_set_header Upgrade $http_upgrade;" in content
    assert 'proxy_set_header Connection "upgrade";' in content


def test_apache_template_rewrites_websocket_upgrades(tmp_path, logger, console, make_runner):
    (tmp_path / "apache2" / "sites-available").mkdir(parents=True)
    service, _ = _service(tmp_path, make_runner(), logger, console)

    content = service.render(ProxyChoice.APACHE, "node.example.org")

    assert "<VirtualHost *:80>" in content
    assert "ServerName node.example.org" in content
    assert "ProxyPass / http://localhost:26490/" in content
    assert "RewriteCond %{HTTP:Upgrade} =websocket [NC]" in content
    assert "ws://localhost:26490/$1 [P,L]" in content
    assert "RequestHeader set X-Forwarded-For %{REMOTE_ADDR}s" in content
    assert "${APACHE_LOG_DIR}/ag-node-error.log" in content


def test_config_paths_follow_distribution_layout(tmp_path, logger, console, make_runner):
    service, _ = _service(tmp_path, make_runner(), logger, console)

    conf, enabled = service.config_paths(ProxyChoice.NGINX)
    assert conf == enabled == str(tmp_path / "nginx" / "conf.d" / "ag-node.conf")

    (tmp_path / "nginx" / "sites-available").mkdir(parents=True)
    conf, enabled = service.config_paths(ProxyChoice.NGINX)
    assert conf == str(tmp_path / "nginx" / "sites-available" / "ag-node")
    assert enabled == str(tmp_path / "nginx" / "sites-enabled" / "ag-node")

    conf, enabled = service.config_paths(ProxyChoice.APACHE)
    assert conf == enabled == str(tmp_path / "httpd" / "conf.d" / "ag-node.conf")


def test_configure_nginx_links_validates_then_reloads(tmp_path, logger, console, make_runner):
    (tmp_path / "nginx" / "sites-available").mkdir(parents=True)
    runner = make_runner()
    service, filesystem = _service(tmp_path, runner, logger, console)

    conf_path = service.configure(ProxyChoice.NGINX, ENDPOINT)

    content, owner, mode = filesystem.installed[conf_path]
    assert "server_name node.example.org;" in content
    assert (owner, mode) == ("root:root", "644")
    link = ["ln", "-s", conf_path, str(tmp_path / "nginx" / "sites-enabled" / "ag-node")]
    assert runner.calls.index(link) < runner.calls.index(["nginx", "-t"])
    assert runner.calls.index(["nginx", "-t"]) < runner.calls.index(["systemctl", "reload", "nginx"])
    assert not runner.ran("systemctl", "restart")


def test_configure_apache_enables_site_with_a2ensite(tmp_path, logger, console, make_runner):
    (tmp_path / "apache2" / "sites-available").mkdir(parents=True)
    runner = make_runner()
    service, _ = _service(tmp_path, runner, logger, console)

    service.configure(ProxyChoice.APACHE, ENDPOINT)

    assert ["a2ensite", "ag-node"] in runner.calls
    assert ["apache2ctl", "configtest"] in runner.calls
    assert ["systemctl", "reload", "apache2"] in runner.calls


def test_failed_syntax_check_never_reloads(tmp_path, logger, console, make_runner):
    runner = make_runner({("nginx", "-t"): (1, "", "unexpected end of file")})
    service, _ = _service(tmp_path, runner, logger, console)

    with pytest.raises(InstallerError, match="configuration test failed"):
        service.configure(ProxyChoice.NGINX, ENDPOINT)

    assert not runner.ran("systemctl", "reload")


def test_setup_uses_detected_server_without_prompting(tmp_path, logger, console, make_runner, make_prompter):
    service, _ = _service(tmp_path, make_runner(), logger, console, which=_which_only("nginx"))
    prompter = make_prompter()

    assert service.setup(prompter) == ProxyChoice.NGINX
    assert prompter.asked == []


def test_setup_prompts_and_installs_when_nothing_detected(tmp_path, logger, console, make_runner, make_prompter):
    installed = {"value": False}

    def unit_files(_cmd):
        return 0, ("nginx.service enabled enabled\n" if installed["value"] else ""), ""

    def apt_install(_cmd):
        installed["value"] = True
        return 0, "", ""

    runner = make_runner(
        {("systemctl", "list-unit-files"): unit_files, ("apt-get", "install"): apt_install}
    )
    service, _ = _service(tmp_path, runner, logger, console)
    prompter = make_prompter(answers=["3", "2"])

    assert service.setup(prompter) == ProxyChoice.NGINX
    assert ["apt-get", "install", "-y", "nginx"] in runner.calls
    assert ["systemctl", "enable", "nginx"] in runner.calls
    assert "Invalid choice" in console.text
