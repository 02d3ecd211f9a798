"""Reverse proxy installation and virtual host configuration."""

import os
from typing import Optional, Tuple

from agnodeinstaller.constants import (
    APACHE_MODULES,
    CONFIG_FILE_MODE,
    SITE_NAME,
    UPSTREAM_PORT,
)
from agnodeinstaller.errors import InstallerError
from agnodeinstaller.models import EndpointConfig, ProxyChoice
from agnodeinstaller.services.host_probe import apache_package, service_name

NGINX_TEMPLATE = """server {{
    listen 80;
    server_name {domain};

    location / {{
        proxy_pass http://localhost:{port};
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
    }}

    location /session/ {{
        proxy_pass http://localhost:{port}/session/;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header Host $host;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection "upgrade";
    }}
}}
"""

APACHE_TEMPLATE = """<VirtualHost *:80>
    ServerName {domain}

    ProxyPreserveHost On

    ProxyPass / http://localhost:{port}/
    ProxyPassReverse / http://localhost:{port}/

    <Location /session/>
        ProxyPass http://localhost:{port}/session/
        ProxyPassReverse http://localhost:{port}/session/

        RewriteEngine On
        RewriteCond %{{HTTP:Upgrade}} =websocket [NC]
        RewriteRule /(.*)           ws://localhost:{port}/$1 [P,L]

        RequestHeader set X-Forwarded-Proto "http"
        RequestHeader set X-Forwarded-Port "80"
        RequestHeader set X-Forwarded-For %{{REMOTE_ADDR}}s
    </Location>

    ErrorLog {log_dir}/{site}-error.log
    CustomLog {log_dir}/{site}-access.log combined
</VirtualHost>
"""


class WebServerService:
    """Installs Apache or Nginx and activates the node virtual host."""

    def __init__(
        self,
        package_service,
        filesystem_service,
        command_runner,
        logger,
        console,
        nginx_root: str = "/etc/nginx",
        apache_root: str = "/etc/apache2",
        httpd_root: str = "/etc/httpd",
    ):
        self.packages = package_service
        self.filesystem = filesystem_service
        self.command_runner = command_runner
        self.logger = logger
        self.console = console
        self.nginx_root = nginx_root
        self.apache_root = apache_root
        self.httpd_root = httpd_root

    def detect(self) -> Optional[ProxyChoice]:
        if self.packages.is_present("nginx"):
            return ProxyChoice.NGINX
        if self.packages.is_present("apache2"):
            return ProxyChoice.APACHE
        return None

    def choose(self, prompter) -> ProxyChoice:
        choices = {"1": ProxyChoice.APACHE, "2": ProxyChoice.NGINX}
        while True:
            self.console.print("Please select a web server to install:")
            self.console.print("1) Apache")
            self.console.print("2) Nginx")
            choice = prompter.ask("Enter your choice (1-2)")
            if choice in choices:
                return choices[choice]
            self.console.print("[yellow]Invalid choice. Please select 1 or 2.[/yellow]")

    def setup(self, prompter) -> ProxyChoice:
        proxy = self.detect()
        if proxy is not None:
            self.console.print(f"[blue]Using existing web server: {proxy.value}[/blue]")
            return proxy

        self.console.print("[yellow]Warning:[/yellow] No web server detected. You need to install one.")
        proxy = self.choose(prompter)
        self.install(proxy)
        self.console.print(f"[green]Web server setup completed with: {proxy.value}[/green]")
        return proxy

    def install(self, proxy: ProxyChoice):
        self.console.print(f"[blue]Installing {proxy.value} web server...[/blue]")
        if proxy == ProxyChoice.APACHE:
            self.packages.install(apache_package(self.packages.host.package_manager))
            if self.packages.which("a2enmod"):
                self.console.print("[blue]Enabling required Apache modules...[/blue]")
                for module in APACHE_MODULES:
                    try:
                        self.command_runner.run(["a2enmod", module], sudo=True)
                    except InstallerError as exc:
                        raise InstallerError(f"Failed to enable Apache module: {module}\n{exc}") from exc
                self.packages.restart_service(self._unit(proxy))
            else:
                self.packages.enable_service(self._unit(proxy))
        else:
            self.packages.install("nginx")
            self.packages.enable_service("nginx")

        if not self.packages.service_installed(self._unit(proxy)):
            raise InstallerError(f"{proxy.value} installation verification failed.")
        self.console.print(f"[green]{proxy.value} has been successfully installed.[/green]")

    def render(self, proxy: ProxyChoice, domain: str) -> str:
        if proxy == ProxyChoice.NGINX:
            return NGINX_TEMPLATE.format(domain=domain, port=UPSTREAM_PORT)
        log_dir = "${APACHE_LOG_DIR}" if self._has_sites_layout(self.apache_root) else "logs"
        return APACHE_TEMPLATE.format(domain=domain, port=UPSTREAM_PORT, log_dir=log_dir, site=SITE_NAME)

    def config_paths(self, proxy: ProxyChoice) -> Tuple[str, str]:
        if proxy == ProxyChoice.NGINX:
            if self._has_sites_layout(self.nginx_root):
                return (
                    os.path.join(self.nginx_root, "sites-available", SITE_NAME),
                    os.path.join(self.nginx_root, "sites-enabled", SITE_NAME),
                )
            conf = os.path.join(self.nginx_root, "conf.d", f"{SITE_NAME}.conf")
            return conf, conf

        if self._has_sites_layout(self.apache_root):
            return (
                os.path.join(self.apache_root, "sites-available", f"{SITE_NAME}.conf"),
                os.path.join(self.apache_root, "sites-enabled", f"{SITE_NAME}.conf"),
            )
        conf = os.path.join(self.httpd_root, "conf.d", f"{SITE_NAME}.conf")
        return conf, conf

    def configure(self, proxy: ProxyChoice, endpoint: EndpointConfig):
        if not endpoint.domain:
            raise InstallerError(f"Failed to extract domain from NODE_URL: {endpoint.url}")

        self.console.print(f"[blue]Configuring {proxy.value} for domain: {endpoint.domain}[/blue]")
        conf_path, enabled_path = self.config_paths(proxy)
        label = f"{proxy.value} configuration file"

        self.filesystem.install_file(
            self.render(proxy, endpoint.domain),
            conf_path,
            owner="root:root",
            mode=CONFIG_FILE_MODE,
            label=label,
        )
        self._enable_site(proxy, conf_path, enabled_path)

        self.console.print(f"[blue]Testing {proxy.value} configuration...[/blue]")
        try:
            self.command_runner.run(self._syntax_check_cmd(proxy), sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"{proxy.value} configuration test failed.\n{exc}") from exc

        unit = self._unit(proxy)
        self.console.print(f"[blue]Reloading {unit} to apply new configuration...[/blue]")
        try:
            self.command_runner.run(["systemctl", "reload", unit], sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to reload {unit}.\n{exc}") from exc

        self.logger.info("%s configuration created at %s and enabled.", proxy.value, conf_path)
        self.console.print(f"[green]Web server configured successfully for {endpoint.domain}[/green]")
        return conf_path

    def _enable_site(self, proxy: ProxyChoice, conf_path: str, enabled_path: str):
        if conf_path == enabled_path:
            return

        try:
            if proxy == ProxyChoice.NGINX:
                if not os.path.lexists(enabled_path):
                    self.command_runner.run(["ln", "-s", conf_path, enabled_path], sudo=True)
            else:
                self.console.print("[blue]Enabling Apache site configuration...[/blue]")
                self.command_runner.run(["a2ensite", SITE_NAME], sudo=True)
        except InstallerError as exc:
            raise InstallerError(f"Failed to enable {proxy.value} site configuration.\n{exc}") from exc

    def _syntax_check_cmd(self, proxy: ProxyChoice):
        if proxy == ProxyChoice.NGINX:
            return ["nginx", "-t"]
        if os.path.isdir(self.apache_root):
            return ["apache2ctl", "configtest"]
        return ["httpd", "-t"]

    def _unit(self, proxy: ProxyChoice) -> str:
        if proxy == ProxyChoice.NGINX:
            return "nginx"
        return service_name("apache2", apache_root=self.apache_root)

    @staticmethod
    def _has_sites_layout(root: str) -> bool:
        return os.path.isdir(os.path.join(root, "sites-available"))
