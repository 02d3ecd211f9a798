"""Fixed values shared by the provisioning steps."""

UPSTREAM_PORT = 26490
SITE_NAME = "ag-node"

CONTAINER_NAME = "ag-node"
CONTAINER_IMAGE = "registry.ag.chainofalliance.com/ag-node:latest"
CONTAINER_CONFIG_DIR = "/etc/ag"
DOCKER_SOCKET = "/var/run/docker.sock"
CONTAINER_SETTLE_SECONDS = 5

SERVICE_GRACE_SECONDS = 2

ENV_FILE_NAME = ".ag-node.env"
ENV_FILE_MODE = 0o600
CONFIG_FILE_MODE = "644"
CONFIG_DIR_MODE = "755"

LETSENCRYPT_LIVE_DIR = "/etc/letsencrypt/live"
PUBLIC_IP_URL = "https://api.ipify.org"
PUBLIC_IP_TIMEOUT = 10
DOCKER_REPO_BASE = "https://download.docker.com/linux"
DASHBOARD_URL = "https://dashboard-testnet.alliancegames.xyz/"

APACHE_MODULES = ("ssl", "proxy", "proxy_http", "headers", "proxy_wstunnel", "rewrite")
REQUIRED_TOOLS = ("curl", "wget", "dig")
