"""Defaults shared by the reconciliation services."""

DEFAULT_USERNAME = "root"
DEFAULT_SSH_PORT = 22

CONTAINER_PREFIX = "v2ray-"
CONTAINER_IMAGE = "v2ray/official"
CONTAINER_MEMORY = "80M"
RESTART_POLICY = "always"
REMOTE_CONFIG_DIR = "/etc/v2ray"

LISTING_COMMAND = "docker ps -a"
RUNNING_TOKEN = "Up"

STATUS_DISABLED = "disabled"

DEFAULT_CONFIG_FILE = ".containerrebuild.yml"
DEFAULT_INVENTORY_FILE = "servers.yml"
DEFAULT_ACCOUNT_ROOT = "storage/v2ray/account"
